from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import ServiceError
from lessonbook.core.time_provider import TimeProvider, get_time_provider
from lessonbook.db.session import get_db

from .schemas import ShiftCreate, ShiftDeleteResponse, ShiftResponse
from . import service

router = APIRouter(prefix="/api/v1/shifts", tags=["shifts"])


@router.post(
    "",
    response_model=ShiftResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_capability("shift.create"))],
)
async def create_shift(
    payload: ShiftCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ShiftResponse:
    """Create a shift. Instructors create their own; admins pass instructor_id."""
    try:
        return await service.create_shift(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/mine",
    response_model=List[ShiftResponse],
    dependencies=[Depends(check_capability("shift.list_own"))],
)
async def list_my_shifts(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ShiftResponse]:
    """The instructor's own shifts with their bookings."""
    return await service.list_instructor_shifts(db, current_user)


@router.get(
    "/master",
    response_model=List[ShiftResponse],
    dependencies=[Depends(check_capability("schedule.master"))],
)
async def master_schedule(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> List[ShiftResponse]:
    """Every instructor's published shifts since the start of last month."""
    return await service.list_master_schedule(db, current_user, clock)


@router.get(
    "/available/{instructor_id}",
    response_model=List[ShiftResponse],
    dependencies=[Depends(check_capability("shift.browse"))],
)
async def list_available_shifts(
    instructor_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> List[ShiftResponse]:
    """Upcoming shifts of one instructor that are still open for booking."""
    return await service.list_available_shifts(db, current_user, instructor_id, clock)


@router.delete(
    "/{shift_id}",
    response_model=ShiftDeleteResponse,
    dependencies=[Depends(check_capability("shift.delete"))],
)
async def delete_shift(
    shift_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> ShiftDeleteResponse:
    """Delete a shift together with its bookings and their reports."""
    try:
        return await service.delete_shift(db, current_user, shift_id, clock)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
