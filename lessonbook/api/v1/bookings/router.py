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
from lessonbook.notifications.dispatcher import NotificationDispatcher, get_dispatcher

from .schemas import BookingCancelResponse, BookingCreate, BookingDetail, BookingResponse
from . import service

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_capability("booking.create"))],
)
async def create_booking(
    payload: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BookingResponse:
    """Book a shift. Instructors and admins pass student_id to book on a student's behalf."""
    try:
        return await service.create_booking(db, current_user, payload, clock, dispatcher)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/mine",
    response_model=List[BookingDetail],
    dependencies=[Depends(check_capability("booking.list_own"))],
)
async def list_my_bookings(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[BookingDetail]:
    return await service.list_student_bookings(db, current_user)


@router.get(
    "/history",
    response_model=List[BookingDetail],
    dependencies=[Depends(check_capability("booking.history"))],
)
async def list_history(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[BookingDetail]:
    """Lessons booked on the instructor's shifts, newest first."""
    return await service.list_instructor_history(db, current_user)


@router.delete(
    "/{booking_id}",
    response_model=BookingCancelResponse,
    dependencies=[Depends(check_capability("booking.cancel"))],
)
async def cancel_booking(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BookingCancelResponse:
    try:
        return await service.cancel_booking(db, current_user, booking_id, dispatcher)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
