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

from .schemas import ScheduleRequestApproval, ScheduleRequestCreate, ScheduleRequestResponse
from . import service

router = APIRouter(prefix="/api/v1/schedule-requests", tags=["schedule-requests"])


@router.post(
    "",
    response_model=ScheduleRequestResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_capability("request.create"))],
)
async def create_request(
    payload: ScheduleRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ScheduleRequestResponse:
    """Ask an instructor for a lesson at a time that has no shift yet."""
    try:
        return await service.create_request(db, current_user, payload, dispatcher)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/my",
    response_model=List[ScheduleRequestResponse],
    dependencies=[Depends(check_capability("request.list_own"))],
)
async def list_my_requests(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ScheduleRequestResponse]:
    return await service.list_my_requests(db, current_user)


@router.get(
    "/pending",
    response_model=List[ScheduleRequestResponse],
    dependencies=[Depends(check_capability("request.list_pending"))],
)
async def list_pending_requests(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ScheduleRequestResponse]:
    """Requests waiting for the current instructor's decision."""
    return await service.list_pending_requests(db, current_user)


@router.post(
    "/{request_id}/approve",
    response_model=ScheduleRequestApproval,
    dependencies=[Depends(check_capability("request.decide"))],
)
async def approve_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ScheduleRequestApproval:
    """Approve a pending request; creates the shift and the confirmed booking."""
    try:
        return await service.approve_request(db, current_user, request_id, clock, dispatcher)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{request_id}/reject",
    response_model=ScheduleRequestResponse,
    dependencies=[Depends(check_capability("request.decide"))],
)
async def reject_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ScheduleRequestResponse:
    try:
        return await service.reject_request(db, current_user, request_id, clock, dispatcher)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
