from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import ServiceError
from lessonbook.core.time_provider import TimeProvider, get_time_provider
from lessonbook.db.session import get_db

from .schemas import ReportCreate, ReportDeadlineResponse, ReportResponse
from . import service

router = APIRouter(prefix="/api/v1/bookings/{booking_id}/report", tags=["reports"])


@router.post(
    "",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_capability("report.submit"))],
)
async def submit_report(
    booking_id: UUID,
    payload: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> ReportResponse:
    """File the lesson report. Allowed from the lesson start until the end of that day plus the extension."""
    try:
        return await service.submit_report(db, current_user, booking_id, payload, clock)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/deadline",
    response_model=ReportDeadlineResponse,
    dependencies=[Depends(check_capability("report.submit"))],
)
async def get_report_deadline(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> ReportDeadlineResponse:
    try:
        return await service.get_report_deadline(db, current_user, booking_id, clock)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
