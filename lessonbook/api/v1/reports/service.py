"""Post-lesson reports.

A report opens at the lesson start and closes at the end of the lesson's
local calendar day plus the admin-configured extension. Reports are
append-only, one per booking.
"""

import logging
from datetime import datetime, timedelta
from typing import Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lessonbook.api.v1.settings.service import get_report_extension_hours
from lessonbook.auth.rbac import ensure_capability, ensure_owner
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import BookingStatus
from lessonbook.core.exceptions import (
    DeadlineExpiredError,
    InvalidStateError,
    NotFoundError,
    ReportExistsError,
    StorageError,
    TooEarlyError,
)
from lessonbook.core.models import Booking, Report
from lessonbook.core.time_provider import TimeProvider, default_time_provider, end_of_local_day, format_local

from .schemas import ReportCreate, ReportDeadlineResponse, ReportResponse

logger = logging.getLogger(__name__)


def report_window(shift_start: datetime, extension_hours: int = 0) -> Tuple[datetime, datetime]:
    """(opens_at, closes_at) for a lesson starting at shift_start."""
    return shift_start, end_of_local_day(shift_start) + timedelta(hours=extension_hours)


async def _get_owned_booking(db: AsyncSession, actor: CurrentUser, booking_id: UUID) -> Booking:
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.shift), selectinload(Booking.report))
        .where(Booking.id == booking_id)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    ensure_owner(actor, booking.shift.instructor_id, "Only the lesson's instructor can file its report")
    return booking


async def submit_report(
    db: AsyncSession,
    actor: CurrentUser,
    booking_id: UUID,
    payload: ReportCreate,
    clock: TimeProvider = default_time_provider,
) -> ReportResponse:
    ensure_capability(actor, "report.submit")
    booking = await _get_owned_booking(db, actor, booking_id)
    if booking.status != BookingStatus.CONFIRMED.value:
        raise InvalidStateError("Reports can only be filed for confirmed bookings")
    if booking.report is not None:
        raise ReportExistsError("A report has already been filed for this lesson")

    now = clock.now()
    extension = await get_report_extension_hours(db)
    opens_at, closes_at = report_window(booking.shift.start, extension)
    if now < opens_at:
        raise TooEarlyError("Reports can be filed once the lesson has started")
    if now > closes_at:
        raise DeadlineExpiredError(f"The report deadline ({format_local(closes_at)}) has passed")

    report = Report(
        booking_id=booking.id,
        content=payload.content,
        homework=payload.homework or None,
        feedback=payload.feedback or None,
        log_url=payload.log_url or None,
    )
    db.add(report)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ReportExistsError("A report has already been filed for this lesson") from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to save report") from e
    await db.refresh(report)
    logger.info("report_filed report_id=%s booking_id=%s instructor_id=%s", report.id, booking.id, actor.id)
    return ReportResponse.model_validate(report)


async def get_report_deadline(
    db: AsyncSession,
    actor: CurrentUser,
    booking_id: UUID,
    clock: TimeProvider = default_time_provider,
) -> ReportDeadlineResponse:
    ensure_capability(actor, "report.submit")
    booking = await _get_owned_booking(db, actor, booking_id)
    extension = await get_report_extension_hours(db)
    opens_at, closes_at = report_window(booking.shift.start, extension)
    now = clock.now()
    return ReportDeadlineResponse(
        booking_id=booking.id,
        opens_at=opens_at,
        closes_at=closes_at,
        extension_hours=extension,
        is_open=opens_at <= now <= closes_at,
        has_report=booking.report is not None,
    )
