"""Shift creation, deletion and the schedule read models.

Overlap is the half-open test ``existing.start < new.end AND existing.end > new.start``
on UTC instants, so back-to-back shifts (10:00-11:00, 11:00-12:00) do not collide.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.base import NO_VALUE

from lessonbook.auth.models import User
from lessonbook.auth.rbac import ensure_capability, ensure_owner
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.config import settings
from lessonbook.core.enums import BookingStatus, ShiftType, UserRole
from lessonbook.core.exceptions import (
    NotFoundError,
    OverlapError,
    ServiceError,
    StorageError,
    TooLateError,
    UnauthorizedError,
)
from lessonbook.core.models import Booking, Report, Shift
from lessonbook.core.time_provider import TimeProvider, default_time_provider, resolve_interval, start_of_local_month

from .schemas import ShiftBookingSummary, ShiftCreate, ShiftDeleteResponse, ShiftResponse

logger = logging.getLogger(__name__)


def loaded_relation(obj, name: str):
    """The related object if it is already loaded, else None. Never triggers a lazy load."""
    value = inspect(obj).attrs[name].loaded_value
    return None if value is NO_VALUE else value


def to_response(shift: Shift, include_bookings: bool = False) -> ShiftResponse:
    """Build the response; relationships must already be loaded when include_bookings is set."""
    bookings: List[ShiftBookingSummary] = []
    if include_bookings:
        for b in shift.bookings:
            bookings.append(
                ShiftBookingSummary(
                    id=b.id,
                    student_id=b.student_id,
                    student_name=b.student.full_name if b.student else None,
                    status=b.status,
                    meeting_type=b.meeting_type,
                    has_report=b.report is not None,
                )
            )
    instructor = loaded_relation(shift, "instructor")
    return ShiftResponse(
        id=shift.id,
        instructor_id=shift.instructor_id,
        instructor_name=instructor.full_name if instructor else None,
        start=shift.start,
        end=shift.end,
        type=shift.type,
        location=shift.location,
        class_name=shift.class_name,
        is_published=shift.is_published,
        created_at=shift.created_at,
        bookings=bookings,
    )


async def lock_user(db: AsyncSession, user_id: UUID) -> Optional[User]:
    """Load a user with a row lock.

    Overlap checks lock the owning user first so that two concurrent writers
    for the same instructor (or student) are serialised until commit. SQLite
    has no row locks and ignores FOR UPDATE.
    """
    result = await db.execute(select(User).where(User.id == user_id).with_for_update())
    return result.scalar_one_or_none()


async def find_overlapping_shift(
    db: AsyncSession,
    instructor_id: UUID,
    start: datetime,
    end: datetime,
) -> Optional[Shift]:
    result = await db.execute(
        select(Shift)
        .where(
            Shift.instructor_id == instructor_id,
            Shift.start < end,
            Shift.end > start,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_shift(db: AsyncSession, shift_id: UUID) -> Shift:
    shift = await db.get(Shift, shift_id)
    if not shift:
        raise NotFoundError("Shift not found")
    return shift


async def create_shift(
    db: AsyncSession,
    actor: CurrentUser,
    payload: ShiftCreate,
) -> ShiftResponse:
    """Create a published shift for an instructor.

    Instructors create for themselves; admins must name the instructor. Both
    paths are rejected with OverlapError when the instructor already has a
    shift in the interval. end > start is not validated here.
    """
    ensure_capability(actor, "shift.create")
    if actor.is_instructor:
        if payload.instructor_id is not None and payload.instructor_id != actor.id:
            raise UnauthorizedError("Instructors can only create their own shifts")
        instructor_id = actor.id
    else:
        if payload.instructor_id is None:
            raise ServiceError("instructor_id is required", status.HTTP_400_BAD_REQUEST)
        instructor_id = payload.instructor_id

    start, end = resolve_interval(payload.lesson_date, payload.start_time, payload.end_time, payload.type.value)

    try:
        instructor = await lock_user(db, instructor_id)
        if not instructor or instructor.role != UserRole.INSTRUCTOR.value or not instructor.is_bookable:
            raise NotFoundError("Instructor not found")
        if await find_overlapping_shift(db, instructor_id, start, end):
            raise OverlapError("A shift already exists in this time range")
        shift = Shift(
            instructor_id=instructor_id,
            start=start,
            end=end,
            type=payload.type.value,
            location=payload.location.value,
            class_name=(payload.class_name or "").strip() or None,
            is_published=True,
        )
        db.add(shift)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to create shift") from e

    await db.refresh(shift)
    response = to_response(shift)
    response.instructor_name = instructor.full_name
    logger.info(
        "shift_created shift_id=%s instructor_id=%s start=%s end=%s type=%s by=%s",
        shift.id, instructor_id, start.isoformat(), end.isoformat(), shift.type, actor.role,
    )
    return response


async def delete_shift(
    db: AsyncSession,
    actor: CurrentUser,
    shift_id: UUID,
    clock: TimeProvider = default_time_provider,
) -> ShiftDeleteResponse:
    """Delete a shift and everything hanging off it in one transaction.

    Instructors may delete only their own shifts and only while the start is
    strictly more than the cutoff away. Admins delete unconditionally.
    """
    ensure_capability(actor, "shift.delete")
    shift = await get_shift(db, shift_id)

    if not actor.is_admin:
        ensure_owner(actor, shift.instructor_id, "Not your shift")
        cutoff = timedelta(hours=settings.shift_delete_cutoff_hours)
        if shift.start - clock.now() <= cutoff:
            raise TooLateError(
                f"Shifts cannot be deleted within {settings.shift_delete_cutoff_hours} hours of the start"
            )

    booking_ids = select(Booking.id).where(Booking.shift_id == shift_id)
    try:
        await db.execute(delete(Report).where(Report.booking_id.in_(booking_ids)))
        result = await db.execute(delete(Booking).where(Booking.shift_id == shift_id))
        await db.execute(delete(Shift).where(Shift.id == shift_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("shift_delete_failed shift_id=%s", shift_id)
        raise StorageError("Failed to delete shift") from e

    deleted = result.rowcount or 0
    logger.info("shift_deleted shift_id=%s bookings=%s by=%s", shift_id, deleted, actor.role)
    return ShiftDeleteResponse(success=True, deleted_bookings=deleted)


def _with_bookings(stmt):
    return stmt.options(
        selectinload(Shift.instructor),
        selectinload(Shift.bookings).selectinload(Booking.student),
        selectinload(Shift.bookings).selectinload(Booking.report),
    )


async def list_instructor_shifts(db: AsyncSession, actor: CurrentUser) -> List[ShiftResponse]:
    """The acting instructor's own shifts, earliest first."""
    ensure_capability(actor, "shift.list_own")
    result = await db.execute(
        _with_bookings(select(Shift).where(Shift.instructor_id == actor.id)).order_by(Shift.start.asc())
    )
    return [to_response(s, include_bookings=True) for s in result.scalars().all()]


async def list_master_schedule(
    db: AsyncSession,
    actor: CurrentUser,
    clock: TimeProvider = default_time_provider,
) -> List[ShiftResponse]:
    """All published shifts from the first day of last month on."""
    ensure_capability(actor, "schedule.master")
    since = start_of_local_month(clock.now(), months_back=1)
    result = await db.execute(
        _with_bookings(
            select(Shift).where(Shift.is_published.is_(True), Shift.start >= since)
        ).order_by(Shift.start.asc())
    )
    return [to_response(s, include_bookings=True) for s in result.scalars().all()]


async def list_available_shifts(
    db: AsyncSession,
    actor: CurrentUser,
    instructor_id: UUID,
    clock: TimeProvider = default_time_provider,
) -> List[ShiftResponse]:
    """Future published shifts of one instructor that can still take a booking."""
    ensure_capability(actor, "shift.browse")
    result = await db.execute(
        select(Shift)
        .join(User, Shift.instructor_id == User.id)
        .options(selectinload(Shift.instructor), selectinload(Shift.bookings))
        .where(
            Shift.instructor_id == instructor_id,
            User.is_active.is_(True),
            User.archived_at.is_(None),
            Shift.is_published.is_(True),
            Shift.start >= clock.now(),
        )
        .order_by(Shift.start.asc())
    )
    available = []
    for shift in result.scalars().all():
        occupied = any(b.status == BookingStatus.CONFIRMED.value for b in shift.bookings)
        if shift.type == ShiftType.INDIVIDUAL.value and occupied:
            continue
        available.append(to_response(shift))
    return available
