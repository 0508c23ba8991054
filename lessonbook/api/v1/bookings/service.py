"""Booking creation and cancellation.

A CONFIRMED booking on an INDIVIDUAL shift carries ``exclusive_shift_id``;
the unique constraint on that column is the write-time guard for single
occupancy, the pre-insert query only gives a friendlier error first.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lessonbook.api.v1.shifts.service import get_shift, lock_user
from lessonbook.auth.models import User
from lessonbook.auth.rbac import ensure_capability, ensure_owner
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.config import settings
from lessonbook.core.enums import BookingStatus, ShiftType, UserRole
from lessonbook.core.exceptions import (
    DeadlinePassedError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
    SlotTakenError,
    StorageError,
    StudentOverlapError,
    UnauthorizedError,
)
from lessonbook.core.models import Booking, Shift
from lessonbook.core.time_provider import TimeProvider, default_time_provider
from lessonbook.notifications import templates
from lessonbook.notifications.dispatcher import NotificationDispatcher, get_dispatcher

from .schemas import BookingCancelResponse, BookingCreate, BookingDetail, BookingReportSummary, BookingResponse

logger = logging.getLogger(__name__)


def to_detail(booking: Booking) -> BookingDetail:
    shift = booking.shift
    return BookingDetail(
        id=booking.id,
        status=booking.status,
        meeting_type=booking.meeting_type,
        created_at=booking.created_at,
        shift_id=shift.id,
        start=shift.start,
        end=shift.end,
        type=shift.type,
        location=shift.location,
        class_name=shift.class_name,
        instructor_id=shift.instructor_id,
        instructor_name=shift.instructor.full_name if shift.instructor else None,
        student_id=booking.student_id,
        student_name=booking.student.full_name if booking.student else None,
        report=BookingReportSummary.model_validate(booking.report) if booking.report else None,
    )


def detail_options():
    return (
        selectinload(Booking.shift).selectinload(Shift.instructor),
        selectinload(Booking.student),
        selectinload(Booking.report),
    )


async def find_student_overlap(
    db: AsyncSession,
    student_id: UUID,
    start: datetime,
    end: datetime,
) -> Optional[Booking]:
    """A CONFIRMED booking of the student whose shift intersects [start, end)."""
    result = await db.execute(
        select(Booking)
        .join(Shift, Booking.shift_id == Shift.id)
        .where(
            Booking.student_id == student_id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Shift.start < end,
            Shift.end > start,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def has_confirmed_booking(db: AsyncSession, shift_id: UUID) -> bool:
    result = await db.execute(
        select(Booking.id)
        .where(Booking.shift_id == shift_id, Booking.status == BookingStatus.CONFIRMED.value)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def create_booking(
    db: AsyncSession,
    actor: CurrentUser,
    payload: BookingCreate,
    clock: TimeProvider = default_time_provider,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> BookingResponse:
    """Book a shift for a student.

    Students book for themselves and are held to the booking cutoff.
    Instructors and admins may force a booking for any active student with
    no cutoff. Single occupancy of INDIVIDUAL shifts and the student's own
    overlap rule apply to everyone, and shifts of archived or inactive
    instructors cannot be booked at all.
    """
    ensure_capability(actor, "booking.create")
    if actor.is_student:
        if payload.student_id is not None and payload.student_id != actor.id:
            raise UnauthorizedError("Students can only book for themselves")
        student_id = actor.id
    else:
        if payload.student_id is None:
            raise NotFoundError("Student not found")
        student_id = payload.student_id

    shift = await get_shift(db, payload.shift_id)
    instructor = await db.get(User, shift.instructor_id)
    if not instructor or not instructor.is_bookable:
        raise NotFoundError("Shift not found")
    if actor.is_student:
        if not shift.is_published:
            raise NotFoundError("Shift not found")
        cutoff = timedelta(hours=settings.booking_cutoff_hours)
        if shift.start - clock.now() < cutoff:
            raise DeadlinePassedError(
                f"Bookings close {settings.booking_cutoff_hours} hours before the lesson starts"
            )

    exclusive = shift.type == ShiftType.INDIVIDUAL.value
    try:
        student = await lock_user(db, student_id)
        if not student or student.role != UserRole.STUDENT.value or not student.is_bookable:
            raise NotFoundError("Student not found")
        if exclusive and await has_confirmed_booking(db, shift.id):
            raise SlotTakenError("This slot is already booked")
        if await find_student_overlap(db, student_id, shift.start, shift.end):
            raise StudentOverlapError("The student already has a lesson at this time")

        booking = Booking(
            shift_id=shift.id,
            student_id=student_id,
            status=BookingStatus.CONFIRMED.value,
            meeting_type=payload.meeting_type.value,
            exclusive_shift_id=shift.id if exclusive else None,
        )
        db.add(booking)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.warning("booking_conflict shift_id=%s student_id=%s", shift.id, student_id)
        raise SlotTakenError("This slot is already booked") from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to create booking") from e

    await db.refresh(booking)
    logger.info(
        "booking_created booking_id=%s shift_id=%s student_id=%s by=%s",
        booking.id, shift.id, student_id, actor.role,
    )

    (dispatcher or get_dispatcher()).dispatch(
        templates.booking_confirmed(
            student_name=student.full_name,
            student_email=student.email,
            instructor_name=instructor.full_name,
            instructor_email=instructor.email,
            start=shift.start,
            end=shift.end,
            location=shift.location,
            added_by=None if actor.is_student else actor.role,
        )
    )
    return BookingResponse.model_validate(booking)


async def cancel_booking(
    db: AsyncSession,
    actor: CurrentUser,
    booking_id: UUID,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> BookingCancelResponse:
    """Hard-delete the student's own booking. There is no time restriction."""
    ensure_capability(actor, "booking.cancel")
    result = await db.execute(select(Booking).options(*detail_options()).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    ensure_owner(actor, booking.student_id, "Not your booking")
    if booking.report is not None:
        raise InvalidStateError("A lesson with a filed report cannot be cancelled")

    shift = booking.shift
    student = booking.student
    instructor = shift.instructor
    try:
        await db.execute(delete(Booking).where(Booking.id == booking_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to cancel booking") from e

    logger.info("booking_cancelled booking_id=%s shift_id=%s student_id=%s", booking_id, shift.id, actor.id)
    (dispatcher or get_dispatcher()).dispatch(
        templates.booking_cancelled(
            student_name=student.full_name,
            student_email=student.email,
            instructor_name=instructor.full_name,
            instructor_email=instructor.email,
            start=shift.start,
            end=shift.end,
        )
    )
    return BookingCancelResponse(success=True, booking_id=booking_id)


async def list_student_bookings(db: AsyncSession, actor: CurrentUser) -> List[BookingDetail]:
    ensure_capability(actor, "booking.list_own")
    result = await db.execute(
        select(Booking)
        .options(*detail_options())
        .join(Shift, Booking.shift_id == Shift.id)
        .where(Booking.student_id == actor.id, Booking.status == BookingStatus.CONFIRMED.value)
        .order_by(Shift.start.desc())
    )
    return [to_detail(b) for b in result.scalars().all()]


async def list_instructor_history(db: AsyncSession, actor: CurrentUser) -> List[BookingDetail]:
    """Bookings on the instructor's shifts, newest lesson first."""
    ensure_capability(actor, "booking.history")
    result = await db.execute(
        select(Booking)
        .options(*detail_options())
        .join(Shift, Booking.shift_id == Shift.id)
        .where(Shift.instructor_id == actor.id)
        .order_by(Shift.start.desc())
    )
    return [to_detail(b) for b in result.scalars().all()]
