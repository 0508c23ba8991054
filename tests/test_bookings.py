from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from lessonbook.api.v1.bookings import service as booking_service
from lessonbook.api.v1.bookings.schemas import BookingCreate
from lessonbook.core.enums import BookingStatus, MeetingType, ShiftType, UserRole
from lessonbook.core.exceptions import (
    DeadlinePassedError,
    InvalidStateError,
    NotFoundError,
    SlotTakenError,
    StudentOverlapError,
    UnauthorizedError,
)
from lessonbook.core.models import Booking, Report
from lessonbook.core.time_provider import FixedTimeProvider
from lessonbook.notifications.dispatcher import NotificationDispatcher

from tests.helpers import RecordingNotifier, actor, make_admin, make_booking, make_shift, make_user


@pytest.mark.asyncio
async def test_student_books_open_individual_shift(db_session, clock, dispatcher, notifier) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 4), "10:00")

    booking = await booking_service.create_booking(
        db_session, actor(student), BookingCreate(shift_id=shift.id), clock, dispatcher
    )
    await dispatcher.drain()

    assert booking.status == BookingStatus.CONFIRMED.value
    assert booking.meeting_type == MeetingType.ONLINE.value
    assert booking.student_id == student.id
    assert sorted(m.to for m in notifier.sent) == sorted([student.email, instructor.email])


@pytest.mark.asyncio
async def test_overlap_and_slot_rules_scenario(db_session, clock, dispatcher) -> None:
    instructor_a = await make_user(db_session, UserRole.INSTRUCTOR)
    instructor_b = await make_user(db_session, UserRole.INSTRUCTOR)
    student_s = await make_user(db_session, UserRole.STUDENT)
    student_t = await make_user(db_session, UserRole.STUDENT)
    admin = await make_admin(db_session)
    tomorrow = date(2026, 3, 3)
    original = await make_shift(db_session, instructor_a, tomorrow, "10:00", "11:00")
    other = await make_shift(db_session, instructor_b, tomorrow, "10:30", "11:30")

    # Tuesday 10:00 is 25h away from the fixed Monday 09:00 clock
    booking = await booking_service.create_booking(
        db_session, actor(student_s), BookingCreate(shift_id=original.id), clock, dispatcher
    )
    assert booking.status == BookingStatus.CONFIRMED.value

    with pytest.raises(StudentOverlapError):
        await booking_service.create_booking(
            db_session, actor(student_s), BookingCreate(shift_id=other.id), clock, dispatcher
        )

    with pytest.raises(SlotTakenError):
        await booking_service.create_booking(
            db_session,
            actor(admin),
            BookingCreate(shift_id=original.id, student_id=student_t.id),
            clock,
            dispatcher,
        )


@pytest.mark.asyncio
async def test_student_booking_cutoff(db_session, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 4), "10:00", type=ShiftType.GROUP)

    too_late = FixedTimeProvider(shift.start - timedelta(hours=23, minutes=59))
    with pytest.raises(DeadlinePassedError):
        await booking_service.create_booking(
            db_session, actor(student), BookingCreate(shift_id=shift.id), too_late, dispatcher
        )

    in_time = FixedTimeProvider(shift.start - timedelta(hours=24))
    booking = await booking_service.create_booking(
        db_session, actor(student), BookingCreate(shift_id=shift.id), in_time, dispatcher
    )
    assert booking.shift_id == shift.id


@pytest.mark.asyncio
async def test_forced_booking_skips_cutoff(db_session, dispatcher, notifier) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 2), "10:00")
    one_hour_before = FixedTimeProvider(shift.start - timedelta(hours=1))

    booking = await booking_service.create_booking(
        db_session,
        actor(instructor),
        BookingCreate(shift_id=shift.id, student_id=student.id, meeting_type=MeetingType.IN_PERSON),
        one_hour_before,
        dispatcher,
    )
    await dispatcher.drain()

    assert booking.meeting_type == MeetingType.IN_PERSON.value
    assert all("added by the instructor" in m.body for m in notifier.sent)


@pytest.mark.asyncio
async def test_group_shift_takes_many_students(db_session, clock, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "18:00", type=ShiftType.GROUP)

    for _ in range(3):
        student = await make_user(db_session, UserRole.STUDENT)
        await booking_service.create_booking(
            db_session, actor(student), BookingCreate(shift_id=shift.id), clock, dispatcher
        )

    count = await db_session.execute(select(func.count(Booking.id)).where(Booking.shift_id == shift.id))
    assert count.scalar_one() == 3


@pytest.mark.asyncio
async def test_exclusive_constraint_guards_individual_slot(db_session, session_factory, clock, dispatcher, monkeypatch) -> None:
    """Even when the read check misses a concurrent booking, the insert is refused."""
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    first = await make_user(db_session, UserRole.STUDENT)
    second = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00")
    await make_booking(db_session, shift, first)

    async def nobody_booked(db, shift_id) -> bool:
        return False

    monkeypatch.setattr(booking_service, "has_confirmed_booking", nobody_booked)

    with pytest.raises(SlotTakenError):
        await booking_service.create_booking(
            db_session, actor(second), BookingCreate(shift_id=shift.id), clock, dispatcher
        )

    async with session_factory() as fresh:
        count = await fresh.execute(select(func.count(Booking.id)).where(Booking.shift_id == shift.id))
        assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_student_cannot_book_for_someone_else(db_session, clock, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    other = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00")

    with pytest.raises(UnauthorizedError):
        await booking_service.create_booking(
            db_session,
            actor(student),
            BookingCreate(shift_id=shift.id, student_id=other.id),
            clock,
            dispatcher,
        )


@pytest.mark.asyncio
async def test_forced_booking_requires_active_student(db_session, clock, dispatcher) -> None:
    admin = await make_admin(db_session)
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    archived = await make_user(db_session, UserRole.STUDENT, is_active=False)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00")

    with pytest.raises(NotFoundError):
        await booking_service.create_booking(
            db_session,
            actor(admin),
            BookingCreate(shift_id=shift.id, student_id=archived.id),
            clock,
            dispatcher,
        )
    with pytest.raises(NotFoundError):
        await booking_service.create_booking(
            db_session,
            actor(admin),
            BookingCreate(shift_id=shift.id, student_id=instructor.id),
            clock,
            dispatcher,
        )


@pytest.mark.asyncio
async def test_student_cannot_book_unpublished_shift(db_session, clock, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00", is_published=False)

    with pytest.raises(NotFoundError):
        await booking_service.create_booking(
            db_session, actor(student), BookingCreate(shift_id=shift.id), clock, dispatcher
        )


@pytest.mark.asyncio
async def test_shifts_of_archived_or_inactive_instructor_cannot_be_booked(db_session, clock, dispatcher) -> None:
    archived = await make_user(
        db_session,
        UserRole.INSTRUCTOR,
        is_active=False,
        archived_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        archive_year=2026,
    )
    inactive = await make_user(db_session, UserRole.INSTRUCTOR, is_active=False)
    student = await make_user(db_session, UserRole.STUDENT)
    admin = await make_admin(db_session)

    for instructor in (archived, inactive):
        shift = await make_shift(db_session, instructor, date(2026, 3, 5), "10:00")
        with pytest.raises(NotFoundError):
            await booking_service.create_booking(
                db_session, actor(student), BookingCreate(shift_id=shift.id), clock, dispatcher
            )
        with pytest.raises(NotFoundError):
            await booking_service.create_booking(
                db_session, actor(admin), BookingCreate(shift_id=shift.id, student_id=student.id), clock, dispatcher
            )

    count = (await db_session.execute(select(func.count(Booking.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_booking(db_session, clock, caplog) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00")
    broken = NotificationDispatcher(RecordingNotifier(fail=True))

    booking = await booking_service.create_booking(
        db_session, actor(student), BookingCreate(shift_id=shift.id), clock, broken
    )
    await broken.drain()

    assert booking.status == BookingStatus.CONFIRMED.value
    assert "notification_failed" in caplog.text


@pytest.mark.asyncio
async def test_owner_cancels_and_slot_reopens(db_session, clock, dispatcher, notifier) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    other = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00")
    booking = await make_booking(db_session, shift, student)

    result = await booking_service.cancel_booking(db_session, actor(student), booking.id, dispatcher)
    await dispatcher.drain()

    assert result.success is True
    assert (await db_session.execute(select(func.count(Booking.id)))).scalar_one() == 0
    assert {m.to for m in notifier.sent} == {student.email, instructor.email}

    rebooked = await booking_service.create_booking(
        db_session, actor(other), BookingCreate(shift_id=shift.id), clock, dispatcher
    )
    assert rebooked.student_id == other.id


@pytest.mark.asyncio
async def test_cancel_has_no_time_restriction(db_session, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 2), "10:00")
    booking = await make_booking(db_session, shift, student)

    result = await booking_service.cancel_booking(db_session, actor(student), booking.id, dispatcher)
    assert result.booking_id == booking.id


@pytest.mark.asyncio
async def test_only_owning_student_can_cancel(db_session, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    other = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 6), "10:00")
    booking = await make_booking(db_session, shift, student)

    with pytest.raises(UnauthorizedError):
        await booking_service.cancel_booking(db_session, actor(other), booking.id, dispatcher)
    with pytest.raises(UnauthorizedError):
        await booking_service.cancel_booking(db_session, actor(instructor), booking.id, dispatcher)


@pytest.mark.asyncio
async def test_reported_booking_cannot_be_cancelled(db_session, dispatcher) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    shift = await make_shift(db_session, instructor, date(2026, 3, 2), "10:00")
    booking = await make_booking(db_session, shift, student)
    db_session.add(Report(booking_id=booking.id, content="covered chapter 3"))
    await db_session.commit()

    with pytest.raises(InvalidStateError):
        await booking_service.cancel_booking(db_session, actor(student), booking.id, dispatcher)


@pytest.mark.asyncio
async def test_student_and_instructor_lists(db_session) -> None:
    instructor = await make_user(db_session, UserRole.INSTRUCTOR)
    student = await make_user(db_session, UserRole.STUDENT)
    early = await make_shift(db_session, instructor, date(2026, 3, 4), "10:00")
    late = await make_shift(db_session, instructor, date(2026, 3, 9), "10:00")
    await make_booking(db_session, early, student)
    await make_booking(db_session, late, student)

    mine = await booking_service.list_student_bookings(db_session, actor(student))
    history = await booking_service.list_instructor_history(db_session, actor(instructor))

    assert [b.shift_id for b in mine] == [late.id, early.id]
    assert mine[0].instructor_name == instructor.full_name
    assert [b.shift_id for b in history] == [late.id, early.id]
    assert history[0].student_name == student.full_name
