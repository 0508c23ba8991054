import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lessonbook.api.v1.bookings.service import find_student_overlap
from lessonbook.api.v1.shifts.service import loaded_relation, lock_user
from lessonbook.auth.models import User
from lessonbook.auth.rbac import ensure_capability, ensure_owner
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import BookingStatus, Location, MeetingType, RequestStatus, ShiftType, UserRole
from lessonbook.core.exceptions import InvalidStateError, NotFoundError, ServiceError, SlotTakenError, StorageError, StudentOverlapError
from lessonbook.core.models import Booking, ScheduleRequest, Shift
from lessonbook.core.time_provider import TimeProvider, default_time_provider, resolve_interval
from lessonbook.notifications import templates
from lessonbook.notifications.dispatcher import NotificationDispatcher, get_dispatcher

from .schemas import ScheduleRequestApproval, ScheduleRequestCreate, ScheduleRequestResponse

logger = logging.getLogger(__name__)


def _request_to_response(r: ScheduleRequest) -> ScheduleRequestResponse:
    student = loaded_relation(r, "student")
    instructor = loaded_relation(r, "instructor")
    return ScheduleRequestResponse(
        id=r.id,
        student_id=r.student_id,
        student_name=student.full_name if student else None,
        instructor_id=r.instructor_id,
        instructor_name=instructor.full_name if instructor else None,
        start=r.start,
        end=r.end,
        status=r.status,
        shift_id=r.shift_id,
        decided_at=r.decided_at,
        created_at=r.created_at,
    )


async def _get_request_for_decision(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
) -> ScheduleRequest:
    result = await db.execute(
        select(ScheduleRequest)
        .options(selectinload(ScheduleRequest.student), selectinload(ScheduleRequest.instructor))
        .where(ScheduleRequest.id == request_id)
    )
    req = result.scalar_one_or_none()
    if not req:
        raise NotFoundError("Schedule request not found")
    ensure_owner(actor, req.instructor_id, "This request is addressed to another instructor")
    if req.status != RequestStatus.PENDING.value:
        raise InvalidStateError("Only PENDING requests can be approved or rejected")
    return req


async def create_request(
    db: AsyncSession,
    actor: CurrentUser,
    payload: ScheduleRequestCreate,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> ScheduleRequestResponse:
    """Student proposes a one-hour lesson with an instructor."""
    ensure_capability(actor, "request.create")
    instructor = await db.get(User, payload.instructor_id)
    if not instructor or instructor.role != UserRole.INSTRUCTOR.value or not instructor.is_bookable:
        raise NotFoundError("Instructor not found")
    student = await db.get(User, actor.id)

    start, end = resolve_interval(payload.lesson_date, payload.start_time, None)
    req = ScheduleRequest(
        student_id=actor.id,
        instructor_id=instructor.id,
        start=start,
        end=end,
        status=RequestStatus.PENDING.value,
    )
    db.add(req)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to create schedule request") from e
    await db.refresh(req)
    logger.info("request_created request_id=%s student_id=%s instructor_id=%s", req.id, actor.id, instructor.id)

    (dispatcher or get_dispatcher()).dispatch(
        templates.request_received(
            instructor_name=instructor.full_name,
            instructor_email=instructor.email,
            student_name=student.full_name,
            start=start,
        )
    )
    response = _request_to_response(req)
    response.student_name = student.full_name
    response.instructor_name = instructor.full_name
    return response


async def approve_request(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
    clock: TimeProvider = default_time_provider,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> ScheduleRequestApproval:
    """Promote a PENDING request into an INDIVIDUAL shift plus a confirmed booking.

    Shift, booking and the status change commit together or not at all. The
    instructor's other shifts are not checked for overlap on this path, the
    student's confirmed bookings are.
    """
    ensure_capability(actor, "request.decide")
    req = await _get_request_for_decision(db, actor, request_id)

    shift = Shift(
        instructor_id=req.instructor_id,
        start=req.start,
        end=req.end,
        type=ShiftType.INDIVIDUAL.value,
        location=Location.ONLINE.value,
        is_published=True,
    )
    try:
        await lock_user(db, req.student_id)
        if await find_student_overlap(db, req.student_id, req.start, req.end):
            raise StudentOverlapError("The student already has a lesson at this time")
        db.add(shift)
        await db.flush()
        booking = Booking(
            shift_id=shift.id,
            student_id=req.student_id,
            status=BookingStatus.CONFIRMED.value,
            meeting_type=MeetingType.ONLINE.value,
            exclusive_shift_id=shift.id,
        )
        db.add(booking)
        req.status = RequestStatus.APPROVED.value
        req.shift_id = shift.id
        req.decided_at = clock.now()
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        raise SlotTakenError("This slot is already booked") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("request_approve_failed request_id=%s", request_id)
        raise StorageError("Failed to approve schedule request") from e

    logger.info(
        "request_approved request_id=%s shift_id=%s booking_id=%s",
        req.id, shift.id, booking.id,
    )
    (dispatcher or get_dispatcher()).dispatch(
        templates.request_approved(
            student_name=req.student.full_name,
            student_email=req.student.email,
            instructor_name=req.instructor.full_name,
            instructor_email=req.instructor.email,
            start=req.start,
        )
    )
    return ScheduleRequestApproval(request=_request_to_response(req), shift_id=shift.id, booking_id=booking.id)


async def reject_request(
    db: AsyncSession,
    actor: CurrentUser,
    request_id: UUID,
    clock: TimeProvider = default_time_provider,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> ScheduleRequestResponse:
    ensure_capability(actor, "request.decide")
    req = await _get_request_for_decision(db, actor, request_id)
    req.status = RequestStatus.REJECTED.value
    req.decided_at = clock.now()
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to reject schedule request") from e

    logger.info("request_rejected request_id=%s instructor_id=%s", req.id, actor.id)
    (dispatcher or get_dispatcher()).dispatch(templates.request_rejected(student_email=req.student.email))
    return _request_to_response(req)


async def list_pending_requests(db: AsyncSession, actor: CurrentUser) -> List[ScheduleRequestResponse]:
    """PENDING requests addressed to the instructor, newest first."""
    ensure_capability(actor, "request.list_pending")
    result = await db.execute(
        select(ScheduleRequest)
        .options(selectinload(ScheduleRequest.student), selectinload(ScheduleRequest.instructor))
        .where(
            ScheduleRequest.instructor_id == actor.id,
            ScheduleRequest.status == RequestStatus.PENDING.value,
        )
        .order_by(ScheduleRequest.created_at.desc())
    )
    return [_request_to_response(r) for r in result.scalars().all()]


async def list_my_requests(db: AsyncSession, actor: CurrentUser) -> List[ScheduleRequestResponse]:
    ensure_capability(actor, "request.list_own")
    result = await db.execute(
        select(ScheduleRequest)
        .options(selectinload(ScheduleRequest.student), selectinload(ScheduleRequest.instructor))
        .where(ScheduleRequest.student_id == actor.id)
        .order_by(ScheduleRequest.created_at.desc())
    )
    return [_request_to_response(r) for r in result.scalars().all()]
