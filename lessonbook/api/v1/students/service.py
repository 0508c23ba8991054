from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.api.v1.admission_results.schemas import AdmissionResultResponse
from lessonbook.api.v1.bookings.service import detail_options, to_detail
from lessonbook.auth.models import User
from lessonbook.auth.rbac import ensure_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import UserRole
from lessonbook.core.exceptions import NotFoundError, UnauthorizedError
from lessonbook.core.models import AdmissionResult, ArchiveAccess, Booking, Shift

from .schemas import StudentRecordsResponse, StudentSummary


async def has_archive_access(db: AsyncSession, instructor_id: UUID, student_id: UUID) -> bool:
    result = await db.execute(
        select(ArchiveAccess.id).where(
            ArchiveAccess.instructor_id == instructor_id,
            ArchiveAccess.student_id == student_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_visible_student(db: AsyncSession, actor: CurrentUser, student_id: UUID) -> User:
    """Load a student the actor may read, or raise.

    Students see only themselves and admins see everyone. Instructors see
    active students, and archived ones only through an ArchiveAccess grant.
    """
    if actor.is_student and actor.id != student_id:
        raise UnauthorizedError("You can only view your own records")
    student = await db.get(User, student_id)
    if not student or student.role != UserRole.STUDENT.value:
        raise NotFoundError("Student not found")
    if actor.is_instructor and student.archived_at is not None:
        if not await has_archive_access(db, actor.id, student_id):
            raise UnauthorizedError("You do not have access to this archived student")
    return student


async def get_student_records(db: AsyncSession, actor: CurrentUser, student_id: UUID) -> StudentRecordsResponse:
    ensure_capability(actor, "records.read")
    student = await get_visible_student(db, actor, student_id)

    bookings = await db.execute(
        select(Booking)
        .options(*detail_options())
        .join(Shift, Booking.shift_id == Shift.id)
        .where(Booking.student_id == student_id)
        .order_by(Shift.start.desc())
    )
    results = await db.execute(
        select(AdmissionResult)
        .where(AdmissionResult.student_id == student_id)
        .order_by(AdmissionResult.rank.asc(), AdmissionResult.created_at.asc())
    )
    return StudentRecordsResponse(
        student=StudentSummary.model_validate(student),
        bookings=[to_detail(b) for b in bookings.scalars().all()],
        admission_results=[AdmissionResultResponse.model_validate(r) for r in results.scalars().all()],
    )
