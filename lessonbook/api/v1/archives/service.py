"""Archive lifecycle of users and instructor access to archived students.

Archiving is a reversible logical delete: the row and everything it owns
stay in place, the user simply stops being able to log in or be booked.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lessonbook.api.v1.admission_results.schemas import AdmissionResultResponse
from lessonbook.auth.models import User
from lessonbook.auth.rbac import ensure_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import PASSED_STATUSES, UserRole
from lessonbook.core.exceptions import NotFoundError, SelfArchiveError, StorageError
from lessonbook.core.models import AdmissionResult, ArchiveAccess
from lessonbook.core.time_provider import TimeProvider, default_time_provider, to_local

from .schemas import ArchiveAccessGrant, ArchiveAccessResponse, ArchiveAccessRevokeResponse, ArchivedUserResponse, UserArchiveResponse

logger = logging.getLogger(__name__)

# Search bucket that expands to several stored statuses
PASSED_BUCKET = "PASSED"


def _archived_to_response(user: User) -> ArchivedUserResponse:
    return ArchivedUserResponse(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        role=user.role,
        archived_at=user.archived_at,
        archive_year=user.archive_year,
        admission_results=[AdmissionResultResponse.model_validate(r) for r in user.admission_results],
    )


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def _commit(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError(message) from e


async def archive_user(
    db: AsyncSession,
    actor: CurrentUser,
    user_id: UUID,
    clock: TimeProvider = default_time_provider,
) -> UserArchiveResponse:
    ensure_capability(actor, "user.archive")
    if user_id == actor.id:
        raise SelfArchiveError("You cannot archive your own account")
    user = await _get_user(db, user_id)
    now = clock.now()
    user.archived_at = now
    user.archive_year = to_local(now).year
    user.is_active = False
    await _commit(db, "Failed to archive user")
    logger.info("user_archived user_id=%s year=%s by=%s", user.id, user.archive_year, actor.id)
    return UserArchiveResponse.model_validate(user)


async def unarchive_user(db: AsyncSession, actor: CurrentUser, user_id: UUID) -> UserArchiveResponse:
    """Restore login eligibility. A user who was never archived is returned unchanged."""
    ensure_capability(actor, "user.archive")
    user = await _get_user(db, user_id)
    if user.archived_at is None and user.is_active:
        return UserArchiveResponse.model_validate(user)
    user.archived_at = None
    user.archive_year = None
    user.is_active = True
    await _commit(db, "Failed to unarchive user")
    logger.info("user_unarchived user_id=%s by=%s", user.id, actor.id)
    return UserArchiveResponse.model_validate(user)


async def grant_archive_access(
    db: AsyncSession,
    actor: CurrentUser,
    payload: ArchiveAccessGrant,
) -> ArchiveAccessResponse:
    """Let an instructor read an archived student's records. Granting twice returns the existing grant."""
    ensure_capability(actor, "archive.manage_access")
    instructor = await db.get(User, payload.instructor_id)
    if not instructor or instructor.role != UserRole.INSTRUCTOR.value:
        raise NotFoundError("Instructor not found")
    student = await db.get(User, payload.student_id)
    if not student or student.role != UserRole.STUDENT.value:
        raise NotFoundError("Student not found")

    existing = await _find_grant(db, payload.instructor_id, payload.student_id)
    if existing is None:
        existing = ArchiveAccess(instructor_id=payload.instructor_id, student_id=payload.student_id)
        db.add(existing)
        try:
            await db.commit()
        except IntegrityError:
            # Concurrent grant of the same pair; the other writer's row stands
            await db.rollback()
            existing = await _find_grant(db, payload.instructor_id, payload.student_id)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError("Failed to grant archive access") from e
        else:
            await db.refresh(existing)
            logger.info(
                "archive_access_granted instructor_id=%s student_id=%s by=%s",
                payload.instructor_id, payload.student_id, actor.id,
            )
    return ArchiveAccessResponse(
        id=existing.id,
        instructor_id=existing.instructor_id,
        instructor_name=instructor.full_name,
        student_id=existing.student_id,
        created_at=existing.created_at,
    )


async def _find_grant(db: AsyncSession, instructor_id: UUID, student_id: UUID) -> Optional[ArchiveAccess]:
    result = await db.execute(
        select(ArchiveAccess).where(
            ArchiveAccess.instructor_id == instructor_id,
            ArchiveAccess.student_id == student_id,
        )
    )
    return result.scalar_one_or_none()


async def revoke_archive_access(
    db: AsyncSession,
    actor: CurrentUser,
    instructor_id: UUID,
    student_id: UUID,
) -> ArchiveAccessRevokeResponse:
    """Remove a grant; revoking a grant that does not exist succeeds with revoked=False."""
    ensure_capability(actor, "archive.manage_access")
    try:
        result = await db.execute(
            delete(ArchiveAccess).where(
                ArchiveAccess.instructor_id == instructor_id,
                ArchiveAccess.student_id == student_id,
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to revoke archive access") from e
    revoked = (result.rowcount or 0) > 0
    if revoked:
        logger.info("archive_access_revoked instructor_id=%s student_id=%s by=%s", instructor_id, student_id, actor.id)
    return ArchiveAccessRevokeResponse(success=True, revoked=revoked)


async def list_archive_access(db: AsyncSession, actor: CurrentUser, student_id: UUID) -> List[ArchiveAccessResponse]:
    ensure_capability(actor, "archive.manage_access")
    result = await db.execute(
        select(ArchiveAccess)
        .options(selectinload(ArchiveAccess.instructor))
        .where(ArchiveAccess.student_id == student_id)
        .order_by(ArchiveAccess.created_at.asc())
    )
    return [
        ArchiveAccessResponse(
            id=a.id,
            instructor_id=a.instructor_id,
            instructor_name=a.instructor.full_name if a.instructor else None,
            student_id=a.student_id,
            created_at=a.created_at,
        )
        for a in result.scalars().all()
    ]


async def search_archived_users(
    db: AsyncSession,
    actor: CurrentUser,
    role: Optional[UserRole] = None,
    year: Optional[int] = None,
    school: Optional[str] = None,
    status: Optional[str] = None,
) -> List[ArchivedUserResponse]:
    """Archived users, newest archive first.

    school and status both match against the same admission result row, so
    school="Tokyo" with status="PASSED" finds students who passed at a
    Tokyo school, not students who passed somewhere and applied to Tokyo.
    """
    ensure_capability(actor, "archive.search")
    stmt = (
        select(User)
        .options(selectinload(User.admission_results))
        .where(User.archived_at.isnot(None))
    )
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    if year is not None:
        stmt = stmt.where(User.archive_year == year)

    result_filters = []
    if school and school.strip():
        result_filters.append(AdmissionResult.school_name.ilike(f"%{school.strip()}%"))
    if status:
        if status == PASSED_BUCKET:
            result_filters.append(AdmissionResult.status.in_(PASSED_STATUSES))
        else:
            result_filters.append(AdmissionResult.status == status)
    if result_filters:
        stmt = stmt.where(User.admission_results.any(and_(*result_filters)))

    result = await db.execute(stmt.order_by(User.archived_at.desc()))
    return [_archived_to_response(u) for u in result.scalars().all()]


async def list_licensed_archived_students(db: AsyncSession, actor: CurrentUser) -> List[ArchivedUserResponse]:
    """Archived students the acting instructor has been granted access to."""
    ensure_capability(actor, "archive.licensed")
    result = await db.execute(
        select(User)
        .options(selectinload(User.admission_results))
        .join(ArchiveAccess, ArchiveAccess.student_id == User.id)
        .where(ArchiveAccess.instructor_id == actor.id, User.archived_at.isnot(None))
        .order_by(User.archived_at.desc())
    )
    return [_archived_to_response(u) for u in result.scalars().all()]
