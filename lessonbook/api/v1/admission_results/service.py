import logging
from typing import List
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.api.v1.students.service import get_visible_student
from lessonbook.auth.rbac import ensure_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import StorageError
from lessonbook.core.models import AdmissionResult

from .schemas import AdmissionResultResponse, AdmissionResultsReplace

logger = logging.getLogger(__name__)


async def _list_results(db: AsyncSession, student_id: UUID) -> List[AdmissionResultResponse]:
    result = await db.execute(
        select(AdmissionResult)
        .where(AdmissionResult.student_id == student_id)
        .order_by(AdmissionResult.rank.asc(), AdmissionResult.created_at.asc())
    )
    return [AdmissionResultResponse.model_validate(r) for r in result.scalars().all()]


async def get_admission_results(
    db: AsyncSession,
    actor: CurrentUser,
    student_id: UUID,
) -> List[AdmissionResultResponse]:
    ensure_capability(actor, "admission.read")
    await get_visible_student(db, actor, student_id)
    return await _list_results(db, student_id)


async def replace_admission_results(
    db: AsyncSession,
    actor: CurrentUser,
    student_id: UUID,
    payload: AdmissionResultsReplace,
) -> List[AdmissionResultResponse]:
    """Replace the student's whole list; delete and re-insert commit together."""
    ensure_capability(actor, "admission.replace")
    await get_visible_student(db, actor, student_id)

    try:
        await db.execute(delete(AdmissionResult).where(AdmissionResult.student_id == student_id))
        db.add_all(
            [
                AdmissionResult(
                    student_id=student_id,
                    school_name=item.school_name.strip(),
                    department=(item.department or "").strip() or None,
                    rank=item.rank,
                    status=item.status.value,
                )
                for item in payload.results
            ]
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("admission_results_replace_failed student_id=%s", student_id)
        raise StorageError("Failed to save admission results") from e

    logger.info(
        "admission_results_replaced student_id=%s count=%s by=%s",
        student_id, len(payload.results), actor.id,
    )
    return await _list_results(db, student_id)
