from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import ServiceError
from lessonbook.db.session import get_db

from .schemas import StudentRecordsResponse
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get(
    "/{student_id}/records",
    response_model=StudentRecordsResponse,
    dependencies=[Depends(check_capability("records.read"))],
)
async def get_student_records(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentRecordsResponse:
    """Lesson history with reports and admission results for one student."""
    try:
        return await service.get_student_records(db, current_user, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
