from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import ServiceError
from lessonbook.db.session import get_db

from .schemas import AdmissionResultResponse, AdmissionResultsReplace
from . import service

router = APIRouter(prefix="/api/v1/students/{student_id}/admission-results", tags=["admission-results"])


@router.get(
    "",
    response_model=List[AdmissionResultResponse],
    dependencies=[Depends(check_capability("admission.read"))],
)
async def get_admission_results(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AdmissionResultResponse]:
    try:
        return await service.get_admission_results(db, current_user, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "",
    response_model=List[AdmissionResultResponse],
    dependencies=[Depends(check_capability("admission.replace"))],
)
async def replace_admission_results(
    student_id: UUID,
    payload: AdmissionResultsReplace,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AdmissionResultResponse]:
    """Replace all of a student's admission results with the submitted list."""
    try:
        return await service.replace_admission_results(db, current_user, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
