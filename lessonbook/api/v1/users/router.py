from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.time_provider import TimeProvider, get_time_provider
from lessonbook.db.session import get_db

from .schemas import InstructorSummary, UserListItem
from . import service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get(
    "",
    response_model=List[UserListItem],
    dependencies=[Depends(check_capability("user.list"))],
)
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> List[UserListItem]:
    """All non-archived users. Instructors include this month's and overall lesson counts."""
    return await service.list_users(db, current_user, clock)


@router.get(
    "/instructors",
    response_model=List[InstructorSummary],
    dependencies=[Depends(check_capability("user.list_instructors"))],
)
async def list_instructors(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[InstructorSummary]:
    return await service.list_instructors(db, current_user)
