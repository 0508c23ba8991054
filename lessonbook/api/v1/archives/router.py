from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import UserRole
from lessonbook.core.exceptions import ServiceError
from lessonbook.core.time_provider import TimeProvider, get_time_provider
from lessonbook.db.session import get_db

from .schemas import ArchiveAccessGrant, ArchiveAccessResponse, ArchiveAccessRevokeResponse, ArchivedUserResponse, UserArchiveResponse
from . import service

router = APIRouter(prefix="/api/v1/archives", tags=["archives"])


@router.post(
    "/users/{user_id}",
    response_model=UserArchiveResponse,
    dependencies=[Depends(check_capability("user.archive"))],
)
async def archive_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    clock: TimeProvider = Depends(get_time_provider),
) -> UserArchiveResponse:
    """Archive a user; they can no longer log in or be booked."""
    try:
        return await service.archive_user(db, current_user, user_id, clock)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/users/{user_id}",
    response_model=UserArchiveResponse,
    dependencies=[Depends(check_capability("user.archive"))],
)
async def unarchive_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> UserArchiveResponse:
    try:
        return await service.unarchive_user(db, current_user, user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/users",
    response_model=List[ArchivedUserResponse],
    dependencies=[Depends(check_capability("archive.search"))],
)
async def search_archived_users(
    role: Optional[UserRole] = None,
    year: Optional[int] = None,
    school: Optional[str] = Query(None, description="Substring of an admission result's school name"),
    status: Optional[str] = Query(None, description="Admission status; PASSED matches both pass stages"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ArchivedUserResponse]:
    return await service.search_archived_users(db, current_user, role=role, year=year, school=school, status=status)


@router.get(
    "/licensed",
    response_model=List[ArchivedUserResponse],
    dependencies=[Depends(check_capability("archive.licensed"))],
)
async def list_licensed_archived_students(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ArchivedUserResponse]:
    """Archived students the current instructor may view."""
    return await service.list_licensed_archived_students(db, current_user)


@router.post(
    "/access",
    response_model=ArchiveAccessResponse,
    status_code=http_status.HTTP_201_CREATED,
    dependencies=[Depends(check_capability("archive.manage_access"))],
)
async def grant_archive_access(
    payload: ArchiveAccessGrant,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ArchiveAccessResponse:
    try:
        return await service.grant_archive_access(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/access/{instructor_id}/{student_id}",
    response_model=ArchiveAccessRevokeResponse,
    dependencies=[Depends(check_capability("archive.manage_access"))],
)
async def revoke_archive_access(
    instructor_id: UUID,
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ArchiveAccessRevokeResponse:
    try:
        return await service.revoke_archive_access(db, current_user, instructor_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/access/{student_id}",
    response_model=List[ArchiveAccessResponse],
    dependencies=[Depends(check_capability("archive.manage_access"))],
)
async def list_archive_access(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ArchiveAccessResponse]:
    """Instructors currently allowed to view this archived student."""
    return await service.list_archive_access(db, current_user, student_id)
