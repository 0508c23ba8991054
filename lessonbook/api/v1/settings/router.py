from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.dependencies import get_current_user
from lessonbook.auth.rbac import check_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import ServiceError
from lessonbook.db.session import get_db

from .schemas import SettingResponse, SettingUpsert
from . import service

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("/{key}", response_model=SettingResponse)
async def get_setting(
    key: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> SettingResponse:
    """Read one setting; value is null when it was never set."""
    return await service.get_setting(db, current_user, key)


@router.put(
    "/{key}",
    response_model=SettingResponse,
    dependencies=[Depends(check_capability("settings.update"))],
)
async def upsert_setting(
    key: str,
    payload: SettingUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> SettingResponse:
    try:
        return await service.upsert_setting(db, current_user, key, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
