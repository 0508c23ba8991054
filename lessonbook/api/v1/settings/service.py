"""Key/value settings edited by the admin."""

import logging

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.rbac import ensure_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.exceptions import ServiceError, StorageError
from lessonbook.core.models import GlobalSetting
from lessonbook.core.models.global_setting import REPORT_DEADLINE_EXTENSION_KEY

from .schemas import SettingResponse, SettingUpsert

logger = logging.getLogger(__name__)


def _parse_non_negative_int(raw: str) -> int:
    value = int(raw.strip())
    if value < 0:
        raise ValueError("negative")
    return value


async def get_setting(db: AsyncSession, actor: CurrentUser, key: str) -> SettingResponse:
    ensure_capability(actor, "settings.read")
    row = await db.get(GlobalSetting, key)
    if not row:
        return SettingResponse(key=key)
    return SettingResponse.model_validate(row)


async def get_setting_value(db: AsyncSession, key: str):
    row = await db.get(GlobalSetting, key)
    return row.value if row else None


async def get_report_extension_hours(db: AsyncSession) -> int:
    """Hours added after the lesson day's end before report submission closes (default 0)."""
    raw = await get_setting_value(db, REPORT_DEADLINE_EXTENSION_KEY)
    if raw is None:
        return 0
    try:
        return _parse_non_negative_int(raw)
    except ValueError:
        logger.warning("invalid_setting key=%s value=%r; using 0", REPORT_DEADLINE_EXTENSION_KEY, raw)
        return 0


async def upsert_setting(
    db: AsyncSession,
    actor: CurrentUser,
    key: str,
    payload: SettingUpsert,
) -> SettingResponse:
    ensure_capability(actor, "settings.update")
    value = payload.value.strip()
    if key == REPORT_DEADLINE_EXTENSION_KEY:
        try:
            _parse_non_negative_int(value)
        except ValueError:
            raise ServiceError(
                f"{REPORT_DEADLINE_EXTENSION_KEY} must be a whole number of hours (0 or more)",
                status.HTTP_400_BAD_REQUEST,
            )
    row = await db.get(GlobalSetting, key)
    if row is None:
        row = GlobalSetting(key=key, value=value, description=payload.description)
        db.add(row)
    else:
        row.value = value
        if payload.description is not None:
            row.description = payload.description
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError("Failed to update setting") from e
    await db.refresh(row)
    logger.info("setting_updated key=%s value=%s by=%s", key, value, actor.id)
    return SettingResponse.model_validate(row)
