"""
Seed script to create the single allow-listed ADMIN account.

Run once after the first start (tables are created by the app) with env set:
  ADMIN_EMAIL=admin@yourschool.example
  ADMIN_PASSWORD=YourSecurePassword

Creates users row with role ADMIN for ADMIN_EMAIL, or resets the password and
role of an existing row with that email. Any other ADMIN row is refused at
login, so this is the only way to obtain a working admin.
"""
import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.models import User
from lessonbook.auth.security import hash_password
from lessonbook.core.config import settings
from lessonbook.core.enums import UserRole
from lessonbook.db.session import AsyncSessionLocal, init_models

logger = logging.getLogger(__name__)


async def seed_admin(db: AsyncSession) -> None:
    email = settings.admin_email.strip()
    password = settings.admin_password
    if not password:
        logger.warning("seed_admin_skipped reason=no_password email=%s", email)
        return

    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    admin = result.scalar_one_or_none()
    if not admin:
        admin = User(
            full_name=settings.admin_full_name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        db.add(admin)
        logger.info("seed_admin_created email=%s", email)
    else:
        admin.role = UserRole.ADMIN.value
        admin.password_hash = hash_password(password)
        admin.is_active = True
        admin.archived_at = None
        admin.archive_year = None
        logger.info("seed_admin_updated email=%s", email)

    await db.commit()


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    await init_models()
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
        except Exception:
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())
