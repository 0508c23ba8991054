from collections import defaultdict
from typing import Dict, List
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.models import User
from lessonbook.auth.rbac import ensure_capability
from lessonbook.auth.schemas import CurrentUser
from lessonbook.core.enums import BookingStatus, UserRole
from lessonbook.core.models import Booking, Report, Shift
from lessonbook.core.time_provider import TimeProvider, default_time_provider, start_of_local_month, start_of_local_year

from .schemas import InstructorStats, InstructorSummary, UserListItem


async def _instructor_stats(db: AsyncSession, clock: TimeProvider) -> Dict[UUID, InstructorStats]:
    now = clock.now()
    month_start = start_of_local_month(now)
    next_month_start = start_of_local_month(now, months_back=-1)
    year_start = start_of_local_year(now)
    stats: Dict[UUID, InstructorStats] = defaultdict(InstructorStats)

    published = await db.execute(
        select(Shift.instructor_id, func.count(Shift.id))
        .where(
            Shift.is_published.is_(True),
            Shift.start >= month_start,
            Shift.start < next_month_start,
        )
        .group_by(Shift.instructor_id)
    )
    for instructor_id, count in published.all():
        stats[instructor_id].month_published = count

    completed = await db.execute(
        select(Shift.instructor_id, Shift.start)
        .join(Booking, Booking.shift_id == Shift.id)
        .outerjoin(Report, Report.booking_id == Booking.id)
        .where(
            Booking.status == BookingStatus.CONFIRMED.value,
            or_(Report.id.isnot(None), Shift.start <= now),
        )
    )
    for instructor_id, start in completed.all():
        s = stats[instructor_id]
        s.total_completed += 1
        if start >= year_start:
            s.year_completed += 1
        if month_start <= start < next_month_start:
            s.month_completed += 1
    return stats


async def list_users(
    db: AsyncSession,
    actor: CurrentUser,
    clock: TimeProvider = default_time_provider,
) -> List[UserListItem]:
    """Non-archived users, newest first; instructors carry lesson statistics."""
    ensure_capability(actor, "user.list")
    result = await db.execute(
        select(User).where(User.archived_at.is_(None)).order_by(User.created_at.desc())
    )
    users = result.scalars().all()
    stats = await _instructor_stats(db, clock)
    return [
        UserListItem(
            id=u.id,
            full_name=u.full_name,
            email=u.email,
            role=u.role,
            bio=u.bio,
            is_active=u.is_active,
            created_at=u.created_at,
            stats=stats.get(u.id, InstructorStats()) if u.role == UserRole.INSTRUCTOR.value else None,
        )
        for u in users
    ]


async def list_instructors(db: AsyncSession, actor: CurrentUser) -> List[InstructorSummary]:
    ensure_capability(actor, "user.list_instructors")
    result = await db.execute(
        select(User)
        .where(
            User.role == UserRole.INSTRUCTOR.value,
            User.is_active.is_(True),
            User.archived_at.is_(None),
        )
        .order_by(User.full_name.asc())
    )
    return [InstructorSummary.model_validate(u) for u in result.scalars().all()]
