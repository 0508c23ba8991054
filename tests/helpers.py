from datetime import date, datetime, timezone
from itertools import count
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lessonbook.auth.models import User
from lessonbook.auth.schemas import CurrentUser
from lessonbook.auth.security import create_access_token, hash_password
from lessonbook.core.config import settings
from lessonbook.core.enums import BookingStatus, Location, MeetingType, ShiftType, UserRole
from lessonbook.core.models import Booking, Shift
from lessonbook.core.time_provider import resolve_interval
from lessonbook.notifications.notifier import OutboundEmail


# Monday 2026-03-02 09:00 in Asia/Tokyo
NOW = datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc)
PASSWORD = "Password123"

_seq = count(1)


class RecordingNotifier:
    """Collects outgoing mail; optionally fails every delivery."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[OutboundEmail] = []
        self.fail = fail

    async def notify(self, to: str, subject: str, body: str) -> bool:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append(OutboundEmail(to=to, subject=subject, body=body))
        return True


async def make_user(
    db: AsyncSession,
    role: UserRole = UserRole.STUDENT,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    **fields,
) -> User:
    n = next(_seq)
    fields.setdefault("is_active", True)
    user = User(
        full_name=full_name or f"{role.value.title()} {n}",
        email=email or f"{role.value.lower()}{n}@example.com",
        password_hash=hash_password(PASSWORD),
        role=role.value,
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_admin(db: AsyncSession) -> User:
    return await make_user(db, UserRole.ADMIN, email=settings.admin_email, full_name="Admin")


async def make_shift(
    db: AsyncSession,
    instructor: User,
    lesson_date: date,
    start_time: str,
    end_time: Optional[str] = None,
    type: ShiftType = ShiftType.INDIVIDUAL,
    location: Location = Location.ONLINE,
    is_published: bool = True,
) -> Shift:
    start, end = resolve_interval(lesson_date, start_time, end_time, type.value)
    shift = Shift(
        instructor_id=instructor.id,
        start=start,
        end=end,
        type=type.value,
        location=location.value,
        is_published=is_published,
    )
    db.add(shift)
    await db.commit()
    await db.refresh(shift)
    return shift


def actor(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, role=user.role)


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(
        subject={"sub": str(user.id), "user_id": str(user.id), "role": user.role}
    )
    return {"Authorization": f"Bearer {token}"}


async def make_booking(
    db: AsyncSession,
    shift: Shift,
    student: User,
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    exclusive = status == BookingStatus.CONFIRMED and shift.type == ShiftType.INDIVIDUAL.value
    booking = Booking(
        shift_id=shift.id,
        student_id=student.id,
        status=status.value,
        meeting_type=MeetingType.ONLINE.value,
        exclusive_shift_id=shift.id if exclusive else None,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking
