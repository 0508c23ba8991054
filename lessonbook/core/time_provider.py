"""Wall-clock to instant conversion.

Everything stored or compared is an aware UTC ``datetime``. Local dates and
times only appear at the edges (form input, "end of day" rules, month
boundaries) and are interpreted in ``settings.app_timezone``.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

from lessonbook.core.config import settings
from lessonbook.core.enums import ShiftType


APP_ZONEINFO = ZoneInfo(settings.app_timezone)

DEFAULT_LESSON_DURATION = timedelta(hours=1)
LONG_LESSON_DURATION = timedelta(hours=2)
LONG_LESSON_TYPES = (ShiftType.GROUP.value, ShiftType.SPECIAL.value)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedTimeProvider(TimeProvider):
    """Clock pinned to one instant; used by tests and replays."""

    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = ensure_aware(frozen_dt)

    def now(self) -> datetime:
        return self._frozen_dt

    def advance(self, delta: timedelta) -> None:
        self._frozen_dt = self._frozen_dt + delta


default_time_provider = TimeProvider()


def get_time_provider() -> TimeProvider:
    return default_time_provider


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Naive datetime not allowed in business logic")
    return dt


def parse_local_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a YYYY-MM-DD date string, got {type(value).__name__}")
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def parse_local_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected an HH:MM time string, got {type(value).__name__}")
    v = value.strip()
    if len(v) == 5:  # HH:MM
        return datetime.strptime(v, "%H:%M").time()
    return datetime.strptime(v, "%H:%M:%S").time()


def to_instant(
    local_date: Union[str, date],
    local_time: Union[str, time],
    tz: Optional[ZoneInfo] = None,
) -> datetime:
    """Combine a local calendar date and time of day into an aware UTC instant."""
    zone = tz or APP_ZONEINFO
    local = datetime.combine(parse_local_date(local_date), parse_local_time(local_time)).replace(tzinfo=zone)
    return local.astimezone(timezone.utc)


def to_local(instant: datetime) -> datetime:
    return ensure_aware(instant).astimezone(APP_ZONEINFO)


def default_duration(shift_type: Optional[str]) -> timedelta:
    if shift_type in LONG_LESSON_TYPES:
        return LONG_LESSON_DURATION
    return DEFAULT_LESSON_DURATION


def resolve_interval(
    local_date: Union[str, date],
    start_time: Union[str, time],
    end_time: Optional[Union[str, time]],
    shift_type: Optional[str] = None,
) -> Tuple[datetime, datetime]:
    """Return (start, end) instants; a missing end time falls back to the type's default length."""
    start = to_instant(local_date, start_time)
    if end_time is None:
        return start, start + default_duration(shift_type)
    return start, to_instant(local_date, end_time)


def end_of_local_day(instant: datetime) -> datetime:
    """Last representable moment of the instant's local calendar day, as UTC."""
    local = to_local(instant)
    last = datetime.combine(local.date(), time(23, 59, 59, 999999)).replace(tzinfo=APP_ZONEINFO)
    return last.astimezone(timezone.utc)


def start_of_local_month(instant: datetime, months_back: int = 0) -> datetime:
    """First local midnight of the month, months_back months before the instant's month (negative goes forward)."""
    local = to_local(instant)
    year, month = local.year, local.month - months_back
    while month < 1:
        month += 12
        year -= 1
    while month > 12:
        month -= 12
        year += 1
    first = datetime(year, month, 1, tzinfo=APP_ZONEINFO)
    return first.astimezone(timezone.utc)


def start_of_local_year(instant: datetime) -> datetime:
    local = to_local(instant)
    return datetime(local.year, 1, 1, tzinfo=APP_ZONEINFO).astimezone(timezone.utc)


def format_local(instant: datetime, fmt: str = "%Y/%m/%d %H:%M") -> str:
    return to_local(instant).strftime(fmt)
