# barberbook/core.py

"""
Time & duration primitives.

Instants are stored as naive UTC datetimes. Anything coming in from a caller
goes through `parse_instant` / `local_slot_start` first; anything going out is
re-tagged as UTC by the response schemas.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from barberbook.config import get_settings
from barberbook.errors import Internal, InvalidRequest


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open intervals [a_start, a_end) and [b_start, b_end) share an instant."""
    return a_start < b_end and b_start < a_end


def reference_tz() -> ZoneInfo:
    name = get_settings().TIMEZONE
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        raise Internal(f"Unknown timezone configured: {name}")


def to_utc_naive(value: datetime) -> datetime:
    # naive values are wall-clock time in the reference timezone
    if value.tzinfo is None:
        value = value.replace(tzinfo=reference_tz())
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_instant(value: Union[str, datetime, None]) -> datetime:
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if not value or not isinstance(value, str):
        raise InvalidRequest("Invalid date provided.")
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidRequest("Invalid date provided.")
    return to_utc_naive(parsed)


def parse_day(value: Union[str, date, None]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise InvalidRequest("Date is required.")
    try:
        # accepts both "2025-03-01" and full ISO timestamps
        return date.fromisoformat(value[:10])
    except ValueError:
        raise InvalidRequest("Invalid date provided.")


def parse_hhmm(value: Optional[str]) -> time:
    try:
        hours, minutes = (int(part) for part in (value or "").split(":"))
        return time(hours, minutes)
    except ValueError:
        raise InvalidRequest("Invalid date or time format")


def local_slot_start(day: Union[str, date], hhmm: str) -> datetime:
    """Wall-clock `day` + `HH:MM` in the reference timezone, as naive UTC."""
    local = datetime.combine(parse_day(day), parse_hhmm(hhmm), tzinfo=reference_tz())
    return to_utc_naive(local)


def local_day_bounds(day: Union[str, date]) -> tuple[datetime, datetime]:
    """Inclusive [start of day, end of day] in the reference timezone, as naive UTC."""
    tz = reference_tz()
    start = datetime.combine(parse_day(day), time.min, tzinfo=tz)
    end = datetime.combine(parse_day(day), time.max, tzinfo=tz)
    return to_utc_naive(start), to_utc_naive(end)


def local_hhmm(value: datetime) -> str:
    return as_utc(value).astimezone(reference_tz()).strftime("%H:%M")


def service_minutes(duration: Optional[int]) -> int:
    if not duration:
        return get_settings().DEFAULT_SERVICE_MINUTES
    return duration


def total_duration(durations: Iterable[Optional[int]]) -> int:
    return sum(service_minutes(d) for d in durations)


def compute_end_time(start: datetime, durations: Iterable[Optional[int]]) -> datetime:
    minutes = total_duration(durations)
    if minutes <= 0:
        raise InvalidRequest("Booking duration must be positive")
    return start + timedelta(minutes=minutes)


def minute_buckets(start: datetime, end: datetime) -> list[datetime]:
    """Every minute bucket touched by [start, end)."""
    bucket = start.replace(second=0, microsecond=0)
    buckets = []
    while bucket < end:
        buckets.append(bucket)
        bucket += timedelta(minutes=1)
    return buckets
