from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any

_EPOCH_MILLIS_THRESHOLD = 1e11
_HANDLE_METHODS = ("to_datetime", "ToDatetime", "toDate")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Any) -> datetime | None:
    """Normalize any timestamp shape the store or a sync source may hand us.

    Accepts datetimes, dates, ISO-8601 strings, epoch seconds or millis, and
    lazily-materialized handles exposing ``to_datetime()``/``ToDatetime()``/
    ``toDate()``. Returns ``None`` instead of raising when the value cannot be
    interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw[-1] in "Zz":
            raw = f"{raw[:-1]}+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(raw))
        except ValueError:
            return None

    for method_name in _HANDLE_METHODS:
        method = getattr(value, method_name, None)
        if not callable(method):
            continue
        try:
            materialized = method()
        except Exception:
            return None
        if isinstance(materialized, datetime):
            return ensure_utc(materialized)
        return None
    return None


def to_instant(value: Any, default: datetime | None = None) -> datetime:
    parsed = parse_instant(value)
    if parsed is not None:
        return parsed
    if default is not None:
        return ensure_utc(default)
    return utc_now()


def add_minutes(instant: datetime, minutes: int | float) -> datetime:
    return instant + timedelta(minutes=minutes)


def _as_date(day: date | datetime) -> date:
    if isinstance(day, datetime):
        return ensure_utc(day).date()
    return day


def week_ending_for(day: date | datetime) -> date:
    current = _as_date(day)
    # weekday(): Monday=0 .. Sunday=6
    return current + timedelta(days=(6 - current.weekday()) % 7)


def week_starting_for(day: date | datetime) -> date:
    current = _as_date(day)
    return current - timedelta(days=current.weekday())


def shift_window(day: date | datetime, start: time, end: time) -> tuple[datetime, datetime]:
    current = _as_date(day)
    window_start = datetime.combine(current, start, tzinfo=timezone.utc)
    window_end = datetime.combine(current, end, tzinfo=timezone.utc)
    if window_end <= window_start:
        window_end += timedelta(days=1)
    return window_start, window_end


def day_window(day: date | datetime) -> tuple[datetime, datetime]:
    return shift_window(day, time(0, 0), time(0, 0))
