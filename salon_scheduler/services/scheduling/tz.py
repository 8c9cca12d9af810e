# salon_scheduler/services/scheduling/tz.py
"""
Organization wall-clock math.

Every function takes the UTC instant and the IANA timezone name explicitly.
Nothing here reads the process timezone or the current time.

Conventions:
  - instants are timezone-aware datetimes (naive input is treated as UTC)
  - weekday index is 0 = Sunday .. 6 = Saturday
"""

from datetime import date, datetime, time, timedelta
from functools import lru_cache

import pytz

UTC = pytz.UTC
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
MINUTES_PER_DAY = 24 * 60


@lru_cache(maxsize=64)
def get_tz(tz_name: str) -> pytz.BaseTzInfo:
    """Resolve an IANA timezone name. Raises pytz.UnknownTimeZoneError."""
    return pytz.timezone(tz_name)


def is_valid_timezone(tz_name: str) -> bool:
    try:
        get_tz(tz_name)
    except (pytz.UnknownTimeZoneError, AttributeError):
        return False
    return True


def as_utc(instant: datetime) -> datetime:
    """Attach UTC to a naive datetime (as read from the store), or convert."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def to_db(instant: datetime) -> datetime:
    """Naive UTC for storage."""
    return as_utc(instant).replace(tzinfo=None)


def to_local(instant: datetime, tz_name: str) -> datetime:
    return as_utc(instant).astimezone(get_tz(tz_name))


def local_date(instant: datetime, tz_name: str) -> date:
    return to_local(instant, tz_name).date()


def minutes_from_midnight(instant: datetime, tz_name: str) -> int:
    """Wall-clock minutes since 00:00 in tz_name."""
    local = to_local(instant, tz_name)
    return local.hour * 60 + local.minute


def weekday_of_date(day: date) -> int:
    """Calendar weekday of a date, 0 = Sunday."""
    return (day.weekday() + 1) % 7


def weekday_index(instant: datetime, tz_name: str) -> int:
    """Weekday of the instant in tz_name, 0 = Sunday .. 6 = Saturday."""
    return weekday_of_date(local_date(instant, tz_name))


def same_local_day(a: datetime, b: datetime, tz_name: str) -> bool:
    return local_date(a, tz_name) == local_date(b, tz_name)


def localize(naive: datetime, tz_name: str) -> datetime:
    """
    Interpret a naive wall-clock datetime in tz_name and return the UTC instant.

    Ambiguous and non-existent wall times (DST transitions) resolve to the
    standard-time interpretation.
    """
    tz = get_tz(tz_name)
    return tz.normalize(tz.localize(naive, is_dst=False)).astimezone(UTC)


def local_minute_to_utc(day: date, minute_of_day: int, tz_name: str) -> datetime:
    """UTC instant for `minute_of_day` on the local calendar date `day`."""
    naive = datetime.combine(day, time.min) + timedelta(minutes=minute_of_day)
    return localize(naive, tz_name)


def day_bounds_utc(instant: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """
    UTC instants of 00:00:00 and 23:59:59.999 of the local day containing instant.
    """
    day = local_date(instant, tz_name)
    start = localize(datetime.combine(day, time.min), tz_name)
    end = localize(datetime.combine(day, time(23, 59, 59, 999000)), tz_name)
    return start, end


def snap_to_grid(instant: datetime, step_minutes: int = 5) -> datetime:
    """Round to the nearest multiple of step_minutes; ties round up."""
    step_us = step_minutes * 60 * 1_000_000
    elapsed_us = (as_utc(instant) - EPOCH) // timedelta(microseconds=1)
    snapped_us = ((elapsed_us + step_us // 2) // step_us) * step_us
    return EPOCH + timedelta(microseconds=snapped_us)


def elapsed_local_minutes(start: datetime, end: datetime, tz_name: str) -> int:
    """
    Wall-clock minutes between two instants as read on the org clock.

    Day delta in local calendar days plus the difference of minutes-from-midnight,
    so a DST shift inside the span does not change the rendered length.
    """
    local_start = to_local(start, tz_name)
    local_end = to_local(end, tz_name)
    day_delta = (local_end.date() - local_start.date()).days
    return (
        day_delta * MINUTES_PER_DAY
        + (local_end.hour * 60 + local_end.minute)
        - (local_start.hour * 60 + local_start.minute)
    )


def parse_instant(value, tz_name: str) -> datetime | None:
    """
    Parse a start time.

    Accepts a datetime, a full-offset ISO timestamp ("2024-03-04T09:07:00+13:00",
    "...Z") or a naive local timestamp ("2024-03-04T09:07", read in tz_name).
    Returns an aware UTC datetime or None when unparsable or too close to
    the edge of the datetime range to convert.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if raw.endswith("Z") or raw.endswith("z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None

    try:
        if parsed.tzinfo is None:
            return localize(parsed, tz_name)
        return parsed.astimezone(UTC)
    except OverflowError:
        return None


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())
