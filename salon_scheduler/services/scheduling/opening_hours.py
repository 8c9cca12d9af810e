# salon_scheduler/services/scheduling/opening_hours.py
"""
Opening hours per weekday (0 = Sunday .. 6 = Saturday).

Rows with close_min <= open_min mean "closed that day".
An org with no rows gets Mon-Fri 09:00-18:00, weekends closed.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from .tz import elapsed_local_minutes, local_date, minutes_from_midnight, weekday_of_date

DEFAULT_OPEN_MIN = 9 * 60
DEFAULT_CLOSE_MIN = 18 * 60
# week grid when every displayed day is closed
FALLBACK_WEEK_OPEN_MIN = 9 * 60
FALLBACK_WEEK_CLOSE_MIN = 17 * 60


@dataclass(frozen=True)
class OpeningHoursRow:
    weekday: int
    open_min: int
    close_min: int


@dataclass(frozen=True)
class DayWindow:
    open_min: int
    close_min: int

    @property
    def is_closed(self) -> bool:
        return self.close_min <= self.open_min


@dataclass(frozen=True)
class WeekWindow:
    open_min: int
    close_min: int
    all_closed: bool


def default_hours() -> list[OpeningHoursRow]:
    rows = [
        OpeningHoursRow(weekday=wd, open_min=DEFAULT_OPEN_MIN, close_min=DEFAULT_CLOSE_MIN)
        for wd in range(1, 6)
    ]
    rows.append(OpeningHoursRow(weekday=6, open_min=0, close_min=0))
    rows.append(OpeningHoursRow(weekday=0, open_min=0, close_min=0))
    return rows


def hours_for_weekday(hours: Iterable[OpeningHoursRow], weekday: int) -> DayWindow:
    for row in hours:
        if row.weekday == weekday:
            return DayWindow(open_min=row.open_min, close_min=row.close_min)
    return DayWindow(open_min=DEFAULT_OPEN_MIN, close_min=DEFAULT_CLOSE_MIN)


def _as_local_date(day: date | datetime, tz_name: str) -> date:
    if isinstance(day, datetime):
        return local_date(day, tz_name)
    return day


def day_window(hours: Iterable[OpeningHoursRow], tz_name: str, day: date | datetime) -> DayWindow:
    """
    Open/close window for one calendar date.

    `day` is an org-local date; an instant is first converted to its org-local date.
    """
    return hours_for_weekday(hours, weekday_of_date(_as_local_date(day, tz_name)))


def week_window(
    hours: Iterable[OpeningHoursRow],
    tz_name: str,
    week_start_date: date | datetime,
) -> WeekWindow:
    """Min open / max close across 7 days starting at week_start_date, ignoring closed days."""
    hours = list(hours)
    first = _as_local_date(week_start_date, tz_name)

    open_min: int | None = None
    close_min = 0
    for i in range(7):
        window = day_window(hours, tz_name, first + timedelta(days=i))
        if window.is_closed:
            continue
        open_min = window.open_min if open_min is None else min(open_min, window.open_min)
        close_min = max(close_min, window.close_min)

    if open_min is None or close_min <= open_min:
        return WeekWindow(
            open_min=FALLBACK_WEEK_OPEN_MIN,
            close_min=FALLBACK_WEEK_CLOSE_MIN,
            all_closed=True,
        )
    return WeekWindow(open_min=open_min, close_min=close_min, all_closed=False)


def is_within_opening_hours(
    hours: Iterable[OpeningHoursRow],
    tz_name: str,
    start: datetime,
    end: datetime,
) -> bool:
    """True when [start, end) sits inside the open window of start's local day."""
    window = day_window(hours, tz_name, start)
    if window.is_closed:
        return False
    start_min = minutes_from_midnight(start, tz_name)
    end_min = start_min + elapsed_local_minutes(start, end, tz_name)
    return window.open_min <= start_min and end_min <= window.close_min


def load_opening_hours(db: Session, org_id: int) -> list[OpeningHoursRow]:
    """Configured rows for the org, or the default schedule when none exist."""
    from ...models.generated import OpeningHours

    rows = (
        db.query(OpeningHours)
        .filter(OpeningHours.org_id == org_id)
        .order_by(OpeningHours.weekday)
        .all()
    )
    if not rows:
        return default_hours()
    return [
        OpeningHoursRow(weekday=r.weekday, open_min=r.open_min, close_min=r.close_min)
        for r in rows
    ]
