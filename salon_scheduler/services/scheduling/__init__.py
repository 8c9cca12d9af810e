# salon_scheduler/services/scheduling/__init__.py
"""
Scheduling core.

tz            - org wall-clock math (pure)
opening_hours - weekday windows, day/week aggregates
conflicts     - staff overlap detection
layout        - calendar grid blocks (pure)
availability  - free start times per staff member
"""

from .config import SchedulingConfig, get_scheduling_config
from .conflicts import find_overlapping, has_overlap, intervals_overlap
from .opening_hours import (
    DayWindow,
    OpeningHoursRow,
    WeekWindow,
    day_window,
    default_hours,
    hours_for_weekday,
    is_within_opening_hours,
    load_opening_hours,
    week_window,
)
from .layout import (
    Block,
    CalendarEntry,
    CalendarLayout,
    CalendarWindow,
    ViewMode,
    build_calendar_layout,
    layout_blocks,
)
from .availability import FreeSlot, find_availability

__all__ = [
    "SchedulingConfig",
    "get_scheduling_config",
    "find_overlapping",
    "has_overlap",
    "intervals_overlap",
    "DayWindow",
    "OpeningHoursRow",
    "WeekWindow",
    "day_window",
    "default_hours",
    "hours_for_weekday",
    "is_within_opening_hours",
    "load_opening_hours",
    "week_window",
    "Block",
    "CalendarEntry",
    "CalendarLayout",
    "CalendarWindow",
    "ViewMode",
    "build_calendar_layout",
    "layout_blocks",
    "FreeSlot",
    "find_availability",
]
