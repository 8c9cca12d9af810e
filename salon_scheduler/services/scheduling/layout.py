# salon_scheduler/services/scheduling/layout.py
"""
Calendar grid layout.

Turns appointments + opening hours into pixel-positioned blocks for the
week view (7 day columns, Monday first) and the day view (one column per
staff member, plus "_unassigned").

Pure: output depends only on the arguments. "Now" is passed in, never read.

Vertical math is done on the org wall clock:
  top    = minutes_from_midnight(start) - window_start_min
  height = wall-clock minutes between start and end (DST-safe)
both scaled by px_per_slot / slot_minutes.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Sequence

from .config import SchedulingConfig, get_scheduling_config
from .opening_hours import (
    FALLBACK_WEEK_CLOSE_MIN,
    FALLBACK_WEEK_OPEN_MIN,
    OpeningHoursRow,
    day_window,
    week_window,
)
from .tz import elapsed_local_minutes, local_date, minutes_from_midnight, week_start

UNASSIGNED_COLUMN = "_unassigned"


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"


@dataclass(frozen=True)
class CalendarWindow:
    mode: ViewMode
    anchor: date

    @property
    def days(self) -> tuple[date, ...]:
        if self.mode == ViewMode.DAY:
            return (self.anchor,)
        first = week_start(self.anchor)
        return tuple(first + timedelta(days=i) for i in range(7))


@dataclass(frozen=True)
class CalendarEntry:
    """Appointment as seen by the layout engine."""
    id: int
    starts_at: datetime
    ends_at: datetime
    customer_name: str
    staff_id: int | None = None
    staff_name: str | None = None
    service_id: int | None = None
    service_name: str | None = None
    source: str = "manual"


@dataclass(frozen=True)
class Block:
    id: int
    column: str
    top_offset: float
    height: float
    staff_id: int | None
    service_id: int | None
    starts_at_iso: str
    ends_at_iso: str
    display_title: str
    display_subtitle: str
    staff_name: str
    color_index: int
    color_class: str
    origin_tag: str


@dataclass(frozen=True)
class ShadedRegion:
    column: str
    top_offset: float
    height: float
    kind: str  # "off_hours" | "closed"


@dataclass(frozen=True)
class CalendarLayout:
    mode: ViewMode
    days: tuple[date, ...]
    window_start_min: int
    window_end_min: int
    all_closed: bool
    grid_height: float
    columns: tuple[str, ...]
    blocks: tuple[Block, ...]
    shading: tuple[ShadedRegion, ...]
    now_offset: float | None = None
    now_column: str | None = None


# ── Helpers ──────────────────────────────────────────────────────────────


def color_index_for_name(name: str, palette_size: int) -> int:
    """Stable palette bucket: sum of code points modulo palette size."""
    return sum(ord(ch) for ch in name) % palette_size


def origin_tag(source: str | None) -> str:
    src = (source or "").lower()
    if src.startswith("google-busy:"):
        return "Google busy block"
    if src.startswith("manual"):
        return "Manual"
    return "Online booking"


def resolve_window(
    hours: Sequence[OpeningHoursRow],
    tz_name: str,
    window: CalendarWindow,
) -> tuple[int, int, bool]:
    """(window_start_min, window_end_min, all_closed) for the displayed range."""
    if window.mode == ViewMode.WEEK:
        ww = week_window(hours, tz_name, window.days[0])
        return ww.open_min, ww.close_min, ww.all_closed

    dw = day_window(hours, tz_name, window.anchor)
    if dw.is_closed:
        return FALLBACK_WEEK_OPEN_MIN, FALLBACK_WEEK_CLOSE_MIN, True
    return dw.open_min, dw.close_min, False


def _column_for(entry: CalendarEntry, mode: ViewMode, day: date, staff_columns: set[str]) -> str:
    if mode == ViewMode.WEEK:
        return day.isoformat()
    key = str(entry.staff_id) if entry.staff_id is not None else UNASSIGNED_COLUMN
    return key if key in staff_columns else UNASSIGNED_COLUMN


def _make_block(
    entry: CalendarEntry,
    column: str,
    mode: ViewMode,
    tz_name: str,
    window_start_min: int,
    config: SchedulingConfig,
) -> Block:
    top_min = max(0, minutes_from_midnight(entry.starts_at, tz_name) - window_start_min)
    duration_min = max(
        config.min_duration_minutes,
        elapsed_local_minutes(entry.starts_at, entry.ends_at, tz_name),
    )

    fallback_staff = "Staff" if mode == ViewMode.WEEK else "Unassigned"
    staff_name = entry.staff_name or fallback_staff
    service_name = entry.service_name or "Service"
    if mode == ViewMode.WEEK:
        subtitle = f"{service_name} • {staff_name}"
    else:
        subtitle = service_name

    color_index = color_index_for_name(staff_name, len(config.palette))

    return Block(
        id=entry.id,
        column=column,
        top_offset=config.minutes_to_px(top_min),
        height=max(config.min_block_px, config.minutes_to_px(duration_min)),
        staff_id=entry.staff_id,
        service_id=entry.service_id,
        starts_at_iso=entry.starts_at.isoformat(),
        ends_at_iso=entry.ends_at.isoformat(),
        display_title=entry.customer_name,
        display_subtitle=subtitle,
        staff_name=staff_name,
        color_index=color_index,
        color_class=config.palette[color_index],
        origin_tag=origin_tag(entry.source),
    )


def _shading_for_column(
    column: str,
    hours: Sequence[OpeningHoursRow],
    tz_name: str,
    day: date,
    window_start_min: int,
    window_end_min: int,
    config: SchedulingConfig,
) -> list[ShadedRegion]:
    span = window_end_min - window_start_min
    dw = day_window(hours, tz_name, day)
    if dw.is_closed:
        return [ShadedRegion(column, 0.0, config.minutes_to_px(span), "closed")]

    regions = []
    if dw.open_min > window_start_min:
        regions.append(ShadedRegion(
            column, 0.0, config.minutes_to_px(dw.open_min - window_start_min), "off_hours",
        ))
    if dw.close_min < window_end_min:
        regions.append(ShadedRegion(
            column,
            config.minutes_to_px(dw.close_min - window_start_min),
            config.minutes_to_px(window_end_min - dw.close_min),
            "off_hours",
        ))
    return regions


# ── Public API ───────────────────────────────────────────────────────────


def layout_blocks(
    appointments: Iterable[CalendarEntry],
    opening_hours: Sequence[OpeningHoursRow],
    tz_name: str,
    window: CalendarWindow,
    staff_columns: Sequence[str] | None = None,
    config: SchedulingConfig | None = None,
) -> list[Block]:
    """Blocks for every appointment whose local start date is displayed."""
    config = config or get_scheduling_config()
    window_start_min, _, _ = resolve_window(opening_hours, tz_name, window)
    displayed = set(window.days)
    known_staff = set(staff_columns) if staff_columns is not None else None

    entries = sorted(appointments, key=lambda e: (e.starts_at, e.id))
    blocks = []
    for entry in entries:
        day = local_date(entry.starts_at, tz_name)
        if day not in displayed:
            continue
        if known_staff is None:
            columns = {str(entry.staff_id)} if entry.staff_id is not None else set()
        else:
            columns = known_staff
        column = _column_for(entry, window.mode, day, columns)
        blocks.append(_make_block(entry, column, window.mode, tz_name, window_start_min, config))
    return blocks


def build_calendar_layout(
    appointments: Iterable[CalendarEntry],
    opening_hours: Sequence[OpeningHoursRow],
    tz_name: str,
    window: CalendarWindow,
    now: datetime | None = None,
    staff_columns: Sequence[str] | None = None,
    config: SchedulingConfig | None = None,
) -> CalendarLayout:
    """
    Full view model: window bounds, columns, blocks, shading and now marker.

    Args:
        staff_columns: Day view column keys (str(staff_id)) for active staff,
                       in display order. Ignored for the week view.
        now: Current instant; the marker is shown only when its org-local date
             is displayed.
    """
    config = config or get_scheduling_config()
    hours = list(opening_hours)
    window_start_min, window_end_min, all_closed = resolve_window(hours, tz_name, window)

    blocks = layout_blocks(appointments, hours, tz_name, window, staff_columns, config)

    if window.mode == ViewMode.WEEK:
        columns = [d.isoformat() for d in window.days]
        column_days = {d.isoformat(): d for d in window.days}
    else:
        if staff_columns is not None:
            columns = list(staff_columns)
        else:
            columns = sorted(
                {b.column for b in blocks if b.column != UNASSIGNED_COLUMN}, key=int,
            )
        if any(b.column == UNASSIGNED_COLUMN for b in blocks):
            columns.append(UNASSIGNED_COLUMN)
        column_days = {c: window.anchor for c in columns}

    shading = []
    for column in columns:
        shading.extend(_shading_for_column(
            column, hours, tz_name, column_days[column],
            window_start_min, window_end_min, config,
        ))

    now_offset = None
    now_column = None
    if now is not None:
        today = local_date(now, tz_name)
        if today in window.days:
            rel_min = max(0, minutes_from_midnight(now, tz_name) - window_start_min)
            now_offset = config.minutes_to_px(rel_min)
            if window.mode == ViewMode.WEEK:
                now_column = today.isoformat()

    return CalendarLayout(
        mode=window.mode,
        days=window.days,
        window_start_min=window_start_min,
        window_end_min=window_end_min,
        all_closed=all_closed,
        grid_height=config.minutes_to_px(window_end_min - window_start_min),
        columns=tuple(columns),
        blocks=tuple(blocks),
        shading=tuple(shading),
        now_offset=now_offset,
        now_column=now_column,
    )
