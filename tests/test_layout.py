import random
from datetime import date, datetime, timedelta

from salon_scheduler.services.scheduling.config import PALETTE, SchedulingConfig
from salon_scheduler.services.scheduling.layout import (
    CalendarEntry,
    CalendarWindow,
    ViewMode,
    build_calendar_layout,
    color_index_for_name,
    layout_blocks,
    origin_tag,
)
from salon_scheduler.services.scheduling.opening_hours import OpeningHoursRow, default_hours
from salon_scheduler.services.scheduling.tz import UTC

from .conftest import TZ, local

MONDAY = date(2024, 3, 4)
WEEK = CalendarWindow(mode=ViewMode.WEEK, anchor=date(2024, 3, 6))
CONFIG = SchedulingConfig()


def entry(id, start, end, staff_id=1, staff_name="Anna", **kwargs):
    return CalendarEntry(
        id=id,
        starts_at=start,
        ends_at=end,
        customer_name=kwargs.pop("customer_name", f"Client {id}"),
        staff_id=staff_id,
        staff_name=staff_name,
        **kwargs,
    )


class TestWeekLayout:
    def test_block_geometry(self):
        e = entry(1, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30), service_id=7, service_name="Cut")

        [block] = layout_blocks([e], default_hours(), TZ, WEEK, config=CONFIG)

        # window opens 09:00; 64px per 30 minutes
        assert block.top_offset == 128.0
        assert block.height == 64.0
        assert block.column == "2024-03-04"
        assert block.display_title == "Client 1"
        assert block.display_subtitle == "Cut • Anna"
        assert block.starts_at_iso == local(2024, 3, 4, 10).isoformat()
        assert (block.staff_id, block.service_id) == (1, 7)

    def test_days_are_monday_first(self):
        assert WEEK.days[0] == MONDAY
        assert WEEK.days[-1] == date(2024, 3, 10)

    def test_appointments_outside_week_are_dropped(self):
        inside = entry(1, local(2024, 3, 10, 10), local(2024, 3, 10, 10, 30))
        outside = entry(2, local(2024, 3, 11, 10), local(2024, 3, 11, 10, 30))
        blocks = layout_blocks([inside, outside], default_hours(), TZ, WEEK, config=CONFIG)
        assert [b.id for b in blocks] == [1]

    def test_short_blocks_have_minimum_height(self):
        e = entry(1, local(2024, 3, 4, 10), local(2024, 3, 4, 10))
        [block] = layout_blocks([e], default_hours(), TZ, WEEK, config=CONFIG)
        assert block.height == CONFIG.min_block_px

    def test_before_window_clamps_to_top(self):
        e = entry(1, local(2024, 3, 4, 7), local(2024, 3, 4, 8))
        [block] = layout_blocks([e], default_hours(), TZ, WEEK, config=CONFIG)
        assert block.top_offset == 0.0


class TestDeterminism:
    def test_same_input_same_output(self):
        entries = [
            entry(i, local(2024, 3, 4 + i % 5, 9 + i % 8), local(2024, 3, 4 + i % 5, 9 + i % 8, 45),
                  staff_id=i % 3, staff_name=["Anna", "Ben", "Cleo"][i % 3])
            for i in range(1, 20)
        ]
        shuffled = entries[:]
        random.Random(42).shuffle(shuffled)

        first = layout_blocks(entries, default_hours(), TZ, WEEK, config=CONFIG)
        second = layout_blocks(shuffled, default_hours(), TZ, WEEK, config=CONFIG)

        assert first == second
        assert [(b.starts_at_iso, b.id) for b in first] == sorted((b.starts_at_iso, b.id) for b in first)


class TestColors:
    def test_color_is_stable_per_name(self):
        assert color_index_for_name("Anna", 7) == 382 % 7
        entries = [
            entry(1, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30), staff_name="Anna"),
            entry(2, local(2024, 3, 5, 10), local(2024, 3, 5, 10, 30), staff_name="Anna"),
        ]
        blocks = layout_blocks(entries, default_hours(), TZ, WEEK, config=CONFIG)
        assert blocks[0].color_index == blocks[1].color_index == 382 % 7
        assert blocks[0].color_class == PALETTE[382 % 7]

    def test_unassigned_uses_fallback_name(self):
        e = entry(1, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30), staff_id=None, staff_name=None)
        [week_block] = layout_blocks([e], default_hours(), TZ, WEEK, config=CONFIG)
        assert week_block.staff_name == "Staff"

        day = CalendarWindow(mode=ViewMode.DAY, anchor=MONDAY)
        [day_block] = layout_blocks([e], default_hours(), TZ, day, config=CONFIG)
        assert day_block.staff_name == "Unassigned"
        assert day_block.column == "_unassigned"


class TestDaylightSaving:
    def test_height_follows_wall_clock_on_dst_day(self):
        # 2024-04-07: NZDT ends at 03:00 local
        day = CalendarWindow(mode=ViewMode.DAY, anchor=date(2024, 4, 7))
        hours = [OpeningHoursRow(wd, 480, 1200) for wd in range(7)]
        e = entry(1, local(2024, 4, 7, 10), local(2024, 4, 7, 10, 30))

        [block] = layout_blocks([e], hours, TZ, day, staff_columns=["1"], config=CONFIG)

        assert block.height == 64.0
        assert block.top_offset == CONFIG.minutes_to_px(120)

    def test_height_uses_wall_clock_not_utc_delta(self):
        # 01:30 NZDT -> 02:30 NZST spans two real hours, one wall-clock hour
        day = CalendarWindow(mode=ViewMode.DAY, anchor=date(2024, 4, 7))
        hours = [OpeningHoursRow(wd, 0, 600) for wd in range(7)]
        e = entry(1, datetime(2024, 4, 6, 12, 30, tzinfo=UTC), datetime(2024, 4, 6, 14, 30, tzinfo=UTC))

        [block] = layout_blocks([e], hours, TZ, day, staff_columns=["1"], config=CONFIG)

        assert block.height == CONFIG.minutes_to_px(60)


class TestCalendarLayout:
    def test_week_columns_and_closed_weekend(self):
        layout = build_calendar_layout([], default_hours(), TZ, WEEK, config=CONFIG)

        assert layout.columns == tuple(d.isoformat() for d in WEEK.days)
        assert (layout.window_start_min, layout.window_end_min, layout.all_closed) == (540, 1080, False)
        assert layout.grid_height == CONFIG.minutes_to_px(540)
        closed = {s.column for s in layout.shading if s.kind == "closed"}
        assert closed == {"2024-03-09", "2024-03-10"}

    def test_off_hours_shading_for_shorter_day(self):
        hours = [
            OpeningHoursRow(1, 540, 1080),
            OpeningHoursRow(2, 600, 960),
            OpeningHoursRow(3, 540, 1080),
            OpeningHoursRow(4, 540, 1080),
            OpeningHoursRow(5, 540, 1080),
            OpeningHoursRow(6, 0, 0),
            OpeningHoursRow(0, 0, 0),
        ]
        layout = build_calendar_layout([], hours, TZ, WEEK, config=CONFIG)

        tuesday = [s for s in layout.shading if s.column == "2024-03-05"]
        assert [(s.top_offset, s.height, s.kind) for s in tuesday] == [
            (0.0, 128.0, "off_hours"),
            (CONFIG.minutes_to_px(420), CONFIG.minutes_to_px(120), "off_hours"),
        ]
        assert not [s for s in layout.shading if s.column == "2024-03-04"]

    def test_all_closed_week_falls_back(self):
        hours = [OpeningHoursRow(wd, 0, 0) for wd in range(7)]
        layout = build_calendar_layout([], hours, TZ, WEEK, config=CONFIG)
        assert (layout.window_start_min, layout.window_end_min, layout.all_closed) == (540, 1020, True)
        assert all(s.kind == "closed" for s in layout.shading)
        assert len(layout.shading) == 7

    def test_now_marker_only_when_today_displayed(self):
        now = local(2024, 3, 6, 12)
        layout = build_calendar_layout([], default_hours(), TZ, WEEK, now=now, config=CONFIG)
        assert layout.now_offset == CONFIG.minutes_to_px(180)
        assert layout.now_column == "2024-03-06"

        later = build_calendar_layout([], default_hours(), TZ, WEEK, now=now + timedelta(days=7), config=CONFIG)
        assert later.now_offset is None and later.now_column is None

    def test_day_view_columns(self):
        day = CalendarWindow(mode=ViewMode.DAY, anchor=MONDAY)
        entries = [
            entry(1, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30), staff_id=2, staff_name="Ben"),
            entry(2, local(2024, 3, 4, 11), local(2024, 3, 4, 11, 30), staff_id=None, staff_name=None),
            entry(3, local(2024, 3, 5, 11), local(2024, 3, 5, 11, 30), staff_id=1),
        ]

        layout = build_calendar_layout(entries, default_hours(), TZ, day, staff_columns=["1", "2"], config=CONFIG)

        assert layout.columns == ("1", "2", "_unassigned")
        assert [(b.id, b.column) for b in layout.blocks] == [(1, "2"), (2, "_unassigned")]
        assert layout.blocks[0].display_subtitle == "Service"

    def test_closed_day_view(self):
        day = CalendarWindow(mode=ViewMode.DAY, anchor=date(2024, 3, 9))
        layout = build_calendar_layout([], default_hours(), TZ, day, staff_columns=["1"], config=CONFIG)
        assert layout.all_closed
        assert (layout.window_start_min, layout.window_end_min) == (540, 1020)
        assert [s.kind for s in layout.shading] == ["closed"]


class TestOriginTag:
    def test_tags(self):
        assert origin_tag("google-busy:abc") == "Google busy block"
        assert origin_tag("manual") == "Manual"
        assert origin_tag("manual:token:x") == "Manual"
        assert origin_tag("duplicate") == "Online booking"
        assert origin_tag(None) == "Online booking"
