# salon_scheduler/schemas/calendar.py
"""
Pydantic schemas for calendar layout and availability.
"""

from datetime import date, datetime
from pydantic import BaseModel, Field

from ..services.scheduling.layout import ViewMode


class BlockRead(BaseModel):
    """One positioned appointment block."""
    id: int
    column: str
    top_offset: float
    height: float
    staff_id: int | None = None
    service_id: int | None = None
    starts_at_iso: str
    ends_at_iso: str
    display_title: str
    display_subtitle: str
    staff_name: str
    color_index: int
    color_class: str
    origin_tag: str

    model_config = {"from_attributes": True}


class ShadedRegionRead(BaseModel):
    column: str
    top_offset: float
    height: float
    kind: str = Field(description="off_hours | closed")

    model_config = {"from_attributes": True}


class CalendarLayoutResponse(BaseModel):
    """Full calendar view model for a day or week."""
    mode: ViewMode
    days: list[date]
    timezone: str

    window_start_min: int
    window_end_min: int
    all_closed: bool
    grid_height: float

    columns: list[str]
    blocks: list[BlockRead]
    shading: list[ShadedRegionRead]

    now_offset: float | None = None
    now_column: str | None = None

    model_config = {"from_attributes": True}


class FreeSlotRead(BaseModel):
    start: datetime
    end: datetime
    staff_id: int

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    date_from: date
    date_to: date
    slots: list[FreeSlotRead]
