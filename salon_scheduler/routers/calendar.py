# salon_scheduler/routers/calendar.py
"""
Calendar API endpoints.

GET /calendar/layout       - positioned blocks, shading and now marker for a day/week
GET /calendar/availability - free start times per staff member
"""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_booking_service, get_org_context
from ..http_errors import unwrap
from ..schemas.calendar import (
    AvailabilityResponse,
    BlockRead,
    CalendarLayoutResponse,
    FreeSlotRead,
    ShadedRegionRead,
)
from ..services.booking import OrgContext
from ..services.booking.commands import BookingService, utc_now
from ..services.calendar_view import load_calendar_layout
from ..services.scheduling import CalendarWindow, ViewMode
from ..services.scheduling.tz import local_date

router = APIRouter(prefix="/calendar", tags=["calendar"])

MAX_AVAILABILITY_DAYS = 31


@router.get("/layout", response_model=CalendarLayoutResponse)
def get_calendar_layout(
    view: ViewMode = ViewMode.WEEK,
    date: date | None = None,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
):
    now = utc_now()
    anchor = date or local_date(now, ctx.timezone)
    layout = load_calendar_layout(db, ctx, CalendarWindow(mode=view, anchor=anchor), now=now)

    return CalendarLayoutResponse(
        mode=layout.mode,
        days=list(layout.days),
        timezone=ctx.timezone,
        window_start_min=layout.window_start_min,
        window_end_min=layout.window_end_min,
        all_closed=layout.all_closed,
        grid_height=layout.grid_height,
        columns=list(layout.columns),
        blocks=[BlockRead.model_validate(b) for b in layout.blocks],
        shading=[ShadedRegionRead.model_validate(s) for s in layout.shading],
        now_offset=layout.now_offset,
        now_column=layout.now_column,
    )


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    date_from: date,
    date_to: date | None = None,
    service_id: int | None = None,
    duration_min: int | None = Query(None, ge=1),
    staff_id: int | None = None,
    buffer_min: int = Query(0, ge=0),
    service: BookingService = Depends(get_booking_service),
):
    if service_id is None and duration_min is None:
        raise HTTPException(status_code=422, detail="service_id or duration_min is required")

    date_to = date_to or date_from
    if date_to - date_from > timedelta(days=MAX_AVAILABILITY_DAYS):
        raise HTTPException(status_code=422, detail=f"range is limited to {MAX_AVAILABILITY_DAYS} days")

    slots = unwrap(service.find_availability(
        date_from, date_to,
        service_id=service_id,
        duration_min=duration_min,
        staff_id=staff_id,
        buffer_min=buffer_min,
    ))
    return AvailabilityResponse(
        date_from=date_from,
        date_to=date_to,
        slots=[FreeSlotRead.model_validate(s) for s in slots],
    )
