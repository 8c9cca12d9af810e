# salon_scheduler/services/calendar_view.py
"""
Loads what the layout engine needs for one calendar window: the org's
opening hours, active staff columns and the non-cancelled appointments
whose org-local start date is displayed.
"""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session, joinedload

from ..models.generated import Appointments, Staff
from .booking.context import OrgContext
from .booking.status import AppointmentStatus
from .scheduling.layout import CalendarEntry, CalendarLayout, CalendarWindow, build_calendar_layout
from .scheduling.opening_hours import load_opening_hours
from .scheduling.tz import as_utc, local_minute_to_utc, to_db


def load_calendar_entries(db: Session, org_id: int, tz_name: str, window: CalendarWindow) -> list[CalendarEntry]:
    days = window.days
    range_start = local_minute_to_utc(days[0], 0, tz_name)
    range_end = local_minute_to_utc(days[-1] + timedelta(days=1), 0, tz_name)

    rows = (
        db.query(Appointments)
        .options(joinedload(Appointments.staff), joinedload(Appointments.service))
        .filter(
            Appointments.org_id == org_id,
            Appointments.status != AppointmentStatus.CANCELLED.value,
            Appointments.starts_at >= to_db(range_start),
            Appointments.starts_at < to_db(range_end),
        )
        .order_by(Appointments.starts_at, Appointments.id)
        .all()
    )

    return [
        CalendarEntry(
            id=a.id,
            starts_at=as_utc(a.starts_at),
            ends_at=as_utc(a.ends_at),
            customer_name=a.customer_name,
            staff_id=a.staff_id,
            staff_name=a.staff.name if a.staff else None,
            service_id=a.service_id,
            service_name=a.service.name if a.service else None,
            source=a.source,
        )
        for a in rows
    ]


def active_staff_columns(db: Session, org_id: int) -> list[str]:
    staff = (
        db.query(Staff.id)
        .filter(Staff.org_id == org_id, Staff.is_active == 1)
        .order_by(Staff.id)
        .all()
    )
    return [str(staff_id) for (staff_id,) in staff]


def load_calendar_layout(
    db: Session,
    ctx: OrgContext,
    window: CalendarWindow,
    now: datetime | None = None,
) -> CalendarLayout:
    return build_calendar_layout(
        load_calendar_entries(db, ctx.org_id, ctx.timezone, window),
        load_opening_hours(db, ctx.org_id),
        ctx.timezone,
        window,
        now=now,
        staff_columns=active_staff_columns(db, ctx.org_id),
    )
