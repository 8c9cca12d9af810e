# salon_scheduler/services/scheduling/availability.py
"""
Free start times per staff member.

Walks each open day in [date_from, date_to] (org-local dates) from opening
to closing in steps of duration + buffer, keeping candidates that do not
overlap a non-cancelled appointment of that staff member.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from .conflicts import CANCELLED, intervals_overlap
from .opening_hours import OpeningHoursRow, day_window, load_opening_hours
from .tz import as_utc, local_minute_to_utc, same_local_day, to_db


@dataclass(frozen=True)
class FreeSlot:
    start: datetime
    end: datetime
    staff_id: int


def find_free_slots(
    hours: list[OpeningHoursRow],
    tz_name: str,
    busy_by_staff: dict[int, list[tuple[datetime, datetime]]],
    staff_ids: list[int],
    duration_min: int,
    date_from: date,
    date_to: date,
    buffer_min: int = 0,
) -> list[FreeSlot]:
    """Pure slot search over already-loaded busy intervals."""
    step = timedelta(minutes=duration_min + buffer_min)
    length = timedelta(minutes=duration_min)
    out: list[FreeSlot] = []

    day = date_from
    while day <= date_to:
        window = day_window(hours, tz_name, day)
        if not window.is_closed and window.close_min - window.open_min >= duration_min:
            day_open = local_minute_to_utc(day, window.open_min, tz_name)
            day_close = local_minute_to_utc(day, window.close_min, tz_name)

            for staff_id in staff_ids:
                busy = busy_by_staff.get(staff_id, [])
                cursor = day_open
                while cursor + length <= day_close:
                    end = cursor + length
                    blocked = any(
                        intervals_overlap(cursor, end, b_start, b_end)
                        for b_start, b_end in busy
                    )
                    if not blocked and same_local_day(cursor, end, tz_name):
                        out.append(FreeSlot(start=cursor, end=end, staff_id=staff_id))
                    cursor += step
        day += timedelta(days=1)

    out.sort(key=lambda s: (s.start, s.staff_id))
    return out


def find_availability(
    db: Session,
    org_id: int,
    tz_name: str,
    duration_min: int,
    date_from: date,
    date_to: date,
    staff_id: int | None = None,
    buffer_min: int = 0,
) -> list[FreeSlot]:
    """Load hours, staff and bookings for the org and run the slot search."""
    from ...models.generated import Appointments, Staff

    hours = load_opening_hours(db, org_id)

    staff_query = db.query(Staff).filter(Staff.org_id == org_id, Staff.is_active == 1)
    if staff_id is not None:
        staff_query = staff_query.filter(Staff.id == staff_id)
    staff_ids = [s.id for s in staff_query.order_by(Staff.id).all()]
    if not staff_ids:
        return []

    range_start = local_minute_to_utc(date_from, 0, tz_name)
    range_end = local_minute_to_utc(date_to + timedelta(days=1), 0, tz_name)

    appts = (
        db.query(Appointments)
        .filter(
            Appointments.org_id == org_id,
            Appointments.staff_id.in_(staff_ids),
            Appointments.status != CANCELLED,
            Appointments.starts_at < to_db(range_end),
            Appointments.ends_at > to_db(range_start),
        )
        .all()
    )

    busy: dict[int, list[tuple[datetime, datetime]]] = {}
    for a in appts:
        busy.setdefault(a.staff_id, []).append((as_utc(a.starts_at), as_utc(a.ends_at)))

    return find_free_slots(
        hours, tz_name, busy, staff_ids, duration_min, date_from, date_to, buffer_min,
    )
