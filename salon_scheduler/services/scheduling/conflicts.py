# salon_scheduler/services/scheduling/conflicts.py
"""
Staff double-booking detection.

Overlap is half-open: [start, end) intervals, so a booking ending at 10:00
does not conflict with one starting at 10:00. Unassigned bookings
(staff_id is None) never conflict with anything.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from .tz import to_db

CANCELLED = "CANCELLED"


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    return a_start < b_end and a_end > b_start


def find_overlapping(
    db: Session,
    org_id: int,
    staff_id: int,
    start: datetime,
    end: datetime,
    exclude_id: int | None = None,
) -> list:
    """Non-cancelled appointments of (org_id, staff_id) overlapping [start, end)."""
    from ...models.generated import Appointments

    query = db.query(Appointments).filter(
        Appointments.org_id == org_id,
        Appointments.staff_id == staff_id,
        Appointments.status != CANCELLED,
        Appointments.starts_at < to_db(end),
        Appointments.ends_at > to_db(start),
    )
    if exclude_id is not None:
        query = query.filter(Appointments.id != exclude_id)

    return query.order_by(Appointments.starts_at).all()


def has_overlap(
    db: Session,
    org_id: int,
    staff_id: int | None,
    exclude_id: int | None,
    start: datetime,
    end: datetime,
) -> bool:
    if staff_id is None:
        return False
    return bool(find_overlapping(db, org_id, staff_id, start, end, exclude_id))
