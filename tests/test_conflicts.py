from salon_scheduler.models.generated import Appointments
from salon_scheduler.services.scheduling.conflicts import find_overlapping, has_overlap, intervals_overlap
from salon_scheduler.services.scheduling.tz import to_db

from .conftest import local


def add_appt(db, org_id, staff_id, start, end, status="SCHEDULED"):
    appt = Appointments(
        org_id=org_id,
        staff_id=staff_id,
        customer_name="Client",
        starts_at=to_db(start),
        ends_at=to_db(end),
        status=status,
    )
    db.add(appt)
    db.commit()
    return appt


class TestIntervalsOverlap:
    def test_half_open(self):
        a, b, c = local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30), local(2024, 3, 4, 11)
        assert not intervals_overlap(a, b, b, c)
        assert intervals_overlap(a, c, b, c)
        assert intervals_overlap(a, c, a, b)


class TestHasOverlap:
    def test_touching_bookings_do_not_conflict(self, db, seed):
        add_appt(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))
        assert not has_overlap(db, seed.org.id, seed.s1.id, None, local(2024, 3, 4, 10, 30), local(2024, 3, 4, 11))
        assert not has_overlap(db, seed.org.id, seed.s1.id, None, local(2024, 3, 4, 9, 30), local(2024, 3, 4, 10))

    def test_overlap_for_same_staff_only(self, db, seed):
        add_appt(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))
        assert has_overlap(db, seed.org.id, seed.s1.id, None, local(2024, 3, 4, 10, 15), local(2024, 3, 4, 10, 45))
        assert not has_overlap(db, seed.org.id, seed.s2.id, None, local(2024, 3, 4, 10, 15), local(2024, 3, 4, 10, 45))

    def test_cancelled_rows_are_ignored(self, db, seed):
        add_appt(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30), status="CANCELLED")
        assert not has_overlap(db, seed.org.id, seed.s1.id, None, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))

    def test_excluded_row_is_ignored(self, db, seed):
        appt = add_appt(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))
        assert not has_overlap(db, seed.org.id, seed.s1.id, appt.id, local(2024, 3, 4, 10, 10), local(2024, 3, 4, 10, 40))

    def test_unassigned_never_conflicts(self, db, seed):
        add_appt(db, seed.org.id, None, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))
        assert not has_overlap(db, seed.org.id, None, None, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))

    def test_find_overlapping_returns_rows_in_start_order(self, db, seed):
        late = add_appt(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 11), local(2024, 3, 4, 11, 30))
        early = add_appt(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 10), local(2024, 3, 4, 10, 30))
        rows = find_overlapping(db, seed.org.id, seed.s1.id, local(2024, 3, 4, 9), local(2024, 3, 4, 12))
        assert [r.id for r in rows] == [early.id, late.id]
