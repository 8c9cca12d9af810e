# salon_scheduler/services/booking/commands.py
"""
Booking command handler.

Every command runs as one synchronous unit: validate -> conflict-check -> write.

Shared validation pipeline (create / update / reschedule / duplicate):
  1. Parse start (full-offset or naive org-local timestamp)   -> InvalidTime
  2. Resolve duration: explicit >= MIN, else service, else DEFAULT
  3. Snap start/end to the 5-minute grid, extend to MIN if collapsed
  4. Same org-local day                                        -> CrossesDayBoundary
  5. Staff/service belong to the org                           -> OwnershipViolation
  6. Opening hours when the org enforces them                  -> OutsideOpeningHours
  7. No overlap for the staff member                           -> BookingConflict
  8. Resolve/create the customer by normalized phone
  9. Persist

Check-then-write is made atomic per staff member with an optimistic
version counter on the staff row: the version is read before the overlap
query and bumped with a conditional UPDATE before commit. If another
transaction won the race, the whole pipeline re-runs and now sees the
competing row.

A repeated client_token is held unique per org by the store, so a racing
replay fails on insert and the retry returns the winner's id.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ...models.generated import Appointments, Customers, Services, Staff
from ...schemas.bookings import (
    AppointmentView,
    BookingCreate,
    BookingReschedule,
    BookingUpdate,
)
from ..events import emit_event
from ..scheduling.availability import FreeSlot, find_availability
from ..scheduling.config import SchedulingConfig, get_scheduling_config
from ..scheduling.conflicts import has_overlap
from ..scheduling.opening_hours import OpeningHoursRow, is_within_opening_hours, load_opening_hours
from ..scheduling.tz import UTC, as_utc, parse_instant, same_local_day, snap_to_grid, to_db
from .context import OrgContext
from .errors import (
    BookingErrorKind,
    BookingRejected,
    BookingResult,
    BulkResult,
    StaffVersionConflict,
    failure,
    success,
)
from .phone import normalize_phone
from .status import AppointmentStatus, can_transition

logger = logging.getLogger(__name__)

TOKEN_SOURCE_PREFIX = "manual:token:"
DUPLICATE_SOURCE = "duplicate"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def token_source(client_token: str) -> str:
    return f"{TOKEN_SOURCE_PREFIX}{client_token}"


def shifted(instant: datetime, delta: timedelta, field: str) -> datetime:
    """instant + delta, rejected as InvalidTime past the datetime range."""
    try:
        return instant + delta
    except OverflowError:
        raise BookingRejected(BookingErrorKind.INVALID_TIME, field)


class BookingService:
    """Booking commands for one organization and actor."""

    def __init__(
        self,
        db: Session,
        ctx: OrgContext,
        config: SchedulingConfig | None = None,
        clock: Clock | None = None,
        emit: Callable[[str, dict], None] | None = None,
    ):
        self.db = db
        self.ctx = ctx
        self.config = config or get_scheduling_config()
        self.clock = clock or utc_now
        self.emit = emit or emit_event
        self._hours: list[OpeningHoursRow] | None = None

    # ── Commands ─────────────────────────────────────────────────────────

    def create_booking(self, data: BookingCreate) -> BookingResult:
        return self._execute("create_booking", lambda: self._create(data))

    def update_booking(self, appointment_id: int, data: BookingUpdate) -> BookingResult:
        return self._execute("update_booking", lambda: self._update(appointment_id, data))

    def reschedule_booking(self, appointment_id: int, data: BookingReschedule) -> BookingResult:
        return self._execute("reschedule_booking", lambda: self._reschedule(appointment_id, data))

    def cancel_booking(self, appointment_id: int, actor: str | None = None) -> BookingResult:
        return self._execute("cancel_booking", lambda: self._cancel(appointment_id, actor))

    def undo_cancel_booking(self, appointment_id: int, window_seconds: int) -> BookingResult:
        return self._execute(
            "undo_cancel_booking", lambda: self._undo_cancel(appointment_id, window_seconds),
        )

    def update_booking_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        actor: str | None = None,
    ) -> BookingResult:
        return self._execute(
            "update_booking_status", lambda: self._update_status(appointment_id, status, actor),
        )

    def duplicate_booking(self, appointment_id: int, days_offset: int = 7) -> BookingResult:
        return self._execute(
            "duplicate_booking", lambda: self._duplicate(appointment_id, days_offset),
        )

    def delete_booking(self, appointment_id: int) -> BookingResult:
        return self._execute("delete_booking", lambda: self._delete(appointment_id))

    def bulk_move_by_minutes(
        self,
        staff_id: int | None,
        range_start,
        range_end,
        minutes: int,
    ) -> BookingResult:
        """
        Shift every in-range, non-cancelled appointment by `minutes`.

        Best effort: rows that would cross a day boundary, leave opening hours
        or collide are skipped and reported; the rest are applied one by one.
        """
        try:
            start, end = self._parse_range(range_start, range_end)
            if staff_id is not None and self._staff_version(staff_id) is None:
                raise BookingRejected(BookingErrorKind.OWNERSHIP_VIOLATION, "staff_id")
            rows = self._in_range(staff_id, start, end)
        except BookingRejected as e:
            return BookingResult(error=e.to_error())
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"bulk_move_by_minutes: store failure, org_id={self.ctx.org_id}")
            return failure(BookingErrorKind.STORE_UNAVAILABLE)

        # move the far end first so rows don't collide with not-yet-moved neighbours
        rows.sort(key=lambda r: (r[1], r[0]), reverse=minutes > 0)
        ids = [row_id for row_id, _ in rows]
        self.db.rollback()

        result = BulkResult()
        for appointment_id in ids:
            outcome = self._execute(
                "bulk_move_by_minutes",
                lambda appointment_id=appointment_id: self._move_one(appointment_id, minutes),
            )
            if outcome.ok:
                result.applied.append(appointment_id)
            else:
                result.skipped.append((appointment_id, outcome.error.kind))

        logger.info(
            f"Bulk move: org_id={self.ctx.org_id}, staff_id={staff_id}, minutes={minutes}, "
            f"applied={len(result.applied)}, skipped={len(result.skipped)}"
        )
        return success(result)

    def bulk_cancel_by_staff(self, staff_id: int, range_start, range_end) -> BookingResult:
        return self._execute(
            "bulk_cancel_by_staff",
            lambda: self._bulk_cancel(staff_id, range_start, range_end),
        )

    def list_events(
        self,
        range_start,
        range_end,
        staff_id: int | None = None,
        include_cancelled: bool = False,
    ) -> BookingResult:
        """Appointments overlapping [range_start, range_end), ordered by start."""
        return self._execute(
            "list_events",
            lambda: self._list(range_start, range_end, staff_id, include_cancelled),
        )

    def find_availability(
        self,
        date_from: date,
        date_to: date,
        service_id: int | None = None,
        duration_min: int | None = None,
        staff_id: int | None = None,
        buffer_min: int = 0,
    ) -> BookingResult:
        """Free start times per active staff member between two org-local dates."""
        def run() -> list[FreeSlot]:
            if date_to < date_from:
                raise BookingRejected(BookingErrorKind.INVALID_TIME, "date_to")
            service = self._get_service(service_id)
            if service_id is not None and service is None:
                raise BookingRejected(BookingErrorKind.OWNERSHIP_VIOLATION, "service_id")
            if staff_id is not None and self._staff_version(staff_id) is None:
                raise BookingRejected(BookingErrorKind.OWNERSHIP_VIOLATION, "staff_id")
            duration = self._resolve_duration(duration_min, service)
            return find_availability(
                self.db, self.ctx.org_id, self.ctx.timezone, duration,
                date_from, date_to, staff_id=staff_id, buffer_min=max(0, buffer_min),
            )

        return self._execute("find_availability", run)

    # ── Command bodies ───────────────────────────────────────────────────

    def _list(self, range_start, range_end, staff_id, include_cancelled) -> list[AppointmentView]:
        start, end = self._parse_range(range_start, range_end)

        query = (
            self.db.query(Appointments)
            .options(joinedload(Appointments.staff), joinedload(Appointments.service))
            .filter(
                Appointments.org_id == self.ctx.org_id,
                Appointments.starts_at < to_db(end),
                Appointments.ends_at > to_db(start),
            )
        )
        if staff_id is not None:
            query = query.filter(Appointments.staff_id == staff_id)
        if not include_cancelled:
            query = query.filter(Appointments.status != AppointmentStatus.CANCELLED.value)

        rows = query.order_by(Appointments.starts_at, Appointments.id).all()
        return [to_view(a) for a in rows]

    def _create(self, data: BookingCreate) -> int:
        if data.client_token:
            existing = self._find_by_token(data.client_token)
            if existing is not None:
                logger.info(
                    f"Booking create replayed: appointment_id={existing.id}, "
                    f"org_id={self.ctx.org_id}, client_token={data.client_token}"
                )
                return existing.id

        start = self._parse_start(data.starts_at)
        service = self._get_service(data.service_id)
        duration = self._resolve_duration(data.duration_min, service)
        start, end = self._build_interval(start, duration)
        seen_version = self._check_slot(start, end, data.staff_id, data.service_id, exclude_id=None)

        customer_name = (data.customer_name or "").strip() or "Client"
        customer_id, phone = self._resolve_customer(customer_name, data.customer_phone)

        appt = Appointments(
            org_id=self.ctx.org_id,
            staff_id=data.staff_id,
            service_id=data.service_id,
            customer_id=customer_id,
            customer_name=customer_name,
            customer_phone=phone,
            starts_at=to_db(start),
            ends_at=to_db(end),
            status=AppointmentStatus.SCHEDULED.value,
            source=token_source(data.client_token) if data.client_token else "manual",
            client_token=data.client_token or None,
            notes=data.notes,
        )
        self.db.add(appt)
        self.db.flush()
        appointment_id = appt.id

        self._guard_staff(data.staff_id, seen_version)
        self.db.commit()

        logger.info(
            f"Booking created: appointment_id={appointment_id}, org_id={self.ctx.org_id}, "
            f"staff_id={data.staff_id}, start={start.isoformat()}, end={end.isoformat()}"
        )
        self._emit("booking_created", appointment_id, data.staff_id)
        return appointment_id

    def _update(self, appointment_id: int, data: BookingUpdate) -> int:
        appt = self._get_appointment(appointment_id)

        start = self._parse_start(data.starts_at)
        service = self._get_service(data.service_id)
        if data.ends_at is not None:
            raw_end = parse_instant(data.ends_at, self.ctx.timezone)
            if raw_end is None:
                raise BookingRejected(BookingErrorKind.INVALID_TIME, "ends_at")
            start = snap_to_grid(start, self.config.grid_step_minutes)
            end = snap_to_grid(raw_end, self.config.grid_step_minutes)
            if end - start < timedelta(minutes=self.config.min_duration_minutes):
                raise BookingRejected(BookingErrorKind.DURATION_TOO_SHORT, "ends_at")
        else:
            duration = self._resolve_duration(data.duration_min, service)
            start, end = self._build_interval(start, duration)

        seen_version = self._check_slot(start, end, data.staff_id, data.service_id, exclude_id=appt.id)

        if data.customer_name is not None and data.customer_name.strip():
            appt.customer_name = data.customer_name.strip()
        if data.customer_phone is not None:
            appt.customer_id, appt.customer_phone = self._resolve_customer(
                appt.customer_name, data.customer_phone,
            )
        if data.notes is not None:
            appt.notes = data.notes

        appt.staff_id = data.staff_id
        appt.service_id = data.service_id
        appt.starts_at = to_db(start)
        appt.ends_at = to_db(end)
        appt.updated_at = self._stamp()
        self.db.flush()

        self._guard_staff(data.staff_id, seen_version)
        self.db.commit()

        logger.info(
            f"Booking updated: appointment_id={appointment_id}, org_id={self.ctx.org_id}, "
            f"staff_id={data.staff_id}, start={start.isoformat()}, end={end.isoformat()}"
        )
        self._emit("booking_updated", appointment_id, data.staff_id)
        return appointment_id

    def _reschedule(self, appointment_id: int, data: BookingReschedule) -> int:
        appt = self._get_appointment(appointment_id)
        given = data.model_fields_set

        staff_id = data.staff_id if "staff_id" in given else appt.staff_id
        service_id = data.service_id if "service_id" in given else appt.service_id
        if "duration_min" in given and data.duration_min is not None:
            explicit = data.duration_min
        else:
            current = as_utc(appt.ends_at) - as_utc(appt.starts_at)
            explicit = int(current.total_seconds() // 60)

        start = self._parse_start(data.starts_at)
        service = self._get_service(service_id)
        duration = self._resolve_duration(explicit, service)
        start, end = self._build_interval(start, duration)
        seen_version = self._check_slot(start, end, staff_id, service_id, exclude_id=appt.id)

        appt.staff_id = staff_id
        appt.service_id = service_id
        appt.starts_at = to_db(start)
        appt.ends_at = to_db(end)
        appt.updated_at = self._stamp()
        self.db.flush()

        self._guard_staff(staff_id, seen_version)
        self.db.commit()

        logger.info(
            f"Booking rescheduled: appointment_id={appointment_id}, org_id={self.ctx.org_id}, "
            f"staff_id={staff_id}, start={start.isoformat()}, end={end.isoformat()}"
        )
        self._emit("booking_rescheduled", appointment_id, staff_id)
        return appointment_id

    def _cancel(self, appointment_id: int, actor: str | None) -> int:
        appt = self._get_appointment(appointment_id)
        if appt.status == AppointmentStatus.CANCELLED.value:
            return appointment_id
        if not can_transition(appt.status, AppointmentStatus.CANCELLED.value):
            raise BookingRejected(BookingErrorKind.INVALID_TRANSITION, "status")

        self._mark_cancelled(appt, actor)
        self.db.commit()

        logger.info(
            f"Booking cancelled: appointment_id={appointment_id}, org_id={self.ctx.org_id}, "
            f"by={appt.cancelled_by}"
        )
        self._emit("booking_cancelled", appointment_id, appt.staff_id)
        return appointment_id

    def _undo_cancel(self, appointment_id: int, window_seconds: int) -> int:
        appt = self._get_appointment(appointment_id)
        if appt.status != AppointmentStatus.CANCELLED.value or appt.cancelled_at is None:
            raise BookingRejected(BookingErrorKind.UNDO_WINDOW_EXPIRED, "status")

        window = min(max(int(window_seconds), 0), self.config.max_undo_window_seconds)
        elapsed = self.clock() - as_utc(appt.cancelled_at)
        if elapsed > timedelta(seconds=window):
            logger.warning(
                f"Undo cancel rejected: appointment_id={appointment_id}, "
                f"elapsed={elapsed.total_seconds():.1f}s, window={window}s"
            )
            raise BookingRejected(BookingErrorKind.UNDO_WINDOW_EXPIRED, "window_seconds")

        start = as_utc(appt.starts_at)
        end = as_utc(appt.ends_at)
        seen_version = None
        if appt.staff_id is not None:
            seen_version = self._staff_version(appt.staff_id)
            if has_overlap(self.db, self.ctx.org_id, appt.staff_id, appt.id, start, end):
                raise BookingRejected(BookingErrorKind.BOOKING_CONFLICT)

        appt.status = AppointmentStatus.SCHEDULED.value
        appt.cancelled_at = None
        appt.cancelled_by = None
        appt.updated_at = self._stamp()
        self.db.flush()

        self._guard_staff(appt.staff_id, seen_version)
        self.db.commit()

        logger.info(f"Booking restored: appointment_id={appointment_id}, org_id={self.ctx.org_id}")
        self._emit("booking_restored", appointment_id, appt.staff_id)
        return appointment_id

    def _update_status(self, appointment_id: int, status: AppointmentStatus, actor: str | None) -> int:
        appt = self._get_appointment(appointment_id)
        target = AppointmentStatus(status)
        if appt.status == target.value:
            return appointment_id
        if not can_transition(appt.status, target.value):
            raise BookingRejected(BookingErrorKind.INVALID_TRANSITION, "status")

        previous = appt.status
        if target == AppointmentStatus.CANCELLED:
            self._mark_cancelled(appt, actor)
        else:
            appt.status = target.value
            appt.updated_at = self._stamp()
        self.db.commit()

        logger.info(
            f"Booking status changed: appointment_id={appointment_id}, "
            f"{previous} -> {target.value}"
        )
        self._emit("booking_status_changed", appointment_id, appt.staff_id, status=target.value)
        return appointment_id

    def _duplicate(self, appointment_id: int, days_offset: int) -> int:
        src = self._get_appointment(appointment_id)
        shift = timedelta(days=days_offset)
        start = shifted(as_utc(src.starts_at), shift, "days_offset")
        end = shifted(as_utc(src.ends_at), shift, "days_offset")

        seen_version = self._check_slot(start, end, src.staff_id, src.service_id, exclude_id=None)

        copy = Appointments(
            org_id=self.ctx.org_id,
            staff_id=src.staff_id,
            service_id=src.service_id,
            customer_id=src.customer_id,
            customer_name=src.customer_name,
            customer_phone=src.customer_phone,
            starts_at=to_db(start),
            ends_at=to_db(end),
            status=AppointmentStatus.SCHEDULED.value,
            source=DUPLICATE_SOURCE,
            notes=src.notes,
        )
        self.db.add(copy)
        self.db.flush()
        new_id = copy.id
        staff_id = src.staff_id

        self._guard_staff(staff_id, seen_version)
        self.db.commit()

        logger.info(
            f"Booking duplicated: source_id={appointment_id}, appointment_id={new_id}, "
            f"days_offset={days_offset}"
        )
        self._emit("booking_duplicated", new_id, staff_id, source_id=appointment_id)
        return new_id

    def _delete(self, appointment_id: int) -> None:
        appt = self._get_appointment(appointment_id)
        staff_id = appt.staff_id
        self.db.delete(appt)
        self.db.commit()

        logger.info(f"Booking deleted: appointment_id={appointment_id}, org_id={self.ctx.org_id}")
        self._emit("booking_deleted", appointment_id, staff_id)

    def _move_one(self, appointment_id: int, minutes: int) -> int:
        appt = self._get_appointment(appointment_id)
        if appt.status == AppointmentStatus.CANCELLED.value:
            raise BookingRejected(BookingErrorKind.INVALID_TRANSITION, "status")

        old_start = as_utc(appt.starts_at)
        length = as_utc(appt.ends_at) - old_start
        start = shifted(old_start, timedelta(minutes=minutes), "minutes")
        start = snap_to_grid(start, self.config.grid_step_minutes)
        end = shifted(start, length, "minutes")

        seen_version = self._check_slot(start, end, appt.staff_id, appt.service_id, exclude_id=appt.id)

        appt.starts_at = to_db(start)
        appt.ends_at = to_db(end)
        appt.updated_at = self._stamp()
        self.db.flush()

        self._guard_staff(appt.staff_id, seen_version)
        self.db.commit()
        self._emit("booking_rescheduled", appointment_id, appt.staff_id)
        return appointment_id

    def _bulk_cancel(self, staff_id: int, range_start, range_end) -> BulkResult:
        start, end = self._parse_range(range_start, range_end)
        if self._staff_version(staff_id) is None:
            raise BookingRejected(BookingErrorKind.OWNERSHIP_VIOLATION, "staff_id")

        rows = (
            self.db.query(Appointments)
            .filter(
                Appointments.org_id == self.ctx.org_id,
                Appointments.staff_id == staff_id,
                Appointments.status == AppointmentStatus.SCHEDULED.value,
                Appointments.starts_at >= to_db(start),
                Appointments.starts_at < to_db(end),
            )
            .order_by(Appointments.starts_at)
            .all()
        )

        result = BulkResult()
        for appt in rows:
            self._mark_cancelled(appt, None)
            result.applied.append(appt.id)
        self.db.commit()

        logger.info(
            f"Bulk cancel: org_id={self.ctx.org_id}, staff_id={staff_id}, "
            f"cancelled={len(result.applied)}, by={self._actor(None)}"
        )
        for appointment_id in result.applied:
            self._emit("booking_cancelled", appointment_id, staff_id)
        return result

    # ── Pipeline steps ───────────────────────────────────────────────────

    def _parse_start(self, value) -> datetime:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise BookingRejected(BookingErrorKind.MISSING_FIELD, "starts_at")
        start = parse_instant(value, self.ctx.timezone)
        if start is None:
            raise BookingRejected(BookingErrorKind.INVALID_TIME, "starts_at")
        return start

    def _parse_range(self, range_start, range_end) -> tuple[datetime, datetime]:
        start = parse_instant(range_start, self.ctx.timezone)
        end = parse_instant(range_end, self.ctx.timezone)
        if start is None or end is None or end <= start:
            raise BookingRejected(BookingErrorKind.INVALID_TIME, "range")
        return start, end

    def _resolve_duration(self, explicit: int | None, service: Services | None) -> int:
        if explicit is not None and explicit >= self.config.min_duration_minutes:
            duration = explicit
        elif service is not None and service.duration_min:
            duration = service.duration_min
        else:
            duration = self.config.default_duration_minutes
        return max(self.config.min_duration_minutes, duration)

    def _build_interval(self, start: datetime, duration_min: int) -> tuple[datetime, datetime]:
        step = self.config.grid_step_minutes
        min_span = timedelta(minutes=self.config.min_duration_minutes)

        try:
            snapped_start = snap_to_grid(start, step)
            snapped_end = snap_to_grid(start + timedelta(minutes=duration_min), step)
        except OverflowError:
            raise BookingRejected(BookingErrorKind.INVALID_TIME, "starts_at")
        if snapped_end - snapped_start < min_span:
            snapped_end = snapped_start + min_span
        return snapped_start, snapped_end

    def _check_slot(
        self,
        start: datetime,
        end: datetime,
        staff_id: int | None,
        service_id: int | None,
        exclude_id: int | None,
    ) -> int | None:
        """
        Steps 4-7. Returns the staff booking_version read before the overlap
        query (None for unassigned bookings).
        """
        if not same_local_day(start, end, self.ctx.timezone):
            raise BookingRejected(BookingErrorKind.CROSSES_DAY_BOUNDARY)

        seen_version = None
        if staff_id is not None:
            seen_version = self._staff_version(staff_id)
            if seen_version is None:
                raise BookingRejected(BookingErrorKind.OWNERSHIP_VIOLATION, "staff_id")
        if service_id is not None and self._get_service(service_id) is None:
            raise BookingRejected(BookingErrorKind.OWNERSHIP_VIOLATION, "service_id")

        if self.ctx.enforce_opening_hours:
            if not is_within_opening_hours(self._opening_hours(), self.ctx.timezone, start, end):
                raise BookingRejected(BookingErrorKind.OUTSIDE_OPENING_HOURS)
        elif end <= start:
            raise BookingRejected(BookingErrorKind.DURATION_TOO_SHORT)

        if has_overlap(self.db, self.ctx.org_id, staff_id, exclude_id, start, end):
            raise BookingRejected(BookingErrorKind.BOOKING_CONFLICT)

        return seen_version

    def _resolve_customer(self, name: str, phone: str | None) -> tuple[int | None, str]:
        normalized = normalize_phone(phone)
        if not normalized:
            return None, ""

        customer = (
            self.db.query(Customers)
            .filter(Customers.org_id == self.ctx.org_id, Customers.phone == normalized)
            .first()
        )
        if customer:
            return customer.id, normalized

        customer = Customers(org_id=self.ctx.org_id, name=name, phone=normalized)
        self.db.add(customer)
        self.db.flush()
        logger.info(f"Created customer: customer_id={customer.id}, org_id={self.ctx.org_id}")
        return customer.id, normalized

    def _guard_staff(self, staff_id: int | None, seen_version: int | None) -> None:
        """Conditional version bump; fails if another writer got there first."""
        if staff_id is None:
            return
        result = self.db.execute(
            update(Staff)
            .where(
                Staff.id == staff_id,
                Staff.org_id == self.ctx.org_id,
                Staff.booking_version == seen_version,
            )
            .values(booking_version=Staff.booking_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaffVersionConflict(f"staff_id={staff_id} changed since version {seen_version}")

    # ── Execution boundary ───────────────────────────────────────────────

    def _execute(self, op_name: str, fn: Callable) -> BookingResult:
        attempts = self.config.conflict_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return success(fn())
            except BookingRejected as e:
                self.db.rollback()
                logger.info(
                    f"{op_name} rejected: kind={e.kind.value}, field={e.field}, "
                    f"org_id={self.ctx.org_id}"
                )
                return BookingResult(error=e.to_error())
            except OverflowError:
                # local-time conversion at the far edge of the datetime range
                self.db.rollback()
                logger.info(f"{op_name} rejected: kind=InvalidTime, org_id={self.ctx.org_id}")
                return failure(BookingErrorKind.INVALID_TIME, "starts_at")
            except (StaffVersionConflict, IntegrityError) as e:
                self.db.rollback()
                logger.warning(
                    f"{op_name}: concurrent write detected "
                    f"(attempt {attempt}/{attempts}): {e}"
                )
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception(f"{op_name}: store failure, org_id={self.ctx.org_id}")
                return failure(BookingErrorKind.STORE_UNAVAILABLE)

        logger.error(f"{op_name}: gave up after {attempts} concurrent write retries")
        return failure(BookingErrorKind.STORE_UNAVAILABLE)

    # ── Lookups ──────────────────────────────────────────────────────────

    def _get_appointment(self, appointment_id: int) -> Appointments:
        appt = (
            self.db.query(Appointments)
            .filter(Appointments.id == appointment_id, Appointments.org_id == self.ctx.org_id)
            .first()
        )
        if not appt:
            raise BookingRejected(BookingErrorKind.NOT_FOUND)
        return appt

    def _get_service(self, service_id: int | None) -> Services | None:
        if service_id is None:
            return None
        return (
            self.db.query(Services)
            .filter(Services.id == service_id, Services.org_id == self.ctx.org_id)
            .first()
        )

    def _staff_version(self, staff_id: int) -> int | None:
        """Current booking_version of an org staff member, read from the store."""
        return (
            self.db.query(Staff.booking_version)
            .filter(Staff.id == staff_id, Staff.org_id == self.ctx.org_id)
            .scalar()
        )

    def _find_by_token(self, client_token: str) -> Appointments | None:
        return (
            self.db.query(Appointments)
            .filter(
                Appointments.org_id == self.ctx.org_id,
                Appointments.client_token == client_token,
            )
            .first()
        )

    def _in_range(self, staff_id: int | None, start: datetime, end: datetime) -> list[tuple[int, datetime]]:
        query = self.db.query(Appointments.id, Appointments.starts_at).filter(
            Appointments.org_id == self.ctx.org_id,
            Appointments.status != AppointmentStatus.CANCELLED.value,
            Appointments.starts_at >= to_db(start),
            Appointments.starts_at < to_db(end),
        )
        if staff_id is not None:
            query = query.filter(Appointments.staff_id == staff_id)
        return [(row_id, starts_at) for row_id, starts_at in query.all()]

    def _opening_hours(self) -> list[OpeningHoursRow]:
        if self._hours is None:
            self._hours = load_opening_hours(self.db, self.ctx.org_id)
        return self._hours

    # ── Helpers ──────────────────────────────────────────────────────────

    def _mark_cancelled(self, appt: Appointments, actor: str | None) -> None:
        appt.status = AppointmentStatus.CANCELLED.value
        appt.cancelled_at = to_db(self.clock())
        appt.cancelled_by = self._actor(actor)
        appt.updated_at = self._stamp()

    def _actor(self, actor: str | None) -> str:
        return actor or self.ctx.actor or "user"

    def _stamp(self) -> str:
        return self.clock().strftime("%Y-%m-%d %H:%M:%S")

    def _emit(self, event_type: str, appointment_id: int, staff_id: int | None, **extra) -> None:
        self.emit(event_type, {
            "appointment_id": appointment_id,
            "org_id": self.ctx.org_id,
            "staff_id": staff_id,
            "actor": self.ctx.actor,
            **extra,
        })


def to_view(appt: Appointments) -> AppointmentView:
    return AppointmentView(
        id=appt.id,
        org_id=appt.org_id,
        staff_id=appt.staff_id,
        staff_name=appt.staff.name if appt.staff else None,
        service_id=appt.service_id,
        service_name=appt.service.name if appt.service else None,
        customer_id=appt.customer_id,
        customer_name=appt.customer_name,
        customer_phone=appt.customer_phone or "",
        starts_at=as_utc(appt.starts_at),
        ends_at=as_utc(appt.ends_at),
        status=appt.status,
        source=appt.source,
        notes=appt.notes,
        cancelled_at=as_utc(appt.cancelled_at) if appt.cancelled_at else None,
        cancelled_by=appt.cancelled_by,
    )
