# salon_scheduler/services/booking/errors.py
"""
Typed booking errors and command results.

Commands never raise to their callers: they return a BookingResult holding
either a value or a BookingError. Inside the pipeline a rejection is raised
as BookingRejected and converted at the command boundary.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class BookingErrorKind(str, Enum):
    INVALID_TIME = "InvalidTime"
    MISSING_FIELD = "MissingField"
    CROSSES_DAY_BOUNDARY = "CrossesDayBoundary"
    DURATION_TOO_SHORT = "DurationTooShort"
    OWNERSHIP_VIOLATION = "OwnershipViolation"
    OUTSIDE_OPENING_HOURS = "OutsideOpeningHours"
    BOOKING_CONFLICT = "BookingConflict"
    NOT_FOUND = "NotFound"
    STORE_UNAVAILABLE = "StoreUnavailable"
    INVALID_TRANSITION = "InvalidTransition"
    UNDO_WINDOW_EXPIRED = "UndoWindowExpired"


ERROR_MESSAGES: dict[BookingErrorKind, str] = {
    BookingErrorKind.INVALID_TIME: "Invalid start time.",
    BookingErrorKind.MISSING_FIELD: "A required field is missing.",
    BookingErrorKind.CROSSES_DAY_BOUNDARY: "Bookings can't span multiple days.",
    BookingErrorKind.DURATION_TOO_SHORT: "Booking is shorter than the minimum duration.",
    BookingErrorKind.OWNERSHIP_VIOLATION: "Staff member or service does not belong to this organization.",
    BookingErrorKind.OUTSIDE_OPENING_HOURS: "Booking is outside opening hours.",
    BookingErrorKind.BOOKING_CONFLICT: "Staff member is already booked at this time.",
    BookingErrorKind.NOT_FOUND: "Booking not found.",
    BookingErrorKind.STORE_UNAVAILABLE: "Booking store is temporarily unavailable, please retry.",
    BookingErrorKind.INVALID_TRANSITION: "This status change is not allowed.",
    BookingErrorKind.UNDO_WINDOW_EXPIRED: "The cancellation can no longer be undone.",
}

# only transient store failures are worth a caller-driven retry
RETRYABLE_KINDS = frozenset({BookingErrorKind.STORE_UNAVAILABLE})


@dataclass(frozen=True)
class BookingError:
    kind: BookingErrorKind
    field: str | None = None

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


@dataclass(frozen=True)
class BookingResult:
    value: Any = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BulkResult:
    """Outcome of a best-effort batch: applied ids plus per-row skips."""
    applied: list[int] = field(default_factory=list)
    skipped: list[tuple[int, BookingErrorKind]] = field(default_factory=list)


class BookingRejected(Exception):
    """Pipeline-internal rejection; never escapes a command."""

    def __init__(self, kind: BookingErrorKind, field: str | None = None):
        super().__init__(kind.value)
        self.kind = kind
        self.field = field

    def to_error(self) -> BookingError:
        return BookingError(kind=self.kind, field=self.field)


class StaffVersionConflict(Exception):
    """A concurrent write touched the same staff member; retry the command."""


def success(value: Any = None) -> BookingResult:
    return BookingResult(value=value)


def failure(kind: BookingErrorKind, field: str | None = None) -> BookingResult:
    return BookingResult(error=BookingError(kind=kind, field=field))
