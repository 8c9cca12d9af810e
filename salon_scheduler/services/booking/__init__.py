# BookingService is imported from .commands directly; schemas import this package.
from .context import OrgContext, load_org_context
from .errors import (
    ERROR_MESSAGES,
    BookingError,
    BookingErrorKind,
    BookingResult,
    BulkResult,
)
from .phone import normalize_phone
from .status import AppointmentStatus, can_transition

__all__ = [
    "OrgContext",
    "load_org_context",
    "ERROR_MESSAGES",
    "BookingError",
    "BookingErrorKind",
    "BookingResult",
    "BulkResult",
    "normalize_phone",
    "AppointmentStatus",
    "can_transition",
]
