# salon_scheduler/http_errors.py

from fastapi import HTTPException

from .services.booking import BookingError, BookingErrorKind, BookingResult

STATUS_BY_KIND: dict[BookingErrorKind, int] = {
    BookingErrorKind.INVALID_TIME: 422,
    BookingErrorKind.MISSING_FIELD: 422,
    BookingErrorKind.CROSSES_DAY_BOUNDARY: 422,
    BookingErrorKind.DURATION_TOO_SHORT: 422,
    BookingErrorKind.OUTSIDE_OPENING_HOURS: 422,
    BookingErrorKind.OWNERSHIP_VIOLATION: 403,
    BookingErrorKind.NOT_FOUND: 404,
    BookingErrorKind.BOOKING_CONFLICT: 409,
    BookingErrorKind.INVALID_TRANSITION: 409,
    BookingErrorKind.UNDO_WINDOW_EXPIRED: 409,
    BookingErrorKind.STORE_UNAVAILABLE: 503,
}


def http_error(error: BookingError) -> HTTPException:
    detail = {"error": error.kind.value, "message": error.message}
    if error.field:
        detail["field"] = error.field
    headers = {"Retry-After": "1"} if error.retryable else None
    return HTTPException(status_code=STATUS_BY_KIND[error.kind], detail=detail, headers=headers)


def unwrap(result: BookingResult):
    """Value of a successful result, or raise the matching HTTP error."""
    if not result.ok:
        raise http_error(result.error)
    return result.value
