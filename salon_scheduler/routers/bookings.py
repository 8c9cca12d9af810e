# salon_scheduler/routers/bookings.py
"""
Booking commands over HTTP.

Identity (org, actor) comes from gateway headers; every handler delegates to
BookingService and maps a typed error to its status code.
"""

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_booking_service
from ..http_errors import unwrap
from ..schemas.bookings import (
    AppointmentView,
    BookingCreate,
    BookingCreated,
    BookingReschedule,
    BookingStatusUpdate,
    BookingUpdate,
    BulkCancelRequest,
    BulkMoveRequest,
    BulkResultRead,
    BulkSkip,
)
from ..services.booking import BulkResult
from ..services.booking.commands import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _bulk_read(result: BulkResult) -> BulkResultRead:
    return BulkResultRead(
        applied=result.applied,
        skipped=[BulkSkip(appointment_id=i, error=kind.value) for i, kind in result.skipped],
    )


@router.get("/", response_model=list[AppointmentView])
def list_bookings(
    start: str,
    end: str,
    staff_id: int | None = None,
    include_cancelled: bool = False,
    service: BookingService = Depends(get_booking_service),
):
    return unwrap(service.list_events(start, end, staff_id, include_cancelled))


@router.post("/", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    return BookingCreated(appointment_id=unwrap(service.create_booking(data)))


# ---------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------

@router.post("/bulk/move", response_model=BulkResultRead)
def bulk_move(
    data: BulkMoveRequest,
    service: BookingService = Depends(get_booking_service),
):
    result = unwrap(service.bulk_move_by_minutes(data.staff_id, data.start, data.end, data.minutes))
    return _bulk_read(result)


@router.post("/bulk/cancel", response_model=BulkResultRead)
def bulk_cancel(
    data: BulkCancelRequest,
    service: BookingService = Depends(get_booking_service),
):
    result = unwrap(service.bulk_cancel_by_staff(data.staff_id, data.start, data.end))
    return _bulk_read(result)


# ---------------------------------------------------------------------
# Single booking
# ---------------------------------------------------------------------

@router.put("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def update_booking(
    id: int,
    data: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
):
    unwrap(service.update_booking(id, data))


@router.post("/{id}/reschedule", status_code=status.HTTP_204_NO_CONTENT)
def reschedule_booking(
    id: int,
    data: BookingReschedule,
    service: BookingService = Depends(get_booking_service),
):
    unwrap(service.reschedule_booking(id, data))


@router.patch("/{id}/status", status_code=status.HTTP_204_NO_CONTENT)
def update_booking_status(
    id: int,
    data: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
):
    unwrap(service.update_booking_status(id, data.status))


@router.post("/{id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
def cancel_booking(
    id: int,
    service: BookingService = Depends(get_booking_service),
):
    unwrap(service.cancel_booking(id))


@router.post("/{id}/undo-cancel", status_code=status.HTTP_204_NO_CONTENT)
def undo_cancel_booking(
    id: int,
    window_seconds: int = Query(10, ge=0),
    service: BookingService = Depends(get_booking_service),
):
    unwrap(service.undo_cancel_booking(id, window_seconds))


@router.post("/{id}/duplicate", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def duplicate_booking(
    id: int,
    days_offset: int = 7,
    service: BookingService = Depends(get_booking_service),
):
    return BookingCreated(appointment_id=unwrap(service.duplicate_booking(id, days_offset)))


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    id: int,
    service: BookingService = Depends(get_booking_service),
):
    unwrap(service.delete_booking(id))
