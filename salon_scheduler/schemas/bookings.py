# salon_scheduler/schemas/bookings.py

from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, Field

from ..services.booking.status import AppointmentStatus

# Start/end times stay raw until the booking pipeline parses them in the
# org timezone: either a full-offset ISO string or a naive local one.
TimeInput = Union[datetime, str]


class BookingCreate(BaseModel):
    staff_id: Optional[int] = None
    service_id: Optional[int] = None
    customer_name: str = "Client"
    customer_phone: str = ""

    starts_at: Optional[TimeInput] = None
    duration_min: Optional[int] = None

    notes: Optional[str] = None
    client_token: Optional[str] = Field(None, max_length=128)

    model_config = {"from_attributes": True}


class BookingUpdate(BaseModel):
    starts_at: Optional[TimeInput] = None
    duration_min: Optional[int] = None
    ends_at: Optional[TimeInput] = None

    staff_id: Optional[int] = None
    service_id: Optional[int] = None

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingReschedule(BaseModel):
    """Partial patch: omitted staff/service/duration keep the existing values."""
    starts_at: Optional[TimeInput] = None
    duration_min: Optional[int] = None
    staff_id: Optional[int] = None
    service_id: Optional[int] = None

    model_config = {"from_attributes": True}


class BookingStatusUpdate(BaseModel):
    status: AppointmentStatus


class BulkMoveRequest(BaseModel):
    staff_id: Optional[int] = None  # None = every staff member
    start: TimeInput
    end: TimeInput
    minutes: int


class BulkCancelRequest(BaseModel):
    staff_id: int
    start: TimeInput
    end: TimeInput


class BookingCreated(BaseModel):
    appointment_id: int


class BulkSkip(BaseModel):
    appointment_id: int
    error: str


class BulkResultRead(BaseModel):
    applied: list[int]
    skipped: list[BulkSkip]


class AppointmentView(BaseModel):
    id: int
    org_id: int

    staff_id: Optional[int] = None
    staff_name: Optional[str] = None
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: str
    customer_phone: str = ""

    starts_at: datetime
    ends_at: datetime

    status: AppointmentStatus
    source: str
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None

    model_config = {"from_attributes": True}
