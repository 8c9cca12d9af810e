# salon_scheduler/dependencies.py
"""
Request identity.

Org id and actor come from headers set by the upstream gateway after it has
authenticated the caller; this service never authenticates on its own.
"""

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from .services.booking import OrgContext, load_org_context
from .services.booking.commands import BookingService


def get_org_context(
    x_org_id: int = Header(...),
    x_actor_email: str | None = Header(None),
    db: Session = Depends(get_db),
) -> OrgContext:
    ctx = load_org_context(db, x_org_id, actor=x_actor_email)
    if ctx is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return ctx


def get_booking_service(
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> BookingService:
    return BookingService(db, ctx)
