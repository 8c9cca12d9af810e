# salon_scheduler/routers/org_settings.py
# PUT /org/opening-hours replaces the whole week

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_org_context
from ..models.generated import OpeningHours, Organizations
from ..schemas.org_settings import (
    OpeningHoursRead,
    OpeningHoursRowSchema,
    OpeningHoursUpdate,
    OrgPreferences,
    OrgSettingsRead,
    OrgSettingsUpdate,
)
from ..services.booking import OrgContext
from ..services.scheduling import load_opening_hours

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/org", tags=["org"])


def _settings_read(org: Organizations) -> OrgSettingsRead:
    return OrgSettingsRead(
        org_id=org.id,
        name=org.name,
        timezone=org.timezone,
        preferences=OrgPreferences(enforce_opening_hours=bool(org.enforce_opening_hours)),
    )


def _get_org(db: Session, org_id: int) -> Organizations:
    org = db.get(Organizations, org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get("/settings", response_model=OrgSettingsRead)
def get_org_settings(
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
):
    return _settings_read(_get_org(db, ctx.org_id))


@router.put("/settings", response_model=OrgSettingsRead)
def update_org_settings(
    data: OrgSettingsUpdate,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
):
    org = _get_org(db, ctx.org_id)

    if data.timezone is not None:
        org.timezone = data.timezone
    if data.preferences is not None:
        org.enforce_opening_hours = 1 if data.preferences.enforce_opening_hours else 0

    db.commit()
    db.refresh(org)
    logger.info(
        f"Org settings updated: org_id={org.id}, timezone={org.timezone}, "
        f"enforce_opening_hours={org.enforce_opening_hours}, by={ctx.actor}"
    )
    return _settings_read(org)


@router.get("/opening-hours", response_model=OpeningHoursRead)
def get_opening_hours(
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
):
    configured = db.query(OpeningHours).filter(OpeningHours.org_id == ctx.org_id).count()
    rows = load_opening_hours(db, ctx.org_id)
    return OpeningHoursRead(
        org_id=ctx.org_id,
        is_default=configured == 0,
        rows=[OpeningHoursRowSchema.model_validate(r) for r in rows],
    )


@router.put("/opening-hours", response_model=OpeningHoursRead)
def replace_opening_hours(
    data: OpeningHoursUpdate,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
):
    db.query(OpeningHours).filter(OpeningHours.org_id == ctx.org_id).delete(
        synchronize_session=False,
    )
    for row in sorted(data.rows, key=lambda r: r.weekday):
        db.add(OpeningHours(
            org_id=ctx.org_id,
            weekday=row.weekday,
            open_min=row.open_min,
            close_min=row.close_min,
        ))
    db.commit()

    logger.info(f"Opening hours replaced: org_id={ctx.org_id}, rows={len(data.rows)}, by={ctx.actor}")
    return get_opening_hours(ctx=ctx, db=db)
