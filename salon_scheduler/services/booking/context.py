# salon_scheduler/services/booking/context.py
"""
Per-request organization context.

Built once from the identity provider (org id, actor) and the org row, so
commands never re-read or re-parse org preferences.
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ...config import settings
from ..scheduling.tz import is_valid_timezone


@dataclass(frozen=True)
class OrgContext:
    org_id: int
    timezone: str
    enforce_opening_hours: bool = False
    actor: str | None = None


def load_org_context(db: Session, org_id: int, actor: str | None = None) -> OrgContext | None:
    """Org context for org_id, or None when the org does not exist."""
    from ...models.generated import Organizations

    org = db.get(Organizations, org_id)
    if not org:
        return None

    tz_name = org.timezone if org.timezone and is_valid_timezone(org.timezone) else settings.default_timezone

    return OrgContext(
        org_id=org.id,
        timezone=tz_name,
        enforce_opening_hours=bool(org.enforce_opening_hours),
        actor=actor,
    )
