"""
salon_scheduler/services/events.py

Appointment change events for downstream observers (calendar sync,
webhooks, notifications).

Events are pushed to a Redis list and consumed asynchronously; the booking
commands never call integrations directly.
"""

import json
import time
import logging

from ..config import settings
from ..redis_client import redis_client

logger = logging.getLogger(__name__)


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit an appointment change event.

    Pushed to the Redis list `settings.events_queue`. A failed push is logged
    and does not affect the already-committed booking.
    """
    if not settings.events_enabled:
        return

    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(settings.events_queue, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {settings.events_queue}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
