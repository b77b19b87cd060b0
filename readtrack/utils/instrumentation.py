"""
Server-side event logging helper.

Logs events to both the database (for querying) and structured logs (for immediate visibility).
"""
import logging
from typing import Optional, Dict, Any
from uuid import UUID
from sqlalchemy.orm import Session
from readtrack.models import EventLog

logger = logging.getLogger(__name__)


def _jsonable(properties: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if properties is None:
        return None
    return {key: str(value) if isinstance(value, UUID) else value for key, value in properties.items()}


def log_event(
    db: Session,
    event_name: str,
    user_id: Optional[UUID] = None,
    properties: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an event to the database and structured logs.

    Args:
        db: Database session
        event_name: Name of the event (e.g., "shelf_status_changed", "review_added")
        user_id: Optional user ID (UUID)
        properties: Optional dict of event properties; UUID values are stringified

    Note: This function does NOT commit or flush. The event is written with the
    caller's transaction, so a rolled-back operation leaves no event behind.
    """
    properties = _jsonable(properties)
    db.add(
        EventLog(
            event_name=event_name,
            user_id=user_id,
            properties=properties,
        )
    )

    logger.info(
        "event_logged",
        extra={
            "event_name": event_name,
            "user_id": str(user_id) if user_id else None,
            "properties": properties,
        },
    )
