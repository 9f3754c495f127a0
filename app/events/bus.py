from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.numeric import normalize_decimals
from app.events.outbox import OutboxEvent


def publish(db: Session, topic: str, payload: dict) -> OutboxEvent:
    """Publish an event by adding it to the transactional outbox.

    The row joins the caller's unit of work; committing is the caller's job.
    """
    evt = OutboxEvent(topic=topic, payload=normalize_decimals(payload or {}))
    db.add(evt)
    return evt
