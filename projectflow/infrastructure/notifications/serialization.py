"""JSON representations of notifications pushed to realtime subscribers."""

from __future__ import annotations

from typing import Any

from projectflow.domain.entities import Notification


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "org_id": notification.org_id,
        "type": notification.type.value,
        "category": notification.category.value,
        "priority": notification.priority.value,
        "title": notification.title,
        "message": notification.message,
        "payload": notification.payload or {},
        "entity_type": notification.entity_type,
        "entity_id": notification.entity_id,
        "created_at": _iso_or_none(notification.created_at),
        "is_read": notification.is_read,
        "read_at": _iso_or_none(notification.read_at),
    }


def _iso_or_none(value) -> str | None:
    return value.isoformat() if value else None


__all__ = ["serialize_notification"]
