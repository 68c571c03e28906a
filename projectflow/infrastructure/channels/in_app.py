"""In-app channel: the stored record plus a realtime websocket push."""

from __future__ import annotations

import logging

from projectflow.domain.entities import Notification, NotificationChannel
from projectflow.infrastructure.notifications import (
    NotificationConnectionManager,
    serialize_notification,
)

from .base import DeliveryOutcome

logger = logging.getLogger(__name__)


class InAppSender:
    """Serialize notifications and push them to the recipient's open sockets.

    The persisted record is the in-app surface, so delivery succeeds even when
    the recipient has no open connection.
    """

    channel = NotificationChannel.APP

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def send(self, notification: Notification) -> DeliveryOutcome:
        message = {"type": "notification", "data": serialize_notification(notification)}
        delivered = await self._manager.send_to_user(notification.recipient_id, message)
        logger.debug(
            "Notification %s pushed to %s live connection(s) of user %s",
            notification.id,
            delivered,
            notification.recipient_id,
        )
        return DeliveryOutcome.ok(self.channel)


__all__ = ["InAppSender"]
