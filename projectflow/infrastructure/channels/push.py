"""Push channel that hands notifications to an HTTP push gateway."""

from __future__ import annotations

import logging

import httpx

from projectflow.domain.entities import Notification, NotificationChannel

from .base import DeliveryOutcome

logger = logging.getLogger(__name__)


class PushSender:
    """POST notifications to the configured push gateway.

    The gateway owns device registration; this sender only addresses users.
    """

    channel = NotificationChannel.PUSH

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        gateway_url: str | None,
        token: str | None = None,
    ) -> None:
        self._client = client
        self._gateway_url = gateway_url
        self._token = token

    @property
    def configured(self) -> bool:
        return bool(self._gateway_url)

    async def send(self, notification: Notification) -> DeliveryOutcome:
        if not self.configured:
            return DeliveryOutcome.failed(self.channel, "push gateway not configured")

        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        body = {
            "user_id": notification.recipient_id,
            "org_id": notification.org_id,
            "title": notification.title,
            "body": notification.message,
            "priority": notification.priority.value,
            "data": {
                "notification_id": notification.id,
                "type": notification.type.value,
                "entity_type": notification.entity_type,
                "entity_id": notification.entity_id,
            },
        }
        try:
            response = await self._client.post(self._gateway_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Push gateway request failed for notification %s: %s", notification.id, exc)
            return DeliveryOutcome.failed(self.channel, f"transport error: {exc}")

        if response.is_success:
            return DeliveryOutcome.ok(self.channel)

        logger.warning(
            "Push gateway responded with status %s for notification %s",
            response.status_code,
            notification.id,
        )
        return DeliveryOutcome.failed(self.channel, f"gateway status {response.status_code}")


__all__ = ["PushSender"]
