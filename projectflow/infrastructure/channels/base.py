"""Contracts shared by the channel senders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from projectflow.domain.entities import Notification, NotificationChannel


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt on one channel."""

    channel: NotificationChannel
    success: bool
    error: str | None = None

    @classmethod
    def ok(cls, channel: NotificationChannel) -> "DeliveryOutcome":
        return cls(channel=channel, success=True)

    @classmethod
    def failed(cls, channel: NotificationChannel, error: str) -> "DeliveryOutcome":
        return cls(channel=channel, success=False, error=error)


class ChannelSender(Protocol):
    """Deliver a persisted notification through a single channel.

    Implementations may raise; the dispatcher treats an exception exactly like
    a failed outcome. Timeouts are enforced by the dispatcher.
    """

    channel: NotificationChannel

    async def send(self, notification: Notification) -> DeliveryOutcome:
        ...


__all__ = ["ChannelSender", "DeliveryOutcome"]
