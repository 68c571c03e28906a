"""Errors raised by the notification use cases."""


class NotificationError(Exception):
    """Base class for errors surfaced by the notification subsystem."""


class ValidationError(NotificationError, ValueError):
    """Malformed input such as an empty recipient set or an invalid time window."""


class NotFoundError(NotificationError):
    """The targeted notification does not exist."""


class ForbiddenError(NotificationError):
    """The caller does not own the targeted notification."""


class TransientStoreError(NotificationError):
    """The persistence layer failed; the caller may retry the operation."""


class ChannelDeliveryError(NotificationError):
    """A channel sender failed or timed out.

    Raised by sender adapters and always absorbed by the dispatcher; it is
    never visible to API callers.
    """

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"{channel} delivery failed: {reason}")
        self.channel = channel
        self.reason = reason


__all__ = [
    "NotificationError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "TransientStoreError",
    "ChannelDeliveryError",
]
