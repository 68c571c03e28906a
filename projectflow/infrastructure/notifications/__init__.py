"""Realtime notification helpers for the infrastructure layer."""

from .manager import LiveConnection, NotificationConnectionManager
from .serialization import serialize_notification

__all__ = [
    "LiveConnection",
    "NotificationConnectionManager",
    "serialize_notification",
]
