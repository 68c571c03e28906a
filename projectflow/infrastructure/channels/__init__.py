"""Channel senders used by the notification dispatcher."""

from .base import ChannelSender, DeliveryOutcome
from .email import EmailSender, RecipientDirectory, render_notification_email, send_email
from .in_app import InAppSender
from .push import PushSender

__all__ = [
    "ChannelSender",
    "DeliveryOutcome",
    "EmailSender",
    "InAppSender",
    "PushSender",
    "RecipientDirectory",
    "render_notification_email",
    "send_email",
]
