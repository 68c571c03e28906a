"""ORM models used by the application infrastructure."""

from .audit_log import AuditLogModel
from .notification import NotificationModel
from .notification_preference import NotificationPreferenceModel
from .user_contact import UserContactModel

__all__ = [
    "AuditLogModel",
    "NotificationModel",
    "NotificationPreferenceModel",
    "UserContactModel",
]
