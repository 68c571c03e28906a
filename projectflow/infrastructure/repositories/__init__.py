"""Repository implementations for infrastructure layer."""

from .audit_log_repository import AuditLogRepository
from .notification_preference_repository import NotificationPreferenceRepository
from .notification_repository import NotificationRepository
from .user_contact_repository import UserContactRepository

__all__ = [
    "AuditLogRepository",
    "NotificationPreferenceRepository",
    "NotificationRepository",
    "UserContactRepository",
]
