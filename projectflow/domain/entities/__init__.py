"""Domain entities exposed by the application."""

from .audit_log import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DELETE,
    AUDIT_ACTION_PREFERENCES_UPDATED,
    AuditLog,
)
from .notification import (
    ChannelDecision,
    Notification,
    NotificationCategory,
    NotificationChannel,
    NotificationContent,
    NotificationFilters,
    NotificationPage,
    NotificationPriority,
    NotificationStats,
    NotificationType,
)
from .notification_preference import (
    CATEGORY_GATED_CHANNELS,
    CategorySwitchKey,
    ChannelSwitches,
    DigestFrequency,
    NotificationPreference,
    NotificationPreferenceUpdate,
    QuietHours,
    WeekendOverrides,
    default_category_switch,
    default_category_switches,
)
from .recipient import RecipientContact

__all__ = [
    "AuditLog",
    "AUDIT_ACTION_CREATE",
    "AUDIT_ACTION_DELETE",
    "AUDIT_ACTION_PREFERENCES_UPDATED",
    "CATEGORY_GATED_CHANNELS",
    "CategorySwitchKey",
    "ChannelDecision",
    "ChannelSwitches",
    "DigestFrequency",
    "Notification",
    "NotificationCategory",
    "NotificationChannel",
    "NotificationContent",
    "NotificationFilters",
    "NotificationPage",
    "NotificationPreference",
    "NotificationPreferenceUpdate",
    "NotificationPriority",
    "NotificationStats",
    "NotificationType",
    "QuietHours",
    "RecipientContact",
    "WeekendOverrides",
    "default_category_switch",
    "default_category_switches",
]
