"""Domain entities describing user notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Event kinds that produce a notification."""

    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_DUE_SOON = "TASK_DUE_SOON"
    TASK_OVERDUE = "TASK_OVERDUE"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    TASK_COMMENT_ADDED = "TASK_COMMENT_ADDED"
    TASK_MENTION = "TASK_MENTION"
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    PROJECT_MEMBER_ADDED = "PROJECT_MEMBER_ADDED"
    PROJECT_DEADLINE_APPROACHING = "PROJECT_DEADLINE_APPROACHING"
    MEETING_SCHEDULED = "MEETING_SCHEDULED"
    MEETING_REMINDER = "MEETING_REMINDER"
    MEETING_CANCELLED = "MEETING_CANCELLED"
    MEETING_UPDATED = "MEETING_UPDATED"
    MEETING_STARTING_SOON = "MEETING_STARTING_SOON"
    WEEKLY_PLAN_DUE = "WEEKLY_PLAN_DUE"
    WEEKLY_PLAN_OVERDUE = "WEEKLY_PLAN_OVERDUE"
    WEEKLY_REPORT_DUE = "WEEKLY_REPORT_DUE"
    WEEKLY_REPORT_OVERDUE = "WEEKLY_REPORT_OVERDUE"
    REPORT_SUBMISSION_RECEIVED = "REPORT_SUBMISSION_RECEIVED"
    LOW_COMPLIANCE_ALERT = "LOW_COMPLIANCE_ALERT"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    ACCOUNT_UPDATED = "ACCOUNT_UPDATED"
    SECURITY_ALERT = "SECURITY_ALERT"
    WELCOME = "WELCOME"
    CUSTOM = "CUSTOM"


class NotificationCategory(str, Enum):
    """Coarse grouping used for per-area preference gating."""

    TASK = "task"
    PROJECT = "project"
    MEETING = "meeting"
    REPORT = "report"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    """Urgency of a notification. ``CRITICAL`` bypasses quiet hours."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class NotificationChannel(str, Enum):
    """Delivery surfaces supported by the dispatcher."""

    APP = "app"
    EMAIL = "email"
    PUSH = "push"


@dataclass(frozen=True)
class ChannelDecision:
    """Channels enabled for a single notification after preference resolution."""

    app: bool
    email: bool
    push: bool

    def enabled_channels(self) -> tuple[NotificationChannel, ...]:
        """Return the enabled channels in a stable order."""

        flags = (
            (NotificationChannel.APP, self.app),
            (NotificationChannel.EMAIL, self.email),
            (NotificationChannel.PUSH, self.push),
        )
        return tuple(channel for channel, enabled in flags if enabled)

    @property
    def is_silent(self) -> bool:
        return not (self.app or self.email or self.push)


@dataclass
class NotificationContent:
    """Caller supplied content shared by every recipient of an event."""

    type: NotificationType
    category: NotificationCategory
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    payload: dict[str, Any] = field(default_factory=dict)
    entity_type: str | None = None
    entity_id: str | None = None
    scheduled_for: datetime | None = None


@dataclass
class Notification:
    """Information message delivered to a specific user.

    ``delivery_attempted_at`` is set when the delivery step has run, even if
    no channel was enabled. ``delivered_at`` is only set when at least one
    channel was attempted.
    """

    id: int | None
    recipient_id: str
    org_id: str
    type: NotificationType
    category: NotificationCategory
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    payload: dict[str, Any] = field(default_factory=dict)
    entity_type: str | None = None
    entity_id: str | None = None
    created_at: datetime | None = None
    scheduled_for: datetime | None = None
    delivery_attempted_at: datetime | None = None
    delivered_at: datetime | None = None
    delivered_via_app: bool = False
    delivered_via_email: bool = False
    delivered_via_push: bool = False
    delivery_error: str | None = None
    is_read: bool = False
    read_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.delivery_attempted_at is None


@dataclass
class NotificationFilters:
    """Optional filters accepted when listing notifications."""

    category: NotificationCategory | None = None
    type: NotificationType | None = None
    unread_only: bool = False


@dataclass
class NotificationPage:
    """One page of notifications together with the caller's unread count."""

    items: list[Notification]
    total: int
    unread_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


@dataclass
class NotificationStats:
    """Aggregated delivery statistics for an organization."""

    days: int
    total: int
    delivered: int
    emailed: int
    unread: int
    by_type: dict[str, int] = field(default_factory=dict)

    @property
    def delivery_rate(self) -> float:
        return _rate(self.delivered, self.total)

    @property
    def email_delivery_rate(self) -> float:
        return _rate(self.emailed, self.total)


def _rate(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


__all__ = [
    "ChannelDecision",
    "Notification",
    "NotificationCategory",
    "NotificationChannel",
    "NotificationContent",
    "NotificationFilters",
    "NotificationPage",
    "NotificationPriority",
    "NotificationStats",
    "NotificationType",
]
