"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from projectflow.domain.entities import (
    CATEGORY_GATED_CHANNELS,
    DigestFrequency,
    Notification,
    NotificationCategory,
    NotificationChannel,
    NotificationContent,
    NotificationPage,
    NotificationPreference,
    NotificationPreferenceUpdate,
    NotificationPriority,
    NotificationStats,
    NotificationType,
)
from projectflow.utils import format_clock_time, parse_clock_time


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_id: str
    org_id: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    title: str
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
    entity_type: str | None = None
    entity_id: str | None = None
    created_at: datetime
    scheduled_for: datetime | None = None
    delivered_at: datetime | None = None
    delivered_via_app: bool = False
    delivered_via_email: bool = False
    delivered_via_push: bool = False
    is_read: bool = False
    read_at: datetime | None = None

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationRead":
        return cls.model_validate(notification)


class PaginationRead(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class NotificationListResponse(BaseModel):
    notifications: list[NotificationRead]
    pagination: PaginationRead
    unread_count: int

    @classmethod
    def from_page(cls, page: NotificationPage) -> "NotificationListResponse":
        return cls(
            notifications=[NotificationRead.from_entity(item) for item in page.items],
            pagination=PaginationRead(
                page=page.page,
                limit=page.limit,
                total=page.total,
                total_pages=page.total_pages,
                has_next=page.has_next,
                has_prev=page.has_prev,
            ),
            unread_count=page.unread_count,
        )


class UnreadCountResponse(BaseModel):
    unread_count: int


class NotificationMarkReadRequest(BaseModel):
    """Payload used to mark a batch (or every) notification as read."""

    ids: list[int] = Field(default_factory=list, description="Notification identifiers")
    mark_all: bool = False

    @model_validator(mode="after")
    def _require_target(self) -> "NotificationMarkReadRequest":
        if not self.mark_all and not self.ids:
            raise ValueError("Provide notification ids or set mark_all")
        return self

    def unique_ids(self) -> list[int]:
        """Return the list of identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class MarkReadResponse(BaseModel):
    updated_count: int


CategorySwitchesPayload = dict[NotificationCategory, dict[NotificationChannel, bool]]


class NotificationPreferenceRead(BaseModel):
    user_id: str
    org_id: str
    enable_in_app: bool
    enable_email: bool
    enable_push: bool
    digest_frequency: DigestFrequency
    category_switches: dict[str, dict[str, bool]]
    quiet_hours_enabled: bool
    quiet_hours_start: str
    quiet_hours_end: str
    quiet_hours_timezone: str
    enable_weekends_app: bool
    enable_weekends_email: bool
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, preference: NotificationPreference) -> "NotificationPreferenceRead":
        switches: dict[str, dict[str, bool]] = {}
        for category in NotificationCategory:
            switches[category.value] = {
                channel.value: preference.is_category_enabled(category, channel)
                for channel in CATEGORY_GATED_CHANNELS
            }
        return cls(
            user_id=preference.user_id,
            org_id=preference.org_id,
            enable_in_app=preference.channels.app,
            enable_email=preference.channels.email,
            enable_push=preference.channels.push,
            digest_frequency=preference.digest_frequency,
            category_switches=switches,
            quiet_hours_enabled=preference.quiet_hours.enabled,
            quiet_hours_start=format_clock_time(preference.quiet_hours.start),
            quiet_hours_end=format_clock_time(preference.quiet_hours.end),
            quiet_hours_timezone=preference.quiet_hours.timezone,
            enable_weekends_app=preference.weekends.app,
            enable_weekends_email=preference.weekends.email,
            updated_at=preference.updated_at,
        )


class NotificationPreferenceUpdateRequest(BaseModel):
    """Partial preference update; omitted fields keep their stored value."""

    enable_in_app: bool | None = None
    enable_email: bool | None = None
    enable_push: bool | None = None
    digest_frequency: DigestFrequency | None = None
    category_switches: CategorySwitchesPayload = Field(default_factory=dict)
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = Field(default=None, examples=["22:00"])
    quiet_hours_end: str | None = Field(default=None, examples=["08:00"])
    quiet_hours_timezone: str | None = Field(default=None, max_length=64)
    enable_weekends_app: bool | None = None
    enable_weekends_email: bool | None = None

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def _validate_clock(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return format_clock_time(parse_clock_time(value))

    @field_validator("category_switches")
    @classmethod
    def _validate_switch_channels(cls, value: CategorySwitchesPayload) -> CategorySwitchesPayload:
        for category, channels in value.items():
            for channel in channels:
                if channel not in CATEGORY_GATED_CHANNELS:
                    raise ValueError(
                        f"Channel '{channel.value}' has no per-category switch "
                        f"(category '{category.value}')"
                    )
        return value

    def to_domain(self) -> NotificationPreferenceUpdate:
        return NotificationPreferenceUpdate(
            enable_in_app=self.enable_in_app,
            enable_email=self.enable_email,
            enable_push=self.enable_push,
            digest_frequency=self.digest_frequency,
            category_switches={
                (category, channel): enabled
                for category, channels in self.category_switches.items()
                for channel, enabled in channels.items()
            },
            quiet_hours_enabled=self.quiet_hours_enabled,
            quiet_hours_start=(
                parse_clock_time(self.quiet_hours_start) if self.quiet_hours_start else None
            ),
            quiet_hours_end=(
                parse_clock_time(self.quiet_hours_end) if self.quiet_hours_end else None
            ),
            quiet_hours_timezone=self.quiet_hours_timezone,
            enable_weekends_app=self.enable_weekends_app,
            enable_weekends_email=self.enable_weekends_email,
        )


class NotificationCreateRequest(BaseModel):
    """Payload used by administrators and managers to send notifications."""

    recipient_ids: list[str] = Field(..., min_length=1)
    type: NotificationType
    category: NotificationCategory
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    payload: dict[str, Any] = Field(default_factory=dict)
    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: str | None = Field(default=None, max_length=64)
    scheduled_for: datetime | None = None
    send_now: bool = True

    def to_content(self) -> NotificationContent:
        return NotificationContent(
            type=self.type,
            category=self.category,
            title=self.title,
            message=self.message,
            priority=self.priority,
            payload=dict(self.payload),
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            scheduled_for=self.scheduled_for,
        )


class NotificationCreateResponse(BaseModel):
    ids: list[int]
    requested: int
    created: int


class NotificationStatsRead(BaseModel):
    days: int
    total: int
    delivered: int
    emailed: int
    unread: int
    delivery_rate: float
    email_delivery_rate: float
    by_type: dict[str, int]

    @classmethod
    def from_entity(cls, stats: NotificationStats) -> "NotificationStatsRead":
        return cls(
            days=stats.days,
            total=stats.total,
            delivered=stats.delivered,
            emailed=stats.emailed,
            unread=stats.unread,
            delivery_rate=stats.delivery_rate,
            email_delivery_rate=stats.email_delivery_rate,
            by_type=stats.by_type,
        )


class CleanupRequest(BaseModel):
    days_to_keep: int | None = None
    policy: str | None = Field(default=None, pattern=r"^(all|read_only)$")


class CleanupResponse(BaseModel):
    deleted_count: int


class ProcessScheduledResponse(BaseModel):
    processed: int


__all__ = [
    "CleanupRequest",
    "CleanupResponse",
    "MarkReadResponse",
    "NotificationCreateRequest",
    "NotificationCreateResponse",
    "NotificationListResponse",
    "NotificationMarkReadRequest",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdateRequest",
    "NotificationRead",
    "NotificationStatsRead",
    "PaginationRead",
    "ProcessScheduledResponse",
    "UnreadCountResponse",
]
