"""Domain entities describing per-user notification preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Mapping

from .notification import NotificationCategory, NotificationChannel

CategorySwitchKey = tuple[NotificationCategory, NotificationChannel]

# Channels that can be switched per category. Push has no per-category switch.
CATEGORY_GATED_CHANNELS: tuple[NotificationChannel, ...] = (
    NotificationChannel.APP,
    NotificationChannel.EMAIL,
)

DEFAULT_QUIET_HOURS_START = time(22, 0)
DEFAULT_QUIET_HOURS_END = time(8, 0)
DEFAULT_QUIET_HOURS_TIMEZONE = "UTC"


class DigestFrequency(str, Enum):
    """How often a user prefers email notifications batched."""

    NEVER = "Never"
    IMMEDIATE = "Immediate"
    HOURLY = "Hourly"
    DAILY = "Daily"
    WEEKLY = "Weekly"


def default_category_switch(
    category: NotificationCategory, channel: NotificationChannel
) -> bool:
    """Return the documented default for a ``(category, channel)`` switch."""

    return not (
        category == NotificationCategory.SYSTEM and channel == NotificationChannel.EMAIL
    )


def default_category_switches() -> dict[CategorySwitchKey, bool]:
    return {
        (category, channel): default_category_switch(category, channel)
        for category in NotificationCategory
        for channel in CATEGORY_GATED_CHANNELS
    }


@dataclass(frozen=True)
class ChannelSwitches:
    """Master switches for every delivery channel."""

    app: bool = True
    email: bool = True
    push: bool = True


@dataclass(frozen=True)
class QuietHours:
    """Local-time window during which non-critical app/email delivery is muted.

    The window is half-open, ``[start, end)``, and wraps past midnight when
    ``start > end``. A window with ``start == end`` is empty.
    """

    enabled: bool = False
    start: time = DEFAULT_QUIET_HOURS_START
    end: time = DEFAULT_QUIET_HOURS_END
    timezone: str = DEFAULT_QUIET_HOURS_TIMEZONE

    def contains(self, local_clock: time) -> bool:
        """Return ``True`` when ``local_clock`` falls inside the window."""

        clock = local_clock.replace(tzinfo=None)
        if self.start == self.end:
            return False
        if self.start < self.end:
            return self.start <= clock < self.end
        return clock >= self.start or clock < self.end


@dataclass(frozen=True)
class WeekendOverrides:
    """Whether app and email delivery stay enabled on Saturday and Sunday."""

    app: bool = True
    email: bool = True


@dataclass
class NotificationPreference:
    """Notification settings owned by one user within one organization."""

    id: int | None
    user_id: str
    org_id: str
    channels: ChannelSwitches = field(default_factory=ChannelSwitches)
    category_switches: dict[CategorySwitchKey, bool] = field(
        default_factory=default_category_switches
    )
    digest_frequency: DigestFrequency = DigestFrequency.DAILY
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    weekends: WeekendOverrides = field(default_factory=WeekendOverrides)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def with_defaults(cls, *, user_id: str, org_id: str) -> "NotificationPreference":
        """Return an unsaved preference populated with the documented defaults."""

        return cls(id=None, user_id=user_id, org_id=org_id)

    def is_category_enabled(
        self, category: NotificationCategory, channel: NotificationChannel
    ) -> bool:
        if channel not in CATEGORY_GATED_CHANNELS:
            return True
        key = (category, channel)
        if key in self.category_switches:
            return self.category_switches[key]
        return default_category_switch(category, channel)


@dataclass
class NotificationPreferenceUpdate:
    """Partial update applied on top of an existing (or default) preference.

    ``None`` means "leave unchanged".
    """

    enable_in_app: bool | None = None
    enable_email: bool | None = None
    enable_push: bool | None = None
    digest_frequency: DigestFrequency | None = None
    category_switches: Mapping[CategorySwitchKey, bool] = field(default_factory=dict)
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    quiet_hours_timezone: str | None = None
    enable_weekends_app: bool | None = None
    enable_weekends_email: bool | None = None

    def is_empty(self) -> bool:
        values = (
            self.enable_in_app,
            self.enable_email,
            self.enable_push,
            self.digest_frequency,
            self.quiet_hours_enabled,
            self.quiet_hours_start,
            self.quiet_hours_end,
            self.quiet_hours_timezone,
            self.enable_weekends_app,
            self.enable_weekends_email,
        )
        return all(value is None for value in values) and not self.category_switches


__all__ = [
    "CATEGORY_GATED_CHANNELS",
    "CategorySwitchKey",
    "ChannelSwitches",
    "DigestFrequency",
    "NotificationPreference",
    "NotificationPreferenceUpdate",
    "QuietHours",
    "WeekendOverrides",
    "default_category_switch",
    "default_category_switches",
]
