"""Compute the delivery channels a preference allows for one notification."""

from __future__ import annotations

from datetime import datetime

from projectflow.domain.entities import (
    ChannelDecision,
    NotificationCategory,
    NotificationChannel,
    NotificationPreference,
    NotificationPriority,
)
from projectflow.utils import ensure_app_timezone, resolve_timezone

_SATURDAY = 5


def localize(preference: NotificationPreference, now: datetime) -> datetime:
    """Return ``now`` expressed in the timezone stored on ``preference``.

    Naive values are interpreted in the application timezone. Unknown
    timezone names fall back to UTC.
    """

    tz = resolve_timezone(preference.quiet_hours.timezone, strict=False)
    aware = now if now.tzinfo is not None else ensure_app_timezone(now)
    return aware.astimezone(tz)


def resolve(
    preference: NotificationPreference,
    category: NotificationCategory,
    priority: NotificationPriority,
    now: datetime,
) -> ChannelDecision:
    """Return the channels enabled for a notification of ``category``.

    Channels are only ever switched off here: master switches, then category
    switches, then weekend overrides, then quiet hours. Push ignores category,
    weekend and quiet-hour gating. ``Critical`` priority bypasses quiet hours
    but nothing else.
    """

    app = preference.channels.app and preference.is_category_enabled(
        category, NotificationChannel.APP
    )
    email = preference.channels.email and preference.is_category_enabled(
        category, NotificationChannel.EMAIL
    )
    push = preference.channels.push

    local_now = localize(preference, now)

    if local_now.weekday() >= _SATURDAY:
        app = app and preference.weekends.app
        email = email and preference.weekends.email

    quiet_hours = preference.quiet_hours
    if (
        quiet_hours.enabled
        and priority != NotificationPriority.CRITICAL
        and quiet_hours.contains(local_now.time())
    ):
        app = False
        email = False

    return ChannelDecision(app=app, email=email, push=push)


__all__ = ["localize", "resolve"]
