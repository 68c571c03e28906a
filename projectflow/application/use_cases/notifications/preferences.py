"""Use cases to read and update notification preferences."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Protocol

from projectflow.domain.entities import (
    AUDIT_ACTION_PREFERENCES_UPDATED,
    CATEGORY_GATED_CHANNELS,
    NotificationPreference,
    NotificationPreferenceUpdate,
)
from projectflow.domain.errors import ValidationError
from projectflow.utils import format_clock_time, resolve_timezone

from ..audit_logs import AuditTrail

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    async def get_or_create_preference(self, user_id: str, org_id: str) -> NotificationPreference:
        ...

    async def save_preference(self, preference: NotificationPreference) -> NotificationPreference:
        ...


def validate_preference_update(update: NotificationPreferenceUpdate) -> None:
    """Raise :class:`ValidationError` when ``update`` cannot be applied."""

    if update.quiet_hours_timezone is not None:
        try:
            resolve_timezone(update.quiet_hours_timezone, strict=True)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    for start_or_end in (update.quiet_hours_start, update.quiet_hours_end):
        if start_or_end is not None and start_or_end.tzinfo is not None:
            raise ValidationError("Quiet hours must be given as local clock times")

    for key in update.category_switches:
        _, channel = key
        if channel not in CATEGORY_GATED_CHANNELS:
            raise ValidationError(f"Channel '{channel.value}' has no per-category switch")


def apply_preference_update(
    preference: NotificationPreference, update: NotificationPreferenceUpdate
) -> NotificationPreference:
    """Return a copy of ``preference`` with the non-empty fields of ``update``."""

    validate_preference_update(update)

    channels = replace(
        preference.channels,
        **_present(
            app=update.enable_in_app,
            email=update.enable_email,
            push=update.enable_push,
        ),
    )
    quiet_hours = replace(
        preference.quiet_hours,
        **_present(
            enabled=update.quiet_hours_enabled,
            start=update.quiet_hours_start,
            end=update.quiet_hours_end,
            timezone=(update.quiet_hours_timezone or "").strip() or None,
        ),
    )
    weekends = replace(
        preference.weekends,
        **_present(app=update.enable_weekends_app, email=update.enable_weekends_email),
    )
    switches = dict(preference.category_switches)
    switches.update(update.category_switches)

    return replace(
        preference,
        channels=channels,
        category_switches=switches,
        digest_frequency=update.digest_frequency or preference.digest_frequency,
        quiet_hours=quiet_hours,
        weekends=weekends,
    )


async def get_preferences(
    store: PreferenceStore, *, user_id: str, org_id: str
) -> NotificationPreference:
    """Return the preference of ``user_id`` in ``org_id``, creating defaults lazily."""

    return await store.get_or_create_preference(user_id, org_id)


async def upsert_preferences(
    store: PreferenceStore,
    *,
    user_id: str,
    org_id: str,
    update: NotificationPreferenceUpdate,
    audit: AuditTrail | None = None,
) -> NotificationPreference:
    """Apply ``update`` on top of the stored (or default) preference and save it."""

    validate_preference_update(update)
    current = await store.get_or_create_preference(user_id, org_id)
    if update.is_empty():
        return current

    saved = await store.save_preference(apply_preference_update(current, update))
    logger.info("Notification preferences updated for user %s in org %s", user_id, org_id)

    if audit is not None:
        await audit.record(
            user_id=user_id,
            org_id=org_id,
            action=AUDIT_ACTION_PREFERENCES_UPDATED,
            entity_type="notification_preference",
            entity_id=saved.id,
            metadata=_describe_update(update),
        )
    return saved


def _present(**values):
    return {name: value for name, value in values.items() if value is not None}


def _describe_update(update: NotificationPreferenceUpdate) -> dict:
    described = _present(
        enable_in_app=update.enable_in_app,
        enable_email=update.enable_email,
        enable_push=update.enable_push,
        digest_frequency=update.digest_frequency.value if update.digest_frequency else None,
        quiet_hours_enabled=update.quiet_hours_enabled,
        quiet_hours_start=(
            format_clock_time(update.quiet_hours_start) if update.quiet_hours_start else None
        ),
        quiet_hours_end=(
            format_clock_time(update.quiet_hours_end) if update.quiet_hours_end else None
        ),
        quiet_hours_timezone=update.quiet_hours_timezone,
        enable_weekends_app=update.enable_weekends_app,
        enable_weekends_email=update.enable_weekends_email,
    )
    if update.category_switches:
        described["category_switches"] = {
            f"{category.value}.{channel.value}": enabled
            for (category, channel), enabled in update.category_switches.items()
        }
    return described


__all__ = [
    "PreferenceStore",
    "apply_preference_update",
    "get_preferences",
    "upsert_preferences",
    "validate_preference_update",
]
