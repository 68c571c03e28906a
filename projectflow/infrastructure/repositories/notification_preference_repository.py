"""Persistence helpers for notification preferences."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projectflow.domain.entities import (
    CATEGORY_GATED_CHANNELS,
    CategorySwitchKey,
    ChannelSwitches,
    DigestFrequency,
    NotificationCategory,
    NotificationChannel,
    NotificationPreference,
    QuietHours,
    WeekendOverrides,
    default_category_switches,
)
from projectflow.infrastructure.models import NotificationPreferenceModel
from projectflow.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    format_clock_time,
    now_in_app_timezone,
    parse_clock_time,
)

logger = logging.getLogger(__name__)


class NotificationPreferenceRepository:
    """Load, lazily create and overwrite :class:`NotificationPreference` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str, org_id: str) -> NotificationPreference | None:
        model = self._get_model(user_id, org_id)
        if model is None:
            return None
        return self._to_entity(model)

    def get_or_create(self, user_id: str, org_id: str) -> NotificationPreference:
        """Return the stored preference, creating the defaults on first access.

        Two concurrent first accesses race on the ``(user_id, org_id)`` unique
        constraint; the loser rolls back and reads the winner's row.
        """

        existing = self.get(user_id, org_id)
        if existing is not None:
            return existing
        try:
            return self.create(NotificationPreference.with_defaults(user_id=user_id, org_id=org_id))
        except IntegrityError:
            self.session.rollback()
            logger.debug(
                "Preference for user %s in org %s created concurrently; reloading",
                user_id,
                org_id,
            )
            existing = self.get(user_id, org_id)
            if existing is None:
                raise
            return existing

    def create(self, preference: NotificationPreference) -> NotificationPreference:
        model = NotificationPreferenceModel()
        self._apply_entity_to_model(model, preference)
        model.created_at = (
            ensure_app_naive_datetime(preference.created_at)
            or ensure_app_naive_datetime(now_in_app_timezone())
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, preference: NotificationPreference) -> NotificationPreference:
        model = self._get_model(preference.user_id, preference.org_id)
        if model is None:
            msg = (
                f"Preference for user {preference.user_id} in org {preference.org_id} not found"
            )
            raise ValueError(msg)
        self._apply_entity_to_model(model, preference)
        model.updated_at = ensure_app_naive_datetime(now_in_app_timezone())
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def _get_model(self, user_id: str, org_id: str) -> NotificationPreferenceModel | None:
        return (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .filter(NotificationPreferenceModel.org_id == org_id)
            .one_or_none()
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationPreferenceModel, preference: NotificationPreference
    ) -> None:
        model.user_id = preference.user_id
        model.org_id = preference.org_id
        model.enable_in_app = preference.channels.app
        model.enable_email = preference.channels.email
        model.enable_push = preference.channels.push
        model.digest_frequency = preference.digest_frequency.value
        model.category_switches = serialize_category_switches(preference.category_switches)
        model.quiet_hours_enabled = preference.quiet_hours.enabled
        model.quiet_hours_start = format_clock_time(preference.quiet_hours.start)
        model.quiet_hours_end = format_clock_time(preference.quiet_hours.end)
        model.quiet_hours_timezone = preference.quiet_hours.timezone
        model.enable_weekends_app = preference.weekends.app
        model.enable_weekends_email = preference.weekends.email

    @staticmethod
    def _to_entity(model: NotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            org_id=model.org_id,
            channels=ChannelSwitches(
                app=bool(model.enable_in_app),
                email=bool(model.enable_email),
                push=bool(model.enable_push),
            ),
            category_switches=deserialize_category_switches(model.category_switches),
            digest_frequency=DigestFrequency(model.digest_frequency),
            quiet_hours=QuietHours(
                enabled=bool(model.quiet_hours_enabled),
                start=parse_clock_time(model.quiet_hours_start),
                end=parse_clock_time(model.quiet_hours_end),
                timezone=model.quiet_hours_timezone or "UTC",
            ),
            weekends=WeekendOverrides(
                app=bool(model.enable_weekends_app),
                email=bool(model.enable_weekends_email),
            ),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


def serialize_category_switches(
    switches: Mapping[CategorySwitchKey, bool],
) -> dict[str, dict[str, bool]]:
    """Return the JSON representation ``{category: {channel: bool}}``."""

    serialized: dict[str, dict[str, bool]] = {}
    for (category, channel), enabled in switches.items():
        serialized.setdefault(category.value, {})[channel.value] = bool(enabled)
    return serialized


def deserialize_category_switches(raw: Any) -> dict[CategorySwitchKey, bool]:
    """Parse stored switches, filling gaps with the documented defaults."""

    switches = default_category_switches()
    if not isinstance(raw, Mapping):
        return switches
    for category_value, channels in raw.items():
        try:
            category = NotificationCategory(category_value)
        except ValueError:
            logger.warning("Ignoring unknown notification category '%s'", category_value)
            continue
        if not isinstance(channels, Mapping):
            continue
        for channel_value, enabled in channels.items():
            try:
                channel = NotificationChannel(channel_value)
            except ValueError:
                continue
            if channel in CATEGORY_GATED_CHANNELS:
                switches[(category, channel)] = bool(enabled)
    return switches


__all__ = [
    "NotificationPreferenceRepository",
    "deserialize_category_switches",
    "serialize_category_switches",
]
