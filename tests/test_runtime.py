"""Tests for the runtime wiring shared by the API and the sweep script."""

from __future__ import annotations

import httpx
import pytest

from projectflow.domain.entities import (
    NotificationCategory,
    NotificationChannel,
    NotificationContent,
    NotificationType,
)
from projectflow.infrastructure.notifications import NotificationConnectionManager
from projectflow.main import _configured_senders, notification_runtime

pytestmark = pytest.mark.anyio


def _content() -> NotificationContent:
    return NotificationContent(
        type=NotificationType.SYSTEM_MAINTENANCE,
        category=NotificationCategory.SYSTEM,
        title="Maintenance tonight",
        message="ProjectFlow will be unavailable from 22:00 to 22:30.",
    )


async def test_unconfigured_channels_do_not_record_delivery_errors(app_settings):
    async with notification_runtime(app_settings) as runtime:
        (notification_id,) = await runtime.service.create_bulk_notifications(
            ["u1"], "org-1", _content()
        )
        stored = await runtime.store.get_notification(notification_id)

    assert stored.delivered_via_app is True
    assert stored.delivered_via_email is False
    assert stored.delivered_via_push is False
    assert stored.delivered_at is not None
    assert stored.delivery_error is None


async def test_configured_transports_are_registered(app_settings, store):
    settings = app_settings.model_copy(
        update={
            "push_gateway_url": "https://push.example/v1/send",
            "sendgrid_api_key": "SG.fake",
            "sendgrid_sender": "noreply@example.com",
        }
    )

    async with httpx.AsyncClient() as client:
        default_channels = [
            sender.channel
            for sender in _configured_senders(
                app_settings, store, NotificationConnectionManager(), client
            )
        ]
        configured_channels = [
            sender.channel
            for sender in _configured_senders(settings, store, NotificationConnectionManager(), client)
        ]

    assert default_channels == [NotificationChannel.APP]
    assert configured_channels == [
        NotificationChannel.APP,
        NotificationChannel.EMAIL,
        NotificationChannel.PUSH,
    ]
