"""Shared fixtures for the notification test-suite."""

from __future__ import annotations

from datetime import datetime, timezone

import anyio
import pytest

from projectflow import config
from projectflow.domain.entities import Notification, NotificationChannel
from projectflow.infrastructure.channels import DeliveryOutcome
from projectflow.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from projectflow.infrastructure.store import NotificationStore
from projectflow.utils.datetime import get_app_timezone


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def app_settings(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Pin the configuration so tests never read a developer ``.env`` file."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'app.db'}")
    monkeypatch.setenv("APP_TIMEZONE", "UTC")
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    for name in ("SENDGRID_API_KEY", "SENDGRID_SENDER", "PUSH_GATEWAY_URL", "PUSH_GATEWAY_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    config.reset_settings_cache()
    get_app_timezone.cache_clear()
    yield config.get_settings()
    config.reset_settings_cache()
    get_app_timezone.cache_clear()


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> NotificationStore:
    return NotificationStore(session_factory)


class FixedClock:
    """Callable clock whose current time is set by the test."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    # A Wednesday, outside the default quiet-hours window.
    return FixedClock(datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc))


class FakeSender:
    """Channel sender double recording every notification it receives.

    ``mode`` is one of ``ok``, ``fail``, ``raise`` or ``hang``.
    """

    def __init__(self, channel: NotificationChannel, mode: str = "ok") -> None:
        self.channel = channel
        self.mode = mode
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> DeliveryOutcome:
        self.sent.append(notification)
        if self.mode == "fail":
            return DeliveryOutcome.failed(self.channel, "rejected by transport")
        if self.mode == "raise":
            raise RuntimeError("transport exploded")
        if self.mode == "hang":
            await anyio.sleep(60)
        return DeliveryOutcome.ok(self.channel)


@pytest.fixture
def senders() -> dict[NotificationChannel, FakeSender]:
    return {channel: FakeSender(channel) for channel in NotificationChannel}


@pytest.fixture
def sender_factory():
    return FakeSender
