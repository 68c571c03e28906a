"""Facade exposing every notification operation available to callers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable

from projectflow.config import Settings
from projectflow.domain.entities import (
    AUDIT_ACTION_DELETE,
    Notification,
    NotificationContent,
    NotificationFilters,
    NotificationPage,
    NotificationPreference,
    NotificationPreferenceUpdate,
    NotificationStats,
)
from projectflow.domain.errors import ValidationError
from projectflow.infrastructure.channels import ChannelSender
from projectflow.infrastructure.store import NotificationStore
from projectflow.utils import now_in_app_timezone

from ..audit_logs import AuditTrail
from . import preferences
from .dispatcher import NotificationDispatcher
from .read_state import ReadStateTracker
from .retention import RetentionPolicy, RetentionSweeper

logger = logging.getLogger(__name__)


class NotificationService:
    """Single entry point wired once at startup and shared by the interfaces."""

    def __init__(
        self,
        store: NotificationStore,
        senders: Iterable[ChannelSender],
        *,
        clock: Callable[[], datetime] = now_in_app_timezone,
        send_timeout: float = 10.0,
        bulk_concurrency: int = 10,
        sweep_batch_size: int = 50,
        retention_policy: RetentionPolicy = RetentionPolicy.ALL,
    ) -> None:
        self.store = store
        self.audit = AuditTrail(store)
        self.dispatcher = NotificationDispatcher(
            store,
            senders,
            clock=clock,
            send_timeout=send_timeout,
            bulk_concurrency=bulk_concurrency,
            sweep_batch_size=sweep_batch_size,
            audit=self.audit,
        )
        self.read_state = ReadStateTracker(store, clock=clock)
        self.retention = RetentionSweeper(store, policy=retention_policy, clock=clock)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: NotificationStore,
        senders: Iterable[ChannelSender],
        settings: Settings,
        *,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> "NotificationService":
        return cls(
            store,
            senders,
            clock=clock,
            send_timeout=settings.channel_send_timeout_seconds,
            bulk_concurrency=settings.bulk_concurrency_limit,
            sweep_batch_size=settings.scheduled_batch_size,
            retention_policy=RetentionPolicy(settings.notification_retention_policy),
        )

    async def list_notifications(
        self,
        recipient_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        filters: NotificationFilters | None = None,
    ) -> NotificationPage:
        return await self.read_state.list_notifications(
            recipient_id, page=page, limit=limit, filters=filters
        )

    async def get_unread_count(self, recipient_id: str) -> int:
        return await self.read_state.get_unread_count(recipient_id)

    async def mark_as_read(self, notification_id: int, caller_id: str) -> Notification:
        return await self.read_state.mark_as_read(notification_id, caller_id)

    async def mark_multiple_as_read(self, notification_ids: Iterable[int], caller_id: str) -> int:
        return await self.read_state.mark_multiple_as_read(notification_ids, caller_id)

    async def mark_all_as_read(self, caller_id: str) -> int:
        return await self.read_state.mark_all_as_read(caller_id)

    async def delete_notification(
        self, notification_id: int, caller_id: str, *, org_id: str | None = None
    ) -> None:
        await self.read_state.delete_notification(notification_id, caller_id)
        if org_id is not None:
            await self.audit.record(
                user_id=caller_id,
                org_id=org_id,
                action=AUDIT_ACTION_DELETE,
                entity_type="notification",
                entity_id=notification_id,
            )

    async def get_preferences(self, user_id: str, org_id: str) -> NotificationPreference:
        return await preferences.get_preferences(self.store, user_id=user_id, org_id=org_id)

    async def upsert_preferences(
        self, user_id: str, org_id: str, update: NotificationPreferenceUpdate
    ) -> NotificationPreference:
        return await preferences.upsert_preferences(
            self.store, user_id=user_id, org_id=org_id, update=update, audit=self.audit
        )

    async def create_notification(
        self,
        recipient_id: str,
        org_id: str,
        content: NotificationContent,
        *,
        send_now: bool = True,
        actor_id: str | None = None,
    ) -> int:
        return await self.dispatcher.create(
            recipient_id, org_id, content, send_now=send_now, actor_id=actor_id
        )

    async def create_bulk_notifications(
        self,
        recipient_ids: Iterable[str],
        org_id: str,
        content: NotificationContent,
        *,
        send_now: bool = True,
        actor_id: str | None = None,
    ) -> list[int]:
        return await self.dispatcher.create_bulk(
            recipient_ids, org_id, content, send_now=send_now, actor_id=actor_id
        )

    async def process_scheduled_notifications(
        self, *, now: datetime | None = None, batch_size: int | None = None
    ) -> int:
        return await self.dispatcher.process_scheduled(now=now, batch_size=batch_size)

    async def cleanup(
        self, days_to_keep: int = 30, policy: RetentionPolicy | str | None = None
    ) -> int:
        return await self.retention.cleanup(days_to_keep, policy)

    async def get_stats(self, org_id: str, *, days: int = 7) -> NotificationStats:
        """Return delivery statistics for notifications created in the last ``days``."""

        if days < 1:
            raise ValidationError("days must be at least 1")
        since = self._clock() - timedelta(days=days)

        total = await self.store.count_for_org(org_id, created_since=since)
        delivered = await self.store.count_for_org(org_id, created_since=since, delivered=True)
        emailed = await self.store.count_for_org(org_id, created_since=since, emailed=True)
        unread = await self.store.count_for_org(org_id, created_since=since, unread=True)
        by_type = await self.store.count_by_type(org_id, created_since=since)
        return NotificationStats(
            days=days,
            total=total,
            delivered=delivered,
            emailed=emailed,
            unread=unread,
            by_type=by_type,
        )


__all__ = ["NotificationService"]
