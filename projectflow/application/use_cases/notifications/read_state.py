"""Read-state and listing use cases scoped to a single recipient."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Protocol, Sequence

from projectflow.domain.entities import (
    Notification,
    NotificationFilters,
    NotificationPage,
)
from projectflow.domain.errors import ForbiddenError, NotFoundError, ValidationError
from projectflow.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class ReadStateStore(Protocol):
    async def get_notification(self, notification_id: int) -> Notification | None:
        ...

    async def list_notifications(
        self,
        recipient_id: str,
        *,
        filters: NotificationFilters | None,
        offset: int,
        limit: int,
    ) -> Sequence[Notification]:
        ...

    async def count_notifications(
        self, recipient_id: str, *, filters: NotificationFilters | None
    ) -> int:
        ...

    async def count_unread(self, recipient_id: str) -> int:
        ...

    async def mark_as_read(
        self, notification_ids: Iterable[int], *, recipient_id: str, read_at: datetime
    ) -> int:
        ...

    async def mark_all_as_read(self, recipient_id: str, *, read_at: datetime) -> int:
        ...

    async def delete_notification(self, notification_id: int) -> bool:
        ...


class ReadStateTracker:
    """Track read state for the recipients that own notifications."""

    def __init__(
        self,
        store: ReadStateStore,
        *,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._store = store
        self._clock = clock

    async def list_notifications(
        self,
        recipient_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        filters: NotificationFilters | None = None,
    ) -> NotificationPage:
        if page < 1:
            raise ValidationError("Page must be greater than or equal to 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        items = await self._store.list_notifications(
            recipient_id, filters=filters, offset=(page - 1) * limit, limit=limit
        )
        total = await self._store.count_notifications(recipient_id, filters=filters)
        unread = await self._store.count_unread(recipient_id)
        return NotificationPage(
            items=list(items), total=total, unread_count=unread, page=page, limit=limit
        )

    async def get_unread_count(self, recipient_id: str) -> int:
        return await self._store.count_unread(recipient_id)

    async def mark_as_read(self, notification_id: int, caller_id: str) -> Notification:
        """Mark one notification read; an already-read record keeps its ``read_at``."""

        notification = await self._get_owned(notification_id, caller_id)
        if notification.is_read:
            return notification

        await self._store.mark_as_read(
            [notification_id], recipient_id=caller_id, read_at=self._clock()
        )
        refreshed = await self._store.get_notification(notification_id)
        return refreshed or notification

    async def mark_multiple_as_read(
        self, notification_ids: Iterable[int], caller_id: str
    ) -> int:
        """Mark the caller's unread notifications among ``notification_ids``.

        Identifiers that are unknown, owned by someone else or already read are
        skipped. Returns the number of records that changed.
        """

        ids = list(dict.fromkeys(notification_ids))
        if not ids:
            return 0
        updated = await self._store.mark_as_read(
            ids, recipient_id=caller_id, read_at=self._clock()
        )
        logger.debug("Marked %s of %s notification(s) read for %s", updated, len(ids), caller_id)
        return updated

    async def mark_all_as_read(self, caller_id: str) -> int:
        return await self._store.mark_all_as_read(caller_id, read_at=self._clock())

    async def delete_notification(self, notification_id: int, caller_id: str) -> None:
        """Delete a notification owned by ``caller_id``.

        Deleting a scheduled notification before the sweep runs cancels it.
        """

        await self._get_owned(notification_id, caller_id)
        if not await self._store.delete_notification(notification_id):
            raise NotFoundError("Notification not found")

    async def _get_owned(self, notification_id: int, caller_id: str) -> Notification:
        notification = await self._store.get_notification(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.recipient_id != caller_id:
            raise ForbiddenError("Notification belongs to another user")
        return notification


__all__ = ["MAX_PAGE_SIZE", "ReadStateStore", "ReadStateTracker"]
