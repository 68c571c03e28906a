"""Asynchronous facade over the synchronous SQLAlchemy repositories.

Every call opens its own session in a worker thread so concurrent flows never
share a session. Database failures surface as
:class:`~projectflow.domain.errors.TransientStoreError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from functools import partial
from typing import Callable, Iterable, TypeVar

import anyio
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from projectflow.domain.entities import (
    AuditLog,
    Notification,
    NotificationFilters,
    NotificationPreference,
    RecipientContact,
)
from projectflow.domain.errors import TransientStoreError
from projectflow.infrastructure.repositories import (
    AuditLogRepository,
    NotificationPreferenceRepository,
    NotificationRepository,
    UserContactRepository,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NotificationStore:
    """Persistence adapter consumed by the notification use cases."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def create_notification(
        self, notification: Notification, *, claimed_at: datetime | None = None
    ) -> Notification:
        return await self._run(
            lambda session: NotificationRepository(session).create(
                notification, claimed_at=claimed_at
            )
        )

    async def get_notification(self, notification_id: int) -> Notification | None:
        return await self._run(lambda session: NotificationRepository(session).get(notification_id))

    async def list_notifications(
        self,
        recipient_id: str,
        *,
        filters: NotificationFilters | None,
        offset: int,
        limit: int,
    ) -> Sequence[Notification]:
        return await self._run(
            lambda session: NotificationRepository(session).list_for_recipient(
                recipient_id, filters=filters, offset=offset, limit=limit
            )
        )

    async def count_notifications(
        self, recipient_id: str, *, filters: NotificationFilters | None
    ) -> int:
        return await self._run(
            lambda session: NotificationRepository(session).count_for_recipient(
                recipient_id, filters=filters
            )
        )

    async def count_unread(self, recipient_id: str) -> int:
        return await self._run(lambda session: NotificationRepository(session).count_unread(recipient_id))

    async def mark_as_read(
        self, notification_ids: Iterable[int], *, recipient_id: str, read_at: datetime
    ) -> int:
        ids = list(notification_ids)
        return await self._run(
            lambda session: NotificationRepository(session).mark_as_read(
                ids, recipient_id=recipient_id, read_at=read_at
            )
        )

    async def mark_all_as_read(self, recipient_id: str, *, read_at: datetime) -> int:
        return await self._run(
            lambda session: NotificationRepository(session).mark_all_as_read(
                recipient_id, read_at=read_at
            )
        )

    async def record_delivery(
        self,
        notification_id: int,
        *,
        attempted_at: datetime,
        delivered_at: datetime | None,
        via_app: bool,
        via_email: bool,
        via_push: bool,
        error: str | None,
    ) -> Notification | None:
        return await self._run(
            lambda session: NotificationRepository(session).record_delivery(
                notification_id,
                attempted_at=attempted_at,
                delivered_at=delivered_at,
                via_app=via_app,
                via_email=via_email,
                via_push=via_push,
                error=error,
            )
        )

    async def claim_pending(
        self,
        *,
        due_before: datetime,
        claimed_at: datetime,
        stale_before: datetime,
        limit: int,
    ) -> Sequence[Notification]:
        return await self._run(
            lambda session: NotificationRepository(session).claim_pending(
                due_before=due_before,
                claimed_at=claimed_at,
                stale_before=stale_before,
                limit=limit,
            )
        )

    async def delete_notification(self, notification_id: int) -> bool:
        return await self._run(lambda session: NotificationRepository(session).delete(notification_id))

    async def delete_created_before(self, cutoff: datetime, *, read_only: bool) -> int:
        return await self._run(
            lambda session: NotificationRepository(session).delete_created_before(
                cutoff, read_only=read_only
            )
        )

    async def count_for_org(self, org_id: str, **filters) -> int:
        return await self._run(
            lambda session: NotificationRepository(session).count_for_org(org_id, **filters)
        )

    async def count_by_type(self, org_id: str, *, created_since: datetime) -> dict[str, int]:
        return await self._run(
            lambda session: NotificationRepository(session).count_by_type(
                org_id, created_since=created_since
            )
        )

    async def get_or_create_preference(self, user_id: str, org_id: str) -> NotificationPreference:
        return await self._run(
            lambda session: NotificationPreferenceRepository(session).get_or_create(user_id, org_id)
        )

    async def save_preference(self, preference: NotificationPreference) -> NotificationPreference:
        """Overwrite the stored preference, creating the row if needed."""

        def _save(session: Session) -> NotificationPreference:
            repository = NotificationPreferenceRepository(session)
            repository.get_or_create(preference.user_id, preference.org_id)
            return repository.update(preference)

        return await self._run(_save)

    async def get_contact(self, user_id: str) -> RecipientContact | None:
        return await self._run(lambda session: UserContactRepository(session).get(user_id))

    async def save_contact(self, contact: RecipientContact) -> RecipientContact:
        return await self._run(lambda session: UserContactRepository(session).save(contact))

    async def create_audit_log(self, entry: AuditLog) -> AuditLog:
        return await self._run(lambda session: AuditLogRepository(session).create(entry))

    async def _run(self, operation: Callable[[Session], T]) -> T:
        return await anyio.to_thread.run_sync(partial(self._run_sync, operation))

    def _run_sync(self, operation: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            return operation(session)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Database operation failed: %s", exc)
            raise TransientStoreError("The notification store is temporarily unavailable") from exc
        finally:
            session.close()


__all__ = ["NotificationStore"]
