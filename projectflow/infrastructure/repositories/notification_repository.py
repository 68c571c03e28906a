"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from projectflow.domain.entities import (
    Notification,
    NotificationCategory,
    NotificationFilters,
    NotificationPriority,
    NotificationType,
)
from projectflow.infrastructure.models import NotificationModel
from projectflow.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self, notification: Notification, *, claimed_at: datetime | None = None
    ) -> Notification:
        """Insert ``notification``.

        ``claimed_at`` marks the record as owned by the caller's delivery
        step so the scheduled sweep leaves it alone until the claim expires.
        """

        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        model.delivery_claimed_at = ensure_app_naive_datetime(claimed_at)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return None
        return self._to_entity(model)

    def list_for_recipient(
        self,
        recipient_id: str,
        *,
        filters: NotificationFilters | None = None,
        offset: int = 0,
        limit: int | None = 20,
    ) -> Sequence[Notification]:
        query = self._filtered_query(recipient_id, filters)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_for_recipient(
        self, recipient_id: str, *, filters: NotificationFilters | None = None
    ) -> int:
        return self._filtered_query(recipient_id, filters).count()

    def count_unread(self, recipient_id: str) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == recipient_id)
            .filter(NotificationModel.is_read.is_(False))
            .scalar()
            or 0
        )

    def mark_as_read(
        self,
        notification_ids: Iterable[int],
        *,
        recipient_id: str,
        read_at: datetime | None = None,
    ) -> int:
        """Mark the unread notifications among ``notification_ids`` as read.

        Identifiers owned by other recipients or already read are skipped.
        Returns the number of rows changed.
        """

        ids = [notification_id for notification_id in notification_ids if notification_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
            .update(self._read_values(read_at), synchronize_session=False)
        )
        self.session.commit()
        return updated

    def mark_all_as_read(self, recipient_id: str, *, read_at: datetime | None = None) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
            .update(self._read_values(read_at), synchronize_session=False)
        )
        self.session.commit()
        return updated

    def record_delivery(
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
        """Store the outcome of a delivery step. Returns ``None`` if the row is gone."""

        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return None
        model.delivery_attempted_at = ensure_app_naive_datetime(attempted_at)
        model.delivered_at = ensure_app_naive_datetime(delivered_at)
        model.delivered_via_app = via_app
        model.delivered_via_email = via_email
        model.delivered_via_push = via_push
        model.delivery_error = error
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def claim_pending(
        self,
        *,
        due_before: datetime,
        claimed_at: datetime,
        stale_before: datetime,
        limit: int = 50,
    ) -> Sequence[Notification]:
        """Claim due notifications whose delivery step never ran.

        A record is claimable when it is unclaimed or its claim is older than
        ``stale_before``. Each row is claimed with a conditional UPDATE, so a
        record returned here is not returned to a concurrent caller.
        """

        claimable = self._claimable(
            due=ensure_app_naive_datetime(due_before),
            stale=ensure_app_naive_datetime(stale_before),
        )
        candidate_ids = [
            row.id
            for row in self.session.query(NotificationModel.id)
            .filter(*claimable)
            .order_by(NotificationModel.created_at.asc(), NotificationModel.id.asc())
            .limit(limit)
        ]

        claimed_ids: list[int] = []
        claimed = ensure_app_naive_datetime(claimed_at)
        for notification_id in candidate_ids:
            updated = (
                self.session.query(NotificationModel)
                .filter(NotificationModel.id == notification_id, *claimable)
                .update(
                    {NotificationModel.delivery_claimed_at: claimed},
                    synchronize_session=False,
                )
            )
            if updated:
                claimed_ids.append(notification_id)
        self.session.commit()

        if not claimed_ids:
            return []
        models = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id.in_(claimed_ids))
            .order_by(NotificationModel.created_at.asc(), NotificationModel.id.asc())
            .all()
        )
        return [self._to_entity(model) for model in models]

    def delete(self, notification_id: int) -> bool:
        """Delete a notification by id.

        Returns ``True`` when a record was removed and ``False`` when the
        requested notification was not found.
        """

        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return False
        self.session.delete(model)
        self.session.commit()
        return True

    def delete_created_before(self, cutoff: datetime, *, read_only: bool = False) -> int:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.created_at < ensure_app_naive_datetime(cutoff)
        )
        if read_only:
            query = query.filter(NotificationModel.is_read.is_(True))
        deleted = query.delete(synchronize_session=False)
        self.session.commit()
        return deleted

    def count_for_org(
        self,
        org_id: str,
        *,
        created_since: datetime | None = None,
        delivered: bool | None = None,
        emailed: bool | None = None,
        unread: bool | None = None,
    ) -> int:
        query = self.session.query(func.count(NotificationModel.id)).filter(
            NotificationModel.org_id == org_id
        )
        if created_since is not None:
            query = query.filter(
                NotificationModel.created_at >= ensure_app_naive_datetime(created_since)
            )
        if delivered is not None:
            column = NotificationModel.delivered_at
            query = query.filter(column.isnot(None) if delivered else column.is_(None))
        if emailed is not None:
            query = query.filter(NotificationModel.delivered_via_email.is_(emailed))
        if unread is not None:
            query = query.filter(NotificationModel.is_read.is_(not unread))
        return query.scalar() or 0

    def count_by_type(self, org_id: str, *, created_since: datetime) -> dict[str, int]:
        rows = (
            self.session.query(NotificationModel.type, func.count(NotificationModel.id))
            .filter(NotificationModel.org_id == org_id)
            .filter(NotificationModel.created_at >= ensure_app_naive_datetime(created_since))
            .group_by(NotificationModel.type)
            .all()
        )
        return {notification_type: count for notification_type, count in rows}

    def _filtered_query(
        self, recipient_id: str, filters: NotificationFilters | None
    ) -> Query:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.recipient_id == recipient_id
        )
        if filters is None:
            return query
        if filters.unread_only:
            query = query.filter(NotificationModel.is_read.is_(False))
        if filters.category is not None:
            query = query.filter(NotificationModel.category == filters.category.value)
        if filters.type is not None:
            query = query.filter(NotificationModel.type == filters.type.value)
        return query

    @staticmethod
    def _claimable(*, due: datetime, stale: datetime) -> tuple:
        return (
            NotificationModel.delivery_attempted_at.is_(None),
            (NotificationModel.scheduled_for.is_(None)) | (NotificationModel.scheduled_for <= due),
            (NotificationModel.delivery_claimed_at.is_(None))
            | (NotificationModel.delivery_claimed_at < stale),
        )

    @staticmethod
    def _read_values(read_at: datetime | None) -> dict:
        return {
            NotificationModel.is_read: True,
            NotificationModel.read_at: ensure_app_naive_datetime(
                read_at or now_in_app_timezone()
            ),
        }

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.recipient_id = notification.recipient_id
        model.org_id = notification.org_id
        model.type = notification.type.value
        model.category = notification.category.value
        model.priority = notification.priority.value
        model.title = notification.title
        model.message = notification.message
        model.payload = notification.payload or {}
        model.entity_type = notification.entity_type
        model.entity_id = notification.entity_id
        model.created_at = (
            ensure_app_naive_datetime(notification.created_at)
            or ensure_app_naive_datetime(now_in_app_timezone())
        )
        model.scheduled_for = ensure_app_naive_datetime(notification.scheduled_for)
        model.delivery_attempted_at = ensure_app_naive_datetime(
            notification.delivery_attempted_at
        )
        model.delivered_at = ensure_app_naive_datetime(notification.delivered_at)
        model.delivered_via_app = notification.delivered_via_app
        model.delivered_via_email = notification.delivered_via_email
        model.delivered_via_push = notification.delivered_via_push
        model.delivery_error = notification.delivery_error
        model.is_read = notification.is_read
        model.read_at = ensure_app_naive_datetime(notification.read_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            org_id=model.org_id,
            type=NotificationType(model.type),
            category=NotificationCategory(model.category),
            priority=NotificationPriority(model.priority),
            title=model.title,
            message=model.message,
            payload=model.payload or {},
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            created_at=ensure_app_timezone(model.created_at),
            scheduled_for=ensure_app_timezone(model.scheduled_for),
            delivery_attempted_at=ensure_app_timezone(model.delivery_attempted_at),
            delivered_at=ensure_app_timezone(model.delivered_at),
            delivered_via_app=bool(model.delivered_via_app),
            delivered_via_email=bool(model.delivered_via_email),
            delivered_via_push=bool(model.delivered_via_push),
            delivery_error=model.delivery_error,
            is_read=bool(model.is_read),
            read_at=ensure_app_timezone(model.read_at),
        )


__all__ = ["NotificationRepository"]
