"""Persistence layer for audit log records."""

from typing import Iterable

from sqlalchemy.orm import Session

from projectflow.domain.entities import AuditLog
from projectflow.infrastructure.models import AuditLogModel
from projectflow.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class AuditLogRepository:
    """Provide write and lookup helpers for :class:`AuditLog` entries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, entry: AuditLog) -> AuditLog:
        model = AuditLogModel()
        self._apply_entity_to_model(model, entry)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list(self, *, org_id: str, entity_type: str | None = None) -> list[AuditLog]:
        """Return audit entries of ``org_id``, optionally filtered by entity type."""

        query = self.session.query(AuditLogModel).filter(AuditLogModel.org_id == org_id)
        if entity_type is not None:
            query = query.filter(AuditLogModel.entity_type == entity_type)

        models: Iterable[AuditLogModel] = query.order_by(AuditLogModel.id).all()
        return [self._to_entity(model) for model in models]

    @staticmethod
    def _to_entity(model: AuditLogModel) -> AuditLog:
        return AuditLog(
            id=model.id,
            user_id=model.user_id,
            org_id=model.org_id,
            action=model.action,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            metadata=dict(model.details or {}),
            created_at=ensure_app_timezone(model.created_at),
        )

    @staticmethod
    def _apply_entity_to_model(model: AuditLogModel, entry: AuditLog) -> None:
        model.user_id = entry.user_id
        model.org_id = entry.org_id
        model.action = entry.action
        model.entity_type = entry.entity_type
        model.entity_id = entry.entity_id
        model.details = dict(entry.metadata or {})
        model.created_at = (
            ensure_app_naive_datetime(entry.created_at)
            or ensure_app_naive_datetime(now_in_app_timezone())
        )


__all__ = ["AuditLogRepository"]
