"""Best-effort audit trail for notification operations."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from projectflow.domain.entities import AuditLog

logger = logging.getLogger(__name__)


class AuditLogWriter(Protocol):
    async def create_audit_log(self, entry: AuditLog) -> AuditLog:
        ...


class AuditTrail:
    """Record audit entries without ever failing the surrounding operation."""

    def __init__(self, writer: AuditLogWriter) -> None:
        self._writer = writer

    async def record(
        self,
        *,
        user_id: str,
        org_id: str,
        action: str,
        entity_type: str,
        entity_id: str | int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditLog(
            id=None,
            user_id=user_id,
            org_id=org_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            metadata=metadata or {},
        )
        try:
            await self._writer.create_audit_log(entry)
        except Exception:  # noqa: BLE001 - audit failures must not reach callers
            logger.exception(
                "Failed to record audit entry %s for %s %s", action, entity_type, entity_id
            )


__all__ = ["AuditLogWriter", "AuditTrail"]
