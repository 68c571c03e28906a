"""Domain entity representing an audit entry for notification operations."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

AUDIT_ACTION_CREATE = "CREATE"
AUDIT_ACTION_DELETE = "DELETE"
AUDIT_ACTION_PREFERENCES_UPDATED = "PREFERENCES_UPDATED"


@dataclass
class AuditLog:
    """Captured information about who changed what inside an organization."""

    id: int | None
    user_id: str
    org_id: str
    action: str
    entity_type: str
    entity_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


__all__ = [
    "AuditLog",
    "AUDIT_ACTION_CREATE",
    "AUDIT_ACTION_DELETE",
    "AUDIT_ACTION_PREFERENCES_UPDATED",
]
