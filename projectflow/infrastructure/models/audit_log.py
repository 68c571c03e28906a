"""SQLAlchemy model for audit records of notification operations."""

from sqlalchemy import Column, DateTime, Integer, String

from projectflow.infrastructure.database import Base
from projectflow.utils import now_in_app_naive_datetime

from .types import json_type


class AuditLogModel(Base):
    """Database representation of audit events."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    org_id = Column(String(64), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(255), nullable=True)
    # ``metadata`` is reserved on declarative classes.
    details = Column("metadata", json_type, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["AuditLogModel"]
