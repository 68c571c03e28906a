"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import expression

from projectflow.infrastructure.database import Base
from projectflow.utils import now_in_app_naive_datetime

from .types import json_type


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_recipient_is_read", "recipient_id", "is_read"),
        Index("ix_notification_recipient_created_at", "recipient_id", "created_at"),
        Index("ix_notification_org_type_created_at", "org_id", "type", "created_at"),
        Index("ix_notification_pending", "delivery_attempted_at", "scheduled_for"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(String(64), nullable=False, index=True)
    org_id = Column(String(64), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False, default="Medium")
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    payload = Column(json_type, nullable=False, default=dict)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    scheduled_for = Column(DateTime(), nullable=True)
    delivery_claimed_at = Column(DateTime(), nullable=True)
    delivery_attempted_at = Column(DateTime(), nullable=True)
    delivered_at = Column(DateTime(), nullable=True)
    delivered_via_app = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    delivered_via_email = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    delivered_via_push = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    delivery_error = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    read_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationModel"]
