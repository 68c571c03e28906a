"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import expression

from projectflow.infrastructure.database import Base
from projectflow.utils import now_in_app_naive_datetime

from .types import json_type


class NotificationPreferenceModel(Base):
    """Database representation of a user's notification settings.

    Category switches live in a JSON column shaped as
    ``{"task": {"app": true, "email": true}, ...}`` so new categories need no
    schema change.
    """

    __tablename__ = "notification_preference"
    __table_args__ = (
        UniqueConstraint("user_id", "org_id", name="uq_notification_preference_user_org"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    org_id = Column(String(64), nullable=False)
    enable_in_app = Column(Boolean, nullable=False, default=True, server_default=expression.true())
    enable_email = Column(Boolean, nullable=False, default=True, server_default=expression.true())
    enable_push = Column(Boolean, nullable=False, default=True, server_default=expression.true())
    digest_frequency = Column(String(20), nullable=False, default="Daily")
    category_switches = Column(json_type, nullable=False, default=dict)
    quiet_hours_enabled = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    quiet_hours_start = Column(String(5), nullable=False, default="22:00")
    quiet_hours_end = Column(String(5), nullable=False, default="08:00")
    quiet_hours_timezone = Column(String(64), nullable=False, default="UTC")
    enable_weekends_app = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    enable_weekends_email = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)


__all__ = ["NotificationPreferenceModel"]
