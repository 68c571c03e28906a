"""SQLAlchemy model for the recipient directory."""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.sql import expression

from projectflow.infrastructure.database import Base


class UserContactModel(Base):
    """Contact details of users that can receive notifications.

    Rows are maintained by the user management service; this service only
    reads them to resolve email addresses.
    """

    __tablename__ = "user_contact"

    user_id = Column(String(64), primary_key=True)
    org_id = Column(String(64), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=expression.true())


__all__ = ["UserContactModel"]
