"""Domain entity with the contact details needed to reach a recipient."""

from dataclasses import dataclass


@dataclass
class RecipientContact:
    """Directory entry for a notification recipient."""

    user_id: str
    org_id: str
    name: str
    email: str | None
    is_active: bool = True


__all__ = ["RecipientContact"]
