"""Read access to the recipient directory."""

from sqlalchemy.orm import Session

from projectflow.domain.entities import RecipientContact
from projectflow.infrastructure.models import UserContactModel


class UserContactRepository:
    """Lookup and upsert helpers for :class:`RecipientContact` entries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> RecipientContact | None:
        model = self.session.get(UserContactModel, user_id)
        if model is None:
            return None
        return self._to_entity(model)

    def save(self, contact: RecipientContact) -> RecipientContact:
        model = self.session.get(UserContactModel, contact.user_id)
        if model is None:
            model = UserContactModel(user_id=contact.user_id)
        model.org_id = contact.org_id
        model.name = contact.name
        model.email = contact.email
        model.is_active = contact.is_active
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserContactModel) -> RecipientContact:
        return RecipientContact(
            user_id=model.user_id,
            org_id=model.org_id,
            name=model.name,
            email=model.email,
            is_active=bool(model.is_active),
        )


__all__ = ["UserContactRepository"]
