"""JWT helpers for the bearer tokens presented by API callers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from projectflow.config import get_settings

ALGORITHM = "HS256"

ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_MEMBER = "MEMBER"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller extracted from a verified token."""

    user_id: str
    org_id: str
    role: str = ROLE_MEMBER

    def is_admin(self) -> bool:
        return self.role.upper() == ROLE_ADMIN

    def can_send_notifications(self) -> bool:
        return self.role.upper() in {ROLE_ADMIN, ROLE_MANAGER}


def create_access_token(
    principal: Principal,
    *,
    secret_key: str | None = None,
    expires_delta: timedelta = timedelta(hours=1),
) -> str:
    """Issue a token for ``principal``; tokens are normally issued by the auth service."""

    expire = datetime.now(timezone.utc) + expires_delta
    claims = {
        "sub": principal.user_id,
        "org_id": principal.org_id,
        "role": principal.role,
        "exp": expire,
    }
    return jwt.encode(claims, secret_key or get_settings().secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, *, secret_key: str | None = None) -> Principal:
    try:
        payload = jwt.decode(token, secret_key or get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc

    user_id = payload.get("sub")
    org_id = payload.get("org_id")
    if not isinstance(user_id, str) or not user_id:
        raise ValueError("Could not validate credentials")
    if not isinstance(org_id, str) or not org_id:
        raise ValueError("Could not validate credentials")

    role = payload.get("role")
    return Principal(
        user_id=user_id,
        org_id=org_id,
        role=role if isinstance(role, str) and role else ROLE_MEMBER,
    )


__all__ = [
    "ALGORITHM",
    "Principal",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_MEMBER",
    "create_access_token",
    "decode_access_token",
]
