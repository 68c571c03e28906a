"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from projectflow.application.use_cases.notifications import NotificationService
from projectflow.config import Settings
from projectflow.infrastructure.security import Principal, decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def resolve_principal(token: str) -> Principal:
    """Resolve the authenticated caller for the provided token."""

    try:
        return decode_access_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    return resolve_principal(token)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Ensure the caller has administrator privileges."""

    if not principal.is_admin():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return principal


def require_sender(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Ensure the caller may create notifications for other users."""

    if not principal.can_send_notifications():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return principal


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


__all__ = [
    "get_app_settings",
    "get_current_principal",
    "get_notification_service",
    "oauth2_scheme",
    "require_admin",
    "require_sender",
    "resolve_principal",
]
