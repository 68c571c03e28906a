"""Helper utilities shared across API route handlers."""

from fastapi import HTTPException, status

from projectflow.domain.errors import (
    ForbiddenError,
    NotFoundError,
    NotificationError,
    TransientStoreError,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[NotificationError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error_for(exc: NotificationError) -> HTTPException:
    """Return the HTTP error matching a notification use-case failure."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


__all__ = ["http_error_for"]
