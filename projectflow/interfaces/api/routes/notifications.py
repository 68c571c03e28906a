"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from projectflow.application.use_cases.notifications import MAX_PAGE_SIZE, NotificationService
from projectflow.config import Settings
from projectflow.domain.entities import (
    NotificationCategory,
    NotificationFilters,
    NotificationType,
)
from projectflow.domain.errors import NotificationError
from projectflow.infrastructure.notifications import serialize_notification
from projectflow.infrastructure.security import Principal
from projectflow.interfaces.api.dependencies import (
    get_app_settings,
    get_current_principal,
    get_notification_service,
    require_admin,
    require_sender,
    resolve_principal,
)
from projectflow.interfaces.api.routes_helpers import http_error_for
from projectflow.interfaces.api.schemas import (
    CleanupRequest,
    CleanupResponse,
    MarkReadResponse,
    NotificationCreateRequest,
    NotificationCreateResponse,
    NotificationListResponse,
    NotificationMarkReadRequest,
    NotificationPreferenceRead,
    NotificationPreferenceUpdateRequest,
    NotificationRead,
    NotificationStatsRead,
    ProcessScheduledResponse,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    category: NotificationCategory | None = None,
    type: NotificationType | None = None,
    unread_only: bool = False,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """Return a page of the caller's notifications, newest first."""

    filters = NotificationFilters(category=category, type=type, unread_only=unread_only)
    try:
        result = await service.list_notifications(
            principal.user_id, page=page, limit=limit, filters=filters
        )
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return NotificationListResponse.from_page(result)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    try:
        count = await service.get_unread_count(principal.user_id)
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return UnreadCountResponse(unread_count=count)


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_notifications_read(
    payload: NotificationMarkReadRequest,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> MarkReadResponse:
    """Mark the given notifications (or all of them) as read for the caller."""

    try:
        if payload.mark_all:
            updated = await service.mark_all_as_read(principal.user_id)
        else:
            updated = await service.mark_multiple_as_read(payload.unique_ids(), principal.user_id)
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return MarkReadResponse(updated_count=updated)


@router.get("/preferences", response_model=NotificationPreferenceRead)
async def get_preferences(
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceRead:
    try:
        preference = await service.get_preferences(principal.user_id, principal.org_id)
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return NotificationPreferenceRead.from_entity(preference)


@router.put("/preferences", response_model=NotificationPreferenceRead)
async def update_preferences(
    payload: NotificationPreferenceUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceRead:
    """Apply a partial update to the caller's preferences."""

    try:
        preference = await service.upsert_preferences(
            principal.user_id, principal.org_id, payload.to_domain()
        )
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return NotificationPreferenceRead.from_entity(preference)


@router.post(
    "/create",
    response_model=NotificationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notifications(
    payload: NotificationCreateRequest,
    principal: Principal = Depends(require_sender),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationCreateResponse:
    """Send a notification to one or more users of the caller's organization."""

    recipients = list(dict.fromkeys(payload.recipient_ids))
    try:
        ids = await service.create_bulk_notifications(
            recipients,
            principal.org_id,
            payload.to_content(),
            send_now=payload.send_now,
            actor_id=principal.user_id,
        )
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return NotificationCreateResponse(ids=ids, requested=len(recipients), created=len(ids))


@router.get("/admin/stats", response_model=NotificationStatsRead)
async def get_notification_stats(
    days: int = Query(7, ge=1, le=365),
    principal: Principal = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationStatsRead:
    try:
        stats = await service.get_stats(principal.org_id, days=days)
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return NotificationStatsRead.from_entity(stats)


@router.post("/admin/cleanup", response_model=CleanupResponse)
async def cleanup_notifications(
    payload: CleanupRequest,
    _: Principal = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_app_settings),
) -> CleanupResponse:
    """Purge notifications older than the retention window."""

    days_to_keep = payload.days_to_keep
    if days_to_keep is None:
        days_to_keep = settings.notification_retention_days
    try:
        deleted = await service.cleanup(days_to_keep, payload.policy)
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return CleanupResponse(deleted_count=deleted)


@router.post("/admin/process-scheduled", response_model=ProcessScheduledResponse)
async def process_scheduled_notifications(
    _: Principal = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> ProcessScheduledResponse:
    try:
        processed = await service.process_scheduled_notifications()
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return ProcessScheduledResponse(processed=processed)


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    try:
        notification = await service.mark_as_read(notification_id, principal.user_id)
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return NotificationRead.from_entity(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    """Delete one of the caller's notifications."""

    try:
        await service.delete_notification(
            notification_id, principal.user_id, org_id=principal.org_id
        )
    except NotificationError as exc:
        raise http_error_for(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    try:
        principal = resolve_principal(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    service: NotificationService = websocket.app.state.notification_service
    manager = websocket.app.state.connection_manager

    try:
        pending = await service.list_notifications(
            principal.user_id,
            limit=MAX_PAGE_SIZE,
            filters=NotificationFilters(unread_only=True),
        )
    except NotificationError:
        logger.exception("Could not load pending notifications for %s", principal.user_id)
        await websocket.close(code=1011)
        return

    connection = await manager.connect(principal.user_id, websocket)
    try:
        if pending.items:
            await connection.send_json(
                {"type": "init", "data": [serialize_notification(n) for n in pending.items]}
            )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await connection.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    valid_ids = [value for value in ids if isinstance(value, int)]
                    try:
                        await service.mark_multiple_as_read(valid_ids, principal.user_id)
                    except NotificationError:
                        logger.warning("Could not acknowledge notifications for %s", principal.user_id)
                continue
    except WebSocketDisconnect:
        manager.disconnect(principal.user_id, websocket)
    except Exception:
        manager.disconnect(principal.user_id, websocket)
        raise


__all__ = ["router"]
