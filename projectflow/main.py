"""Application factory and runtime wiring."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from projectflow.application.use_cases.notifications import NotificationService
from projectflow.config import Settings, get_settings
from projectflow.infrastructure.channels import (
    ChannelSender,
    EmailSender,
    InAppSender,
    PushSender,
)
from projectflow.infrastructure.database import (
    build_session_factory,
    engine_from_settings,
    initialize_database,
)
from projectflow.infrastructure.notifications import NotificationConnectionManager
from projectflow.infrastructure.store import NotificationStore
from projectflow.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@dataclass
class NotificationRuntime:
    """Objects shared by the HTTP interface and the sweep script."""

    engine: Engine
    store: NotificationStore
    connection_manager: NotificationConnectionManager
    service: NotificationService


@asynccontextmanager
async def notification_runtime(settings: Settings) -> AsyncIterator[NotificationRuntime]:
    """Build the store, channel senders and service; release them on exit."""

    engine = engine_from_settings(settings)
    initialize_database(engine)
    store = NotificationStore(build_session_factory(engine))
    manager = NotificationConnectionManager()

    async with httpx.AsyncClient(timeout=settings.channel_send_timeout_seconds) as client:
        senders = _configured_senders(settings, store, manager, client)
        service = NotificationService.from_settings(store, senders, settings)
        try:
            yield NotificationRuntime(
                engine=engine,
                store=store,
                connection_manager=manager,
                service=service,
            )
        finally:
            engine.dispose()


def _configured_senders(
    settings: Settings,
    store: NotificationStore,
    manager: NotificationConnectionManager,
    client: httpx.AsyncClient,
) -> list[ChannelSender]:
    """Return the in-app sender plus every external sender with a transport.

    Channels without a sender are skipped by the dispatcher rather than
    recorded as failed deliveries.
    """

    senders: list[ChannelSender] = [InAppSender(manager)]
    email = EmailSender(
        store,
        api_key=settings.sendgrid_api_key,
        sender=settings.sendgrid_sender,
        timeout=settings.channel_send_timeout_seconds,
    )
    push = PushSender(
        client,
        gateway_url=settings.push_gateway_url,
        token=settings.push_gateway_token,
    )
    for channel_sender in (email, push):
        if channel_sender.configured:
            senders.append(channel_sender)
        else:
            logger.info("%s channel disabled: no transport configured", channel_sender.channel.value)
    return senders


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the notification service at startup and release it on shutdown."""

    async with notification_runtime(app.state.settings) as runtime:
        app.state.notification_service = runtime.service
        app.state.connection_manager = runtime.connection_manager
        logger.info("Notification service ready")
        yield


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="ProjectFlow Notifications", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


__all__ = ["NotificationRuntime", "configure_logging", "create_app", "notification_runtime"]
