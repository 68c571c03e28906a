"""Registry of the websocket connections opened by notification recipients."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

import anyio
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class LiveConnection:
    """An accepted websocket whose writes are serialized.

    The dispatcher may push to a socket while the websocket handler is
    answering a ping on it, so every write goes through :meth:`send_json`.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._write_lock = anyio.Lock()

    async def send_json(self, message: dict[str, Any]) -> None:
        async with self._write_lock:
            await self.websocket.send_json(message)


class NotificationConnectionManager:
    """Track live connections per recipient and fan messages out to them."""

    def __init__(self) -> None:
        self._by_user: defaultdict[str, dict[WebSocket, LiveConnection]] = defaultdict(dict)

    async def connect(self, user_id: str, websocket: WebSocket) -> LiveConnection:
        """Accept ``websocket`` and register it under ``user_id``."""

        await websocket.accept()
        connection = LiveConnection(websocket)
        self._by_user[user_id][websocket] = connection
        logger.debug("User %s has %s live connection(s)", user_id, len(self._by_user[user_id]))
        return connection

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        pool = self._by_user.get(user_id)
        if pool is None:
            return
        pool.pop(websocket, None)
        if not pool:
            del self._by_user[user_id]

    def connection_count(self, user_id: str) -> int:
        return len(self._by_user.get(user_id, {}))

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """Write ``message`` to each live connection of ``user_id``.

        Returns how many connections accepted the write. A connection that
        fails is removed from the registry.
        """

        delivered = 0
        for websocket, connection in list(self._by_user.get(user_id, {}).items()):
            try:
                await connection.send_json(message)
            except Exception as exc:  # noqa: BLE001 - a dead socket only leaves the registry
                logger.info("Dropping websocket for user %s: %s", user_id, exc)
                self.disconnect(user_id, websocket)
            else:
                delivered += 1
        return delivered


__all__ = ["LiveConnection", "NotificationConnectionManager"]
