"""Tests for the websocket connection registry."""

from __future__ import annotations

import pytest

from projectflow.infrastructure.notifications import NotificationConnectionManager

pytestmark = pytest.mark.anyio


class _Socket:
    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.accepted = False
        self.messages: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.messages.append(message)


async def test_send_to_user_reaches_every_connection():
    manager = NotificationConnectionManager()
    first, second, other = _Socket(), _Socket(), _Socket()
    await manager.connect("u1", first)
    await manager.connect("u1", second)
    await manager.connect("u2", other)

    delivered = await manager.send_to_user("u1", {"type": "notification"})

    assert delivered == 2
    assert first.accepted and second.accepted
    assert first.messages == second.messages == [{"type": "notification"}]
    assert other.messages == []


async def test_broken_connections_are_dropped():
    manager = NotificationConnectionManager()
    healthy, broken = _Socket(), _Socket(broken=True)
    await manager.connect("u1", healthy)
    await manager.connect("u1", broken)

    delivered = await manager.send_to_user("u1", {"type": "ping"})

    assert delivered == 1
    assert manager.connection_count("u1") == 1


async def test_disconnect_forgets_user_without_connections():
    manager = NotificationConnectionManager()
    socket = _Socket()
    await manager.connect("u1", socket)

    manager.disconnect("u1", socket)
    manager.disconnect("u1", socket)

    assert manager.connection_count("u1") == 0
    assert await manager.send_to_user("u1", {"type": "ping"}) == 0
