"""
Shared fixtures for the RapidAPI Connect SDK tests.

HTTP is mocked with respx; the event socket is replaced with a scripted
:class:`FakeSocket` installed over ``websockets.connect``.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pytest

from rapidapi_connect import events
from rapidapi_connect.types import ConnectConfig

PROJECT = "p1"
KEY = "k1"
BLOCK_BASE = "http://blocks.test/connect"
CALLBACK_BASE = "http://webhooks.test"
WS_BASE = "ws://webhooks.test"


def make_config(**overrides: Any) -> ConnectConfig:
    values: dict[str, Any] = {
        "block_base_url": BLOCK_BASE,
        "callback_base_url": CALLBACK_BASE,
        "websocket_base_url": WS_BASE,
        "heartbeat_interval_ms": 0,
    }
    values.update(overrides)
    return ConnectConfig(**values)


class FakeSocket:
    """Scripted stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.url: str | None = None
        self.sent: list[dict[str, Any]] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, frame: dict[str, Any] | str) -> FakeSocket:
        self._inbox.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))
        return self

    def remote_close(self, code: int | None = 1000, reason: str = "") -> FakeSocket:
        self._inbox.put_nowait(("close", code, reason))
        return self

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._inbox.put_nowait(("close", code, reason))

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if isinstance(item, tuple):
            _, self.close_code, self.close_reason = item
            raise StopAsyncIteration
        return item


@pytest.fixture
def fake_socket(monkeypatch: pytest.MonkeyPatch) -> Callable[[], FakeSocket]:
    """Install a FakeSocket as the result of ``websockets.connect``."""
    state: dict[str, Any] = {"connects": 0}

    def install() -> FakeSocket:
        socket = FakeSocket()

        async def fake_connect(url: str, *args: Any, **kwargs: Any) -> FakeSocket:
            state["connects"] += 1
            socket.url = url
            return socket

        monkeypatch.setattr(events.websockets, "connect", fake_connect)
        return socket

    install.state = state  # type: ignore[attr-defined]
    return install


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)
