"""Shared fakes for the transport and channel tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from aiomccontrol.config import ChannelOptions


class FakeWebSocket:
    """Stand-in for aiohttp.ClientWebSocketResponse driven by the test.

    Frames fed with ``feed_*`` are yielded by ``async for``; frames sent by
    the code under test are collected in ``sent``.
    """

    def __init__(self) -> None:
        self.closed = False
        self.sent: list[str] = []
        self.send_error: Exception | None = None
        self.on_send: Callable[[dict[str, Any]], None] | None = None
        self._error: Exception | None = None
        self._queue: asyncio.Queue[SimpleNamespace | None] = asyncio.Queue()

    async def send_str(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)
        if self.on_send is not None:
            self.on_send(json.loads(data))

    async def close(self) -> bool:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(None)
        return True

    def exception(self) -> Exception | None:
        return self._error

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(data) for data in self.sent]

    def feed_text(self, data: str) -> None:
        self._queue.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=data))

    def feed_json(self, msg: dict[str, Any]) -> None:
        self.feed_text(json.dumps(msg))

    def feed_close(self) -> None:
        self._queue.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.CLOSE, data=1000))

    def feed_error(self, error: Exception) -> None:
        self._error = error
        self._queue.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.ERROR, data=error))

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> SimpleNamespace:
        msg = await self._queue.get()
        if msg is None:
            raise StopAsyncIteration
        return msg


@pytest.fixture
def make_ws() -> Callable[[], FakeWebSocket]:
    return FakeWebSocket


@pytest.fixture
def options() -> ChannelOptions:
    """Options with instant reconnects and no auto-reconnect."""
    return ChannelOptions(
        url="ws://control.test:2345/horsney",
        auto_reconnect=False,
        initial_backoff=0.0,
        jitter=0.0,
        default_timeout=5.0,
    )


@pytest.fixture
def session() -> MagicMock:
    """Mocked ClientSession; tests set ``session.ws_connect``."""
    mock = MagicMock(spec=aiohttp.ClientSession)
    mock.ws_connect = AsyncMock(side_effect=aiohttp.ClientError("no server"))
    return mock


async def _settle(turns: int = 5) -> None:
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def settle() -> Callable[..., Any]:
    """Awaitable helper letting background tasks (recv loop, reconnect) run."""
    return _settle
