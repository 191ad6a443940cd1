"""WebSocket transport with connection state machine and reconnect."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable

import aiohttp

from aiomccontrol.config import ChannelOptions
from aiomccontrol.exceptions import McConnectionError
from aiomccontrol.models import ConnectionState

_LOGGER = logging.getLogger(__name__)


class WsTransport:
    """Owns a single WebSocket connection and its lifecycle.

    Handles:
    - Connection state machine (IDLE → CONNECTING → OPEN → CLOSED)
    - Text receive loop dispatching to a callback
    - Fail-fast sends (no queuing while not open)
    - Reconnect with exponential backoff + jitter
    - ``await_open()`` waiters
    - Graceful close with task cancellation

    ``on_state_change`` is invoked synchronously on every transition, so a
    listener reacting to CLOSED runs before any reconnect attempt starts.
    """

    def __init__(
        self,
        options: ChannelOptions,
        on_message: Callable[[str | bytes], None],
        on_state_change: Callable[[ConnectionState, str | None], None],
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._options = options
        self._on_message = on_message
        self._on_state_change = on_state_change
        self._session = session
        self._owns_session: bool = session is None

        self._state: ConnectionState = ConnectionState.IDLE
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._open_waiters: list[asyncio.Future[None]] = []
        self._backoff: float = options.initial_backoff
        self._reconnect_attempts: int = 0
        self._closed: bool = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """True when the WebSocket is open."""
        return self._state is ConnectionState.OPEN and self._ws is not None

    @property
    def url(self) -> str:
        return self._options.ws_url

    @property
    def reconnect_attempts(self) -> int:
        """Reconnect attempts since the last successful open."""
        return self._reconnect_attempts

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def async_connect(self) -> None:
        """Open the WebSocket. No-op when already connecting or open.

        Raises McConnectionError if the handshake fails. With
        ``auto_reconnect`` a retry is scheduled before raising.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return
        self._closed = False
        try:
            await self._async_open()
        except McConnectionError:
            if self._options.auto_reconnect and not self._closed:
                self._schedule_reconnect()
            raise

    async def await_open(self) -> None:
        """Return once the connection is open.

        Returns immediately when already open. Otherwise waits for the next
        successful open; failed attempts do not wake the waiter. Raises
        McConnectionError if the transport is closed explicitly meanwhile.
        """
        if self.connected:
            return
        if self._closed:
            raise McConnectionError("Transport closed")
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._open_waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._open_waiters:
                self._open_waiters.remove(waiter)

    async def async_send(self, data: str) -> None:
        """Send a text frame over the WebSocket.

        Raises McConnectionError if not connected or on send failure.
        """
        if not self.connected:
            raise McConnectionError("Not connected")
        assert self._ws is not None  # for type-checker; guarded above
        try:
            await self._ws.send_str(data)
        except Exception as err:
            raise McConnectionError(f"Send failed: {err}") from err

    async def async_close(self) -> None:
        """Close the connection, stop reconnecting. Idempotent."""
        self._closed = True
        await _cancel_task(self._reconnect_task)
        self._reconnect_task = None

        ws = self._ws
        if ws is not None:
            self._set_state(ConnectionState.CLOSING, None)
            self._ws = None
            await _cancel_task(self._recv_task)
            self._recv_task = None
            if not ws.closed:
                await ws.close()

        if self._state is not ConnectionState.CLOSED:
            self._set_state(ConnectionState.CLOSED, None)

        for waiter in self._open_waiters:
            if not waiter.done():
                waiter.set_exception(McConnectionError("Transport closed"))
        self._open_waiters.clear()

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # Internal — connection lifecycle
    # ------------------------------------------------------------------

    async def _async_open(self) -> None:
        url = self._options.ws_url
        self._set_state(ConnectionState.CONNECTING, None)
        try:
            ws = await asyncio.wait_for(
                self._ensure_session().ws_connect(
                    url, heartbeat=self._options.heartbeat
                ),
                timeout=self._options.handshake_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as err:
            error = str(err) or type(err).__name__
            self._set_state(ConnectionState.CLOSED, error)
            raise McConnectionError(
                f"Cannot connect to {url}: {error}"
            ) from err

        if self._closed:
            # async_close() ran while the handshake was in flight.
            await ws.close()
            raise McConnectionError("Transport closed")

        self._ws = ws
        self._backoff = self._options.initial_backoff
        self._reconnect_attempts = 0
        self._recv_task = asyncio.get_running_loop().create_task(
            self._recv_loop(ws)
        )
        _LOGGER.info("Connected to %s", url)
        self._set_state(ConnectionState.OPEN, None)

        for waiter in self._open_waiters:
            if not waiter.done():
                waiter.set_result(None)
        self._open_waiters.clear()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _set_state(self, state: ConnectionState, error: str | None) -> None:
        self._state = state
        self._on_state_change(state, error)

    def _handle_closed(self, error: str) -> None:
        """React to an unexpected close: CLOSED, then maybe reconnect."""
        self._ws = None
        self._recv_task = None
        _LOGGER.info("Connection to %s lost: %s", self.url, error)
        self._set_state(ConnectionState.CLOSED, error)
        if self._options.auto_reconnect and not self._closed:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect_loop()
        )

    # ------------------------------------------------------------------
    # Internal — background loops
    # ------------------------------------------------------------------

    async def _recv_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Read frames from the WebSocket and dispatch them."""
        error = "connection closed"
        try:
            async for msg in ws:
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._on_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = f"WebSocket error: {ws.exception()}"
                    _LOGGER.error("%s", error)
                    break
                elif msg.type in (
                    aiohttp.WSMsgType.CLOSE,
                    aiohttp.WSMsgType.CLOSING,
                    aiohttp.WSMsgType.CLOSED,
                ):
                    _LOGGER.debug("WebSocket closed by server")
                    break
        except asyncio.CancelledError:
            return
        except Exception as err:  # noqa: BLE001
            _LOGGER.error("Recv loop error: %s", err)
            error = str(err)

        if self._ws is ws:
            self._handle_closed(error)
        if not ws.closed:
            await ws.close()

    async def _reconnect_loop(self) -> None:
        """Exponential-backoff reconnect loop."""
        jitter = random.random() * self._options.jitter  # first retry only

        while not self._closed and self._state is ConnectionState.CLOSED:
            wait_time = self._backoff + jitter
            jitter = 0.0
            self._reconnect_attempts += 1
            _LOGGER.info(
                "Reconnecting to %s in %.1fs (attempt %d)",
                self.url,
                wait_time,
                self._reconnect_attempts,
            )
            try:
                await asyncio.sleep(wait_time)
            except asyncio.CancelledError:
                return

            if self._closed or self._state is not ConnectionState.CLOSED:
                return

            try:
                await self._async_open()
                _LOGGER.info("Reconnected successfully")
                return
            except McConnectionError as err:
                _LOGGER.warning("Reconnect failed: %s", err)
                self._backoff = min(
                    self._backoff * self._options.backoff_factor,
                    self._options.max_backoff,
                )


async def _cancel_task(task: asyncio.Task[None] | None) -> None:
    if task is None or task.done():
        return
    if task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
