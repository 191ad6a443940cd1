"""Async request/response channel over a single WebSocket."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from types import TracebackType
from typing import Any, TypeVar, overload

import aiohttp

from .config import ChannelOptions
from .exceptions import McConnectionError, McProtocolError
from .messages import Call, Push
from .models import ConnectionInfo, ConnectionState, Err, Ok, Status
from .ws.pending import PendingRequests
from .ws.protocol import (
    RESPONSE_SUFFIX,
    Envelope,
    call_name,
    decode_envelope,
    encode_envelope,
    encode_request,
    parse_status,
)
from .ws.transport import WsTransport

_LOGGER = logging.getLogger(__name__)

CONNECTION_CLOSED = "connection closed"

R = TypeVar("R")


class AsyncChannel:
    """RPC channel: correlated calls, push subscriptions, reconnection.

    Construct one per process entry point and hand it to collaborators.
    Every ``call()`` returns a Status; nothing raises for network, protocol,
    timeout or application failures.
    """

    def __init__(
        self,
        options: ChannelOptions,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._options: ChannelOptions = options
        self._pending: PendingRequests = PendingRequests()
        self._transport: WsTransport = WsTransport(
            options,
            self._on_ws_message,
            self._on_state_change,
            session=session,
        )
        self._push_handlers: dict[str, list[Callable[[Any], None]]] = {}
        self._connection_subscribers: list[Callable[[ConnectionInfo], None]] = []
        self._info: ConnectionInfo = ConnectionInfo(url=options.ws_url)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def options(self) -> ChannelOptions:
        return self._options

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._transport.state

    @property
    def connected(self) -> bool:
        """True when the WebSocket transport is open."""
        return self._transport.connected

    @property
    def connection_info(self) -> ConnectionInfo:
        """Snapshot of the connection, updated on every transition."""
        return self._info

    @property
    def pending_count(self) -> int:
        """Number of calls awaiting a response."""
        return self._pending.pending_count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_open(self) -> None:
        """Start connecting. Raises McConnectionError if the first attempt fails.

        With ``auto_reconnect`` the channel keeps retrying in the background
        even after that error; use ``await_open()`` to wait for it.
        """
        await self._transport.async_connect()

    async def await_open(self) -> None:
        """Wait until the connection is open (no timeout)."""
        await self._transport.await_open()

    async def async_close(self) -> None:
        """Close the channel. Pending calls resolve with an error."""
        await self._transport.async_close()
        # Covers a close while never connected (no CLOSED transition).
        self._pending.flush_all(Err(CONNECTION_CLOSED))

    async def __aenter__(self) -> AsyncChannel:
        await self.async_open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.async_close()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    @overload
    async def call(
        self,
        message: Call[R],
        payload: Any = None,
        *,
        timeout: float | None = None,
    ) -> Status[R]: ...

    @overload
    async def call(
        self,
        message: str,
        payload: Any = None,
        *,
        timeout: float | None = None,
    ) -> Status[Any]: ...

    async def call(
        self,
        message: Call[Any] | str,
        payload: Any = None,
        *,
        timeout: float | None = None,
    ) -> Status[Any]:
        """Send a request and await its correlated response.

        *message* is a catalog ``Call`` (typed result) or a bare logical
        name (raw result). *timeout* overrides the channel default.
        """
        definition = message if isinstance(message, Call) else Call(message)
        if timeout is None:
            timeout = self._options.default_timeout

        request_id = self._pending.next_id()
        try:
            data = encode_request(definition.name, request_id, payload)
        except McProtocolError as err:
            return Err(str(err))

        future = self._pending.register(request_id, timeout, definition.name)
        try:
            await self._transport.async_send(data)
        except McConnectionError as err:
            self._pending.withdraw(request_id)
            return Err(str(err))
        except asyncio.CancelledError:
            self._pending.withdraw(request_id)
            raise

        status = await future
        if isinstance(status, Err):
            return status
        try:
            return Ok(definition.parse_result(status.value))
        except McProtocolError as err:
            _LOGGER.warning(
                "Bad %s result (id=%s): %s", definition.name, request_id, err
            )
            return Err(str(err))

    async def emit(self, message: Push[Any] | str, payload: Any = None) -> Status[None]:
        """Send a message without a correlation id. No response expected."""
        name = message.name if isinstance(message, Push) else message
        try:
            data = encode_envelope(Envelope(type=name, payload=payload))
            await self._transport.async_send(data)
        except (McConnectionError, McProtocolError) as err:
            return Err(str(err))
        return Ok(None)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    @overload
    def on(
        self, message: Push[R], handler: Callable[[R], None]
    ) -> Callable[[], None]: ...

    @overload
    def on(
        self, message: str, handler: Callable[[Any], None]
    ) -> Callable[[], None]: ...

    def on(
        self, message: Push[Any] | str, handler: Callable[[Any], None]
    ) -> Callable[[], None]:
        """Register a handler for push messages of one type.

        With a catalog ``Push`` the handler gets the parsed payload,
        otherwise the raw one. Returns an unsubscribe function.
        """
        if isinstance(message, Push):
            definition = message

            def _handler(payload: Any) -> None:
                try:
                    parsed = definition.parse_payload(payload)
                except McProtocolError as err:
                    _LOGGER.warning("Bad %s push payload: %s", definition.name, err)
                    return
                handler(parsed)

            name = definition.name
        else:
            _handler = handler
            name = message

        handlers = self._push_handlers.setdefault(name, [])
        handlers.append(_handler)

        def _unsubscribe() -> None:
            if _handler in handlers:
                handlers.remove(_handler)

        return _unsubscribe

    def subscribe_connection(
        self, callback: Callable[[ConnectionInfo], None]
    ) -> Callable[[], None]:
        """Register a callback for connection state changes.

        Returns an unsubscribe function.
        """
        self._connection_subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._connection_subscribers:
                self._connection_subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Internal — WebSocket message handling
    # ------------------------------------------------------------------

    def _on_ws_message(self, data: str | bytes) -> None:
        """Handle an incoming WebSocket frame."""
        try:
            envelope = decode_envelope(data)
        except McProtocolError as err:
            _LOGGER.warning("Dropping malformed message: %s", err)
            return

        if envelope.is_push:
            self._dispatch_push(envelope)
            return

        if not envelope.type.endswith(RESPONSE_SUFFIX):
            _LOGGER.warning(
                "Dropping %s (id=%s): not a response",
                envelope.type,
                envelope.id,
            )
            return
        assert envelope.id is not None
        self._handle_response(envelope.id, envelope)

    def _handle_response(self, request_id: int, envelope: Envelope) -> None:
        expected = self._pending.name_of(request_id)
        if expected is None:
            # Late (timed out / flushed) or duplicate response.
            _LOGGER.debug(
                "Received response for unknown request %s", request_id
            )
            return

        name = call_name(envelope.type)
        if name != expected:
            status: Status[Any] = Err(
                f"Unexpected response type {envelope.type} for {expected}"
            )
        else:
            try:
                status = parse_status(envelope.payload)
            except McProtocolError as err:
                _LOGGER.warning("Malformed %s: %s", envelope.type, err)
                status = Err(str(err))
        self._pending.resolve(request_id, status)

    def _dispatch_push(self, envelope: Envelope) -> None:
        handlers = self._push_handlers.get(envelope.type)
        if not handlers:
            _LOGGER.debug("Unhandled push message type: %s", envelope.type)
            return
        for handler in list(handlers):
            try:
                handler(envelope.payload)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Error in %s push handler", envelope.type)

    # ------------------------------------------------------------------
    # Internal — connection change
    # ------------------------------------------------------------------

    def _on_state_change(
        self, state: ConnectionState, error: str | None
    ) -> None:
        """Handle connection state transitions."""
        if state is ConnectionState.CLOSED:
            # Flush before a reconnect can start accepting new calls.
            flushed = self._pending.flush_all(Err(CONNECTION_CLOSED))
            if flushed:
                _LOGGER.debug("Flushed %d pending request(s)", flushed)

        old = self._info
        self._info = ConnectionInfo(
            state=state,
            url=old.url,
            last_connected=(
                datetime.now(timezone.utc)
                if state is ConnectionState.OPEN
                else old.last_connected
            ),
            last_error=error,
            reconnect_attempts=self._transport.reconnect_attempts,
        )

        for callback in list(self._connection_subscribers):
            try:
                callback(self._info)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Error in connection subscriber")
