"""High-level API for controlling the remote game server."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .channel import AsyncChannel
from .messages import BOOT_SERVER, MC_SERVER_STATE, MC_SERVER_STATUS, SHUTDOWN_SERVER
from .models import ConnectionInfo, ConnectionState, Err, ServerState, ServerStatus, Status

_LOGGER = logging.getLogger(__name__)


class McServerClient:
    """Typed facade over an AsyncChannel for status/boot/shutdown.

    Keeps the last known server state, fed by call results and by
    ``mc_server_state`` push messages. The state falls back to UNKNOWN
    whenever the connection closes.
    """

    def __init__(self, channel: AsyncChannel) -> None:
        self._channel: AsyncChannel = channel
        self._status: ServerStatus = ServerStatus()
        self._subscribers: list[Callable[[ServerStatus], None]] = []
        self._unsubs: list[Callable[[], None]] = [
            channel.on(MC_SERVER_STATE, self._on_state_push),
            channel.subscribe_connection(self._on_connection_change),
        ]

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def channel(self) -> AsyncChannel:
        return self._channel

    @property
    def status(self) -> ServerStatus:
        """Last known server status."""
        return self._status

    @property
    def state(self) -> ServerState:
        return self._status.state

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def async_get_status(
        self, timeout: float | None = None
    ) -> Status[ServerStatus]:
        """Query the server state."""
        result = await self._channel.call(MC_SERVER_STATUS, timeout=timeout)
        if result.ok:
            self._set_status(result.value)
        return result

    async def async_boot(self, timeout: float | None = None) -> Status[None]:
        """Ask the control server to start the game server.

        Refused locally unless the last known state is OFF or UNKNOWN.
        """
        if self.state not in (ServerState.OFF, ServerState.UNKNOWN):
            return Err(f"Can't turn server on in {self.state.name} state")
        result = await self._channel.call(BOOT_SERVER, timeout=timeout)
        if result.ok:
            self._set_status(ServerStatus(ServerState.BOOTING))
        return result

    async def async_shutdown(self, timeout: float | None = None) -> Status[None]:
        """Ask the control server to stop the game server.

        Refused locally unless the last known state is ON or UNKNOWN.
        """
        if self.state not in (ServerState.ON, ServerState.UNKNOWN):
            return Err(f"Can't turn server off in {self.state.name} state")
        result = await self._channel.call(SHUTDOWN_SERVER, timeout=timeout)
        if result.ok:
            self._set_status(ServerStatus(ServerState.SHUTDOWN))
        return result

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_state(
        self, callback: Callable[[ServerStatus], None]
    ) -> Callable[[], None]:
        """Register a callback for server status changes.

        Returns an unsubscribe function.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def detach(self) -> None:
        """Stop listening to the channel."""
        for unsub in self._unsubs:
            unsub()
        self._unsubs.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_state_push(self, status: ServerStatus) -> None:
        self._set_status(status)

    def _on_connection_change(self, info: ConnectionInfo) -> None:
        if info.state is ConnectionState.CLOSED:
            self._set_status(ServerStatus())

    def _set_status(self, status: ServerStatus) -> None:
        if status == self._status:
            return
        self._status = status
        for callback in list(self._subscribers):
            try:
                callback(status)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Error in server state subscriber")
