"""Data models for aiomccontrol — result wrapper, states and snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Generic, TypeVar, Union

from .exceptions import McApplicationError

T = TypeVar("T")


class ConnectionState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ServerState(IntEnum):
    """State of the remote game server, as reported by the control server."""

    UNKNOWN = 0
    OFF = 1
    BOOTING = 2
    ON = 3
    SHUTDOWN = 4


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    message: str

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        """Raise McApplicationError carrying the error message."""
        raise McApplicationError(self.message)


# Every call result is one of these two; callers branch on ``status.ok``.
Status = Union[Ok[T], Err]


@dataclass(frozen=True)
class ServerStatus:
    state: ServerState = ServerState.UNKNOWN

    @property
    def on(self) -> bool:
        return self.state == ServerState.ON


@dataclass(frozen=True)
class ConnectionInfo:
    state: ConnectionState = ConnectionState.IDLE
    url: str | None = None
    last_connected: datetime | None = None
    last_error: str | None = None
    reconnect_attempts: int = 0
