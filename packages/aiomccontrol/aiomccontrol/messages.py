"""Typed catalog of the calls and push messages spoken on the channel.

A ``Call`` pairs a logical name (``X`` → ``X_req`` / ``X_res`` on the wire)
with a parser turning the ``Ok`` value into the result type. A ``Push`` does
the same for unsolicited messages. Adding a message means adding a
definition here; the transport and the pending registry are untouched.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .exceptions import McProtocolError
from .models import ServerState, ServerStatus

R = TypeVar("R")


def _passthrough(value: Any) -> Any:
    return value


def _ignore(_value: Any) -> None:
    return None


def _run_parser(name: str, parse: Callable[[Any], R], value: Any) -> R:
    """Apply *parse*; any failure is reported as McProtocolError."""
    try:
        return parse(value)
    except McProtocolError:
        raise
    except Exception as err:
        raise McProtocolError(
            f"Cannot parse {name}: {type(err).__name__}: {err}"
        ) from err


@dataclass(frozen=True)
class Call(Generic[R]):
    """Request/response pair.

    ``parse`` turns the ``Ok`` value into the result type. Whatever it
    raises reaches the caller as an ``Err``, never as an exception.
    """

    name: str
    parse: Callable[[Any], R] = _passthrough

    def parse_result(self, value: Any) -> R:
        return _run_parser(self.name, self.parse, value)


@dataclass(frozen=True)
class Push(Generic[R]):
    """Unsolicited message (no correlation id)."""

    name: str
    parse: Callable[[Any], R] = _passthrough

    def parse_payload(self, payload: Any) -> R:
        return _run_parser(self.name, self.parse, payload)


def parse_server_state(value: Any) -> ServerState:
    """Accept the integer wire value or the enum name (any case)."""
    if isinstance(value, bool):
        raise McProtocolError(f"Invalid server state: {value!r}")
    if isinstance(value, int):
        try:
            return ServerState(value)
        except ValueError as err:
            raise McProtocolError(f"Unknown server state: {value}") from err
    if isinstance(value, str):
        try:
            return ServerState[value.upper()]
        except KeyError as err:
            raise McProtocolError(f"Unknown server state: {value!r}") from err
    raise McProtocolError(f"Invalid server state: {value!r}")


def parse_server_status(value: Any) -> ServerStatus:
    """Parse ``{"state": ...}`` or the older ``{"on": bool}`` shape."""
    if not isinstance(value, dict):
        raise McProtocolError(f"Server status is not an object: {value!r}")
    if "state" in value:
        return ServerStatus(state=parse_server_state(value["state"]))
    on = value.get("on")
    if isinstance(on, bool):
        return ServerStatus(state=ServerState.ON if on else ServerState.OFF)
    raise McProtocolError(f"Server status has no state: {value!r}")


MC_SERVER_STATUS: Call[ServerStatus] = Call(
    "mc_server_status", parse_server_status
)
BOOT_SERVER: Call[None] = Call("boot_server", _ignore)
SHUTDOWN_SERVER: Call[None] = Call("shutdown_server", _ignore)

MC_SERVER_STATE: Push[ServerStatus] = Push(
    "mc_server_state", parse_server_status
)

CALLS: tuple[Call[Any], ...] = (MC_SERVER_STATUS, BOOT_SERVER, SHUTDOWN_SERVER)
PUSHES: tuple[Push[Any], ...] = (MC_SERVER_STATE,)
