"""JSON envelope encode/decode helpers for the control WebSocket protocol.

Every frame is a JSON object ``{"id"?: int, "type": str, "payload"?: ...}``.
A logical call ``X`` is sent as ``X_req`` and answered with ``X_res`` carrying
the same ``id``. Push notifications use the bare name and carry no ``id``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from aiomccontrol.exceptions import McProtocolError
from aiomccontrol.models import Err, Ok, Status

REQUEST_SUFFIX = "_req"
RESPONSE_SUFFIX = "_res"


@dataclass(frozen=True)
class Envelope:
    type: str
    id: int | None = None
    payload: Any = None

    @property
    def is_push(self) -> bool:
        return self.id is None


def request_tag(name: str) -> str:
    return name + REQUEST_SUFFIX


def response_tag(name: str) -> str:
    return name + RESPONSE_SUFFIX


def call_name(tag: str) -> str:
    """Strip a request/response suffix from a tag, if present."""
    for suffix in (REQUEST_SUFFIX, RESPONSE_SUFFIX):
        if tag.endswith(suffix):
            return tag[: -len(suffix)]
    return tag


def encode_envelope(envelope: Envelope) -> str:
    """Serialize an Envelope to a JSON text frame."""
    msg: dict[str, Any] = {}
    if envelope.id is not None:
        msg["id"] = envelope.id
    msg["type"] = envelope.type
    if envelope.payload is not None:
        msg["payload"] = envelope.payload
    try:
        return json.dumps(msg, separators=(",", ":"))
    except (TypeError, ValueError) as err:
        raise McProtocolError(
            f"Cannot encode {envelope.type} payload: {err}"
        ) from err


def encode_request(name: str, request_id: int, payload: Any = None) -> str:
    """Build a ``<name>_req`` frame ready to send over the WebSocket."""
    return encode_envelope(
        Envelope(type=request_tag(name), id=request_id, payload=payload)
    )


def decode_envelope(data: str | bytes) -> Envelope:
    """Parse and validate a JSON text frame.

    Raises McProtocolError on malformed input.
    """
    try:
        msg = json.loads(data)
    # Deeply nested arrays make the C decoder raise RecursionError.
    except (TypeError, ValueError, RecursionError) as err:
        raise McProtocolError(f"Failed to decode message: {err}") from err

    if not isinstance(msg, dict):
        raise McProtocolError(
            f"Expected a JSON object, got {type(msg).__name__}"
        )

    msg_type = msg.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        raise McProtocolError("Message has no string 'type' field")

    msg_id = msg.get("id")
    # bool is an int subclass; true/false are never valid ids.
    if msg_id is not None and (
        isinstance(msg_id, bool) or not isinstance(msg_id, int)
    ):
        raise McProtocolError(f"Invalid message id: {msg_id!r}")

    return Envelope(type=msg_type, id=msg_id, payload=msg.get("payload"))


def parse_status(payload: Any) -> Status[Any]:
    """Convert a ``{ok, value}`` / ``{ok, error}`` payload into a Status.

    Raises McProtocolError if the payload does not have that shape.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("ok"), bool):
        raise McProtocolError(f"Response payload is not a status: {payload!r}")
    if payload["ok"]:
        return Ok(payload.get("value"))
    error = payload.get("error")
    if not isinstance(error, str):
        raise McProtocolError(f"Error status without message: {payload!r}")
    return Err(error)


def encode_status(status: Status[Any]) -> dict[str, Any]:
    """Build the wire shape of a Status."""
    if isinstance(status, Ok):
        return {"ok": True, "value": status.value}
    return {"ok": False, "error": status.message}
