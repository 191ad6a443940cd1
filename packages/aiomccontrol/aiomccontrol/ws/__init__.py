"""WebSocket transport layer for aiomccontrol."""

from __future__ import annotations

from .pending import PendingRequest, PendingRequests
from .protocol import (
    Envelope,
    decode_envelope,
    encode_envelope,
    encode_request,
    encode_status,
    parse_status,
    request_tag,
    response_tag,
)
from .transport import WsTransport

__all__ = [
    "Envelope",
    "PendingRequest",
    "PendingRequests",
    "WsTransport",
    "decode_envelope",
    "encode_envelope",
    "encode_request",
    "encode_status",
    "parse_status",
    "request_tag",
    "response_tag",
]
