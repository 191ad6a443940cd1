"""aiomccontrol — async Python client for a game server control channel."""

from .channel import AsyncChannel
from .client import McServerClient
from .config import ChannelOptions
from .exceptions import (
    McApplicationError,
    McConnectionError,
    McControlError,
    McProtocolError,
)
from .messages import (
    BOOT_SERVER,
    MC_SERVER_STATE,
    MC_SERVER_STATUS,
    SHUTDOWN_SERVER,
    Call,
    Push,
)
from .models import (
    ConnectionInfo,
    ConnectionState,
    Err,
    Ok,
    ServerState,
    ServerStatus,
    Status,
)

__all__ = [
    # channel
    "AsyncChannel",
    "ChannelOptions",
    # client
    "McServerClient",
    # messages
    "BOOT_SERVER",
    "MC_SERVER_STATE",
    "MC_SERVER_STATUS",
    "SHUTDOWN_SERVER",
    "Call",
    "Push",
    # models
    "ConnectionInfo",
    "ConnectionState",
    "Err",
    "Ok",
    "ServerState",
    "ServerStatus",
    "Status",
    # exceptions
    "McApplicationError",
    "McConnectionError",
    "McControlError",
    "McProtocolError",
]
