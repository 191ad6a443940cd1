"""Connection options for an AsyncChannel."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PORT = 2345
DEFAULT_PATH = "horsney"
DEFAULT_CALL_TIMEOUT: float = 20.0  # seconds
DEFAULT_HANDSHAKE_TIMEOUT: float = 10.0
DEFAULT_HEARTBEAT: float = 30.0  # aiohttp TCP-level ping interval
DEFAULT_INITIAL_BACKOFF: float = 1.0
DEFAULT_BACKOFF_FACTOR: float = 1.618  # golden ratio
DEFAULT_MAX_BACKOFF: float = 30.0
DEFAULT_JITTER: float = 1.0

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ChannelOptions:
    """Address and reconnection policy of the control channel.

    The scheme is picked by ``secure`` (``wss`` vs ``ws``); a full ``url``
    overrides host/port/path/secure entirely.
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    secure: bool = False
    url: str | None = None
    auto_reconnect: bool = True
    default_timeout: float = DEFAULT_CALL_TIMEOUT
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT
    heartbeat: float | None = DEFAULT_HEARTBEAT
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_backoff: float = DEFAULT_MAX_BACKOFF
    jitter: float = DEFAULT_JITTER

    def __post_init__(self) -> None:
        if self.default_timeout <= 0:
            raise ValueError("default_timeout must be positive")
        if self.initial_backoff < 0 or self.max_backoff < 0:
            raise ValueError("backoff delays must not be negative")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")

    @property
    def ws_url(self) -> str:
        """WebSocket URL the transport connects to."""
        if self.url:
            return self.url
        scheme = "wss" if self.secure else "ws"
        path = self.path.lstrip("/")
        return f"{scheme}://{self.host}:{self.port}/{path}"

    @classmethod
    def from_env(cls, prefix: str = "MCCONTROL_") -> ChannelOptions:
        """Build options from ``MCCONTROL_*`` environment variables."""
        env = os.environ
        defaults = cls()
        timeout = env.get(f"{prefix}TIMEOUT")
        return cls(
            host=env.get(f"{prefix}HOST", defaults.host),
            port=int(env.get(f"{prefix}PORT", defaults.port)),
            path=env.get(f"{prefix}PATH", defaults.path),
            secure=env.get(f"{prefix}SECURE", "0").lower() in _TRUTHY,
            url=env.get(f"{prefix}URL") or None,
            auto_reconnect=env.get(f"{prefix}AUTO_RECONNECT", "1").lower()
            in _TRUTHY,
            default_timeout=(
                float(timeout) if timeout else defaults.default_timeout
            ),
        )
