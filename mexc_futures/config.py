"""Configuration for the MEXC futures WebSocket session."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .protocol import DEFAULT_WS_URL

_LOGGER = logging.getLogger(__name__)

# The server drops connections that stay silent for longer than this window.
HEARTBEAT_WINDOW: tuple[float, float] = (10.0, 20.0)


@dataclass
class MexcWsConfig:
    """Configuration for a WebSocket session.

    Attributes:
        api_key: API key from MEXC API management
        secret_key: Secret key used for the login HMAC signature
        auto_reconnect: Reconnect after unsolicited closes (default: True)
        reconnect_interval: Delay before each reconnect attempt, in seconds
        heartbeat_interval: Delay between application pings, in seconds
        url: WebSocket endpoint
        connect_timeout: Timeout for opening the socket, in seconds
    """

    api_key: str
    secret_key: str
    auto_reconnect: bool = True
    reconnect_interval: float = 5.0
    heartbeat_interval: float = 15.0
    url: str = DEFAULT_WS_URL
    connect_timeout: float = 15.0

    def __post_init__(self) -> None:
        """Validate configuration invariants."""
        if not self.api_key:
            raise ValueError("api_key is required")
        if not self.secret_key:
            raise ValueError("secret_key is required")
        for name in ("reconnect_interval", "heartbeat_interval", "connect_timeout"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        low, high = HEARTBEAT_WINDOW
        if not low <= self.heartbeat_interval <= high:
            _LOGGER.warning(
                "heartbeat_interval %.1fs is outside the server window %.0f-%.0fs",
                self.heartbeat_interval,
                low,
                high,
            )

    def __repr__(self) -> str:
        return (
            f"MexcWsConfig(api_key={self.api_key[:4]}..., "
            f"auto_reconnect={self.auto_reconnect}, "
            f"reconnect_interval={self.reconnect_interval}, "
            f"heartbeat_interval={self.heartbeat_interval}, url={self.url!r})"
        )
