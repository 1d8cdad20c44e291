"""Opening handshake for the MEXC futures edge WebSocket."""

from __future__ import annotations

import logging

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    MexcConnectionError,
    MexcHandshakeError,
    MexcTimeout,
)
from ..protocol import DEFAULT_WS_URL

_LOGGER = logging.getLogger(__name__)

# Seconds to wait for the server's close frame before dropping the socket.
CLOSE_TIMEOUT = 5.0


async def connect_websocket(
    url: str = DEFAULT_WS_URL,
    *,
    ping_interval: float | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open a connection to the futures edge.

    The edge only accepts TLS (``wss://``). Push frames have no documented
    size bound, so the frame size limit is lifted. Application heartbeats
    are sent by the session; ``ping_interval`` only drives protocol pings.

    Args:
        url: Edge endpoint (default ``wss://contract.mexc.com/edge``)
        ping_interval: Interval for protocol-level ping frames, None to disable
        timeout: Deadline for TCP, TLS and the opening handshake (seconds)

    Raises:
        MexcHandshakeError: If the URL is not ``wss://`` or the server
            refuses the upgrade.
        MexcTimeout: If the handshake misses the deadline.
        MexcConnectionError: For any other network failure.
    """
    if not url.startswith("wss://"):
        raise MexcHandshakeError(f"MEXC futures requires a wss:// endpoint: {url}")

    _LOGGER.debug("Opening %s", url)
    try:
        return await websockets.connect(
            url,
            open_timeout=timeout,
            ping_interval=ping_interval,
            close_timeout=CLOSE_TIMEOUT,
            max_size=None,
        )
    except TimeoutError as err:
        raise MexcTimeout(f"Handshake with {url} timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise MexcHandshakeError(f"Handshake with {url} failed: {err}") from err
    except (OSError, WebSocketException) as err:
        raise MexcConnectionError(f"Connection to {url} failed: {err}") from err
