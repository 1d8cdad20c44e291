"""Transport layer for the MEXC futures WebSocket.

Components:
- ws: WebSocket connection management
- ws_client: WebSocket message iteration and sending
"""

from .ws import connect_websocket
from .ws_client import (
    ABNORMAL_CLOSURE,
    MexcWsClient,
    MexcWsMessage,
    MexcWsMessageType,
)

__all__ = [
    "ABNORMAL_CLOSURE",
    "MexcWsClient",
    "MexcWsMessage",
    "MexcWsMessageType",
    "connect_websocket",
]
