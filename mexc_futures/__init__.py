"""Asyncio client for the MEXC futures WebSocket and REST surfaces."""

__version__ = "0.1.0"

from .config import MexcWsConfig
from .errors import (
    MexcAlreadyConnectedError,
    MexcApiError,
    MexcClientError,
    MexcConnectionError,
    MexcDecodeError,
    MexcHandshakeError,
    MexcLoginPendingError,
    MexcNotConnectedError,
    MexcNotLoggedInError,
    MexcResponseError,
    MexcStateError,
    MexcTimeout,
)
from .events import EventEmitter, SessionEvent
from .http import MexcFuturesHttpClient
from .protocol import (
    DEFAULT_WS_URL,
    FilterKind,
    PersonalFilter,
    build_login,
    build_personal_filter,
    build_ping,
    decode_message,
    encode_message,
)
from .router import MessageRouter, PushKind, classify
from .session import ConnectionState, MexcFuturesSession
from .signer import current_req_time, sign_login, sign_web_request
from .subscription import SubscriptionManager
from .transport import MexcWsClient, MexcWsMessage, MexcWsMessageType, connect_websocket

__all__ = [
    "DEFAULT_WS_URL",
    "ConnectionState",
    "EventEmitter",
    "FilterKind",
    "MessageRouter",
    "MexcAlreadyConnectedError",
    "MexcApiError",
    "MexcClientError",
    "MexcConnectionError",
    "MexcDecodeError",
    "MexcFuturesHttpClient",
    "MexcFuturesSession",
    "MexcHandshakeError",
    "MexcLoginPendingError",
    "MexcNotConnectedError",
    "MexcNotLoggedInError",
    "MexcResponseError",
    "MexcStateError",
    "MexcTimeout",
    "MexcWsClient",
    "MexcWsConfig",
    "MexcWsMessage",
    "MexcWsMessageType",
    "PersonalFilter",
    "PushKind",
    "SessionEvent",
    "SubscriptionManager",
    "__version__",
    "build_login",
    "build_personal_filter",
    "build_ping",
    "classify",
    "connect_websocket",
    "current_req_time",
    "decode_message",
    "encode_message",
    "sign_login",
    "sign_web_request",
]
