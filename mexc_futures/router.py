"""Inbound message classification and dispatch.

Every decoded frame is classified into exactly one variant, then dispatched
as exactly one session event. Classification precedence:

1. pong channel
2. login acknowledgment
3. personal filter acknowledgment
4. error channel
5. private data push keyed by method, or an unrecognized message
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, assert_never

from .errors import MexcApiError, MexcDecodeError
from .events import EventEmitter, SessionEvent
from .protocol import (
    CHANNEL_ERROR,
    CHANNEL_LOGIN,
    CHANNEL_PERSONAL_FILTER,
    CHANNEL_PONG,
    METHOD_LOGIN,
    METHOD_PERSONAL_FILTER,
    decode_message,
)

_LOGGER = logging.getLogger(__name__)


class PushKind(Enum):
    """Private data pushes, keyed by their wire method."""

    ORDER_UPDATE = "order.update"
    ORDER_DEAL = "order.deal"
    POSITION_UPDATE = "position.update"
    ASSET_UPDATE = "asset.update"
    RISK_LIMIT = "risk.limit"
    ADL_LEVEL = "adl.level"
    PLAN_ORDER = "plan.order"
    STOP_ORDER = "stop.order"
    STOP_PLAN_ORDER = "stop.planorder"


_PUSH_EVENTS: dict[PushKind, SessionEvent] = {
    PushKind.ORDER_UPDATE: SessionEvent.ORDER_UPDATE,
    PushKind.ORDER_DEAL: SessionEvent.ORDER_DEAL,
    PushKind.POSITION_UPDATE: SessionEvent.POSITION_UPDATE,
    PushKind.ASSET_UPDATE: SessionEvent.ASSET_UPDATE,
    PushKind.RISK_LIMIT: SessionEvent.RISK_LIMIT,
    PushKind.ADL_LEVEL: SessionEvent.ADL_LEVEL,
    PushKind.PLAN_ORDER: SessionEvent.PLAN_ORDER,
    PushKind.STOP_ORDER: SessionEvent.STOP_ORDER,
    PushKind.STOP_PLAN_ORDER: SessionEvent.STOP_PLAN_ORDER,
}

_PUSH_KINDS: dict[str, PushKind] = {kind.value: kind for kind in PushKind}


@dataclass(frozen=True)
class Pong:
    """Heartbeat acknowledgment."""

    data: Any = None


@dataclass(frozen=True)
class LoginAck:
    """Login acknowledgment."""

    success: bool
    data: Any = None


@dataclass(frozen=True)
class FilterAck:
    """Personal filter acknowledgment."""

    success: bool
    data: Any = None


@dataclass(frozen=True)
class ErrorAck:
    """Push on the error channel."""

    data: Any = None


@dataclass(frozen=True)
class PrivatePush:
    """Private data push of a known kind."""

    kind: PushKind
    data: Any = None


@dataclass(frozen=True)
class UnknownMessage:
    """Anything else; carries the full decoded message."""

    message: Mapping[str, Any]


InboundMessage = Pong | LoginAck | FilterAck | ErrorAck | PrivatePush | UnknownMessage


def is_success(data: Any) -> bool:
    """Read the success indicator of an acknowledgment payload."""
    if isinstance(data, bool):
        return data
    if isinstance(data, str):
        return data.lower() == "success"
    if isinstance(data, Mapping):
        return bool(data.get("success"))
    return False


def _is_ack(
    method: Any, channel: Any, *, expected_method: str, expected_channel: str
) -> bool:
    if channel == expected_channel:
        return method is None or method == expected_method
    return channel is None and method == expected_method


def classify(message: Mapping[str, Any]) -> InboundMessage:
    """Classify one decoded inbound message."""
    method = message.get("method")
    channel = message.get("channel")
    data = message.get("data")

    if channel == CHANNEL_PONG:
        return Pong(data)

    if _is_ack(
        method, channel, expected_method=METHOD_LOGIN, expected_channel=CHANNEL_LOGIN
    ):
        return LoginAck(is_success(data), data)

    if _is_ack(
        method,
        channel,
        expected_method=METHOD_PERSONAL_FILTER,
        expected_channel=CHANNEL_PERSONAL_FILTER,
    ):
        return FilterAck(is_success(data), data)

    if channel == CHANNEL_ERROR:
        return ErrorAck(data)

    kind = _PUSH_KINDS.get(method) if isinstance(method, str) else None
    if kind is not None:
        return PrivatePush(kind, data)

    return UnknownMessage(message)


class MessageRouter:
    """Decode, classify and dispatch inbound frames for one session.

    Args:
        emitter: The session's event emitter.
        on_login_ack: Called with the login outcome before the login event
            is emitted, so listeners observe the updated login status.
        on_error_ack: Called before an error-channel push is emitted.
    """

    def __init__(
        self,
        emitter: EventEmitter,
        *,
        on_login_ack: Callable[[bool], None] | None = None,
        on_error_ack: Callable[[], None] | None = None,
    ) -> None:
        self._emitter = emitter
        self._on_login_ack = on_login_ack
        self._on_error_ack = on_error_ack

    def route_text(self, text: str | bytes) -> InboundMessage | None:
        """Decode and route one frame.

        Malformed frames are reported as an error event and return None.
        """
        try:
            message = decode_message(text)
        except MexcDecodeError as err:
            _LOGGER.warning("Dropping malformed frame: %s", err)
            self._emitter.emit(SessionEvent.ERROR, err)
            return None
        return self.route(message)

    def route(self, message: Mapping[str, Any]) -> InboundMessage:
        """Classify and dispatch one decoded message."""
        inbound = classify(message)
        self._dispatch(inbound)
        return inbound

    def _dispatch(self, inbound: InboundMessage) -> None:
        if isinstance(inbound, Pong):
            self._emitter.emit(SessionEvent.PONG, inbound.data)
        elif isinstance(inbound, LoginAck):
            if self._on_login_ack is not None:
                self._on_login_ack(inbound.success)
            if inbound.success:
                _LOGGER.info("Login successful")
                self._emitter.emit(SessionEvent.LOGIN, inbound.data)
            else:
                _LOGGER.error("Login rejected: %s", inbound.data)
                self._emitter.emit(SessionEvent.LOGIN_ERROR, inbound.data)
        elif isinstance(inbound, FilterAck):
            if inbound.success:
                _LOGGER.debug("Personal filter applied")
                self._emitter.emit(SessionEvent.FILTER_SET, inbound.data)
            else:
                _LOGGER.warning("Personal filter rejected: %s", inbound.data)
                self._emitter.emit(SessionEvent.FILTER_ERROR, inbound.data)
        elif isinstance(inbound, ErrorAck):
            err = MexcApiError.from_payload(inbound.data)
            _LOGGER.error("Error response: %s", err)
            if self._on_error_ack is not None:
                self._on_error_ack()
            self._emitter.emit(SessionEvent.ERROR, err)
        elif isinstance(inbound, PrivatePush):
            self._emitter.emit(_PUSH_EVENTS[inbound.kind], inbound.data)
        elif isinstance(inbound, UnknownMessage):
            _LOGGER.debug("Unrecognized message: %s", inbound.message.get("method"))
            self._emitter.emit(SessionEvent.MESSAGE, inbound.message)
        else:
            assert_never(inbound)
