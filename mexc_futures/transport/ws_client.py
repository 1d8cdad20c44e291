"""WebSocket client wrapper for the MEXC futures endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ..errors import MexcClientError, MexcConnectionError
from ..protocol import DEFAULT_WS_URL
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

# Close code reported when the peer vanished without a close frame.
ABNORMAL_CLOSURE = 1006


class MexcWsMessageType(Enum):
    """Normalized WebSocket notification types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class MexcWsMessage:
    """Normalized WebSocket notification.

    Attributes:
        type: Notification type.
        data: Frame text for TEXT notifications.
        error: Underlying exception for ERROR notifications.
        close_code: Close code for CLOSED notifications.
        close_reason: Close reason for CLOSED notifications.
    """

    type: MexcWsMessageType
    data: str | None = None
    error: BaseException | None = None
    close_code: int | None = None
    close_reason: str = ""


class MexcWsClient:
    """Wrapper around the websockets library for MEXC futures.

    Iteration yields TEXT notifications in delivery order and always ends
    with exactly one CLOSED notification, optionally preceded by an ERROR.
    """

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        url: str = DEFAULT_WS_URL,
        *,
        ping_interval: float | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the exchange websocket."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    @property
    def is_open(self) -> bool:
        """Whether frames can currently be sent."""
        return self._ws is not None and self._ws.state is State.OPEN

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, text: str) -> None:
        """Send one text frame.

        Raises:
            MexcConnectionError: If the socket is absent, not open, or closes
                during the send. The frame is not buffered.
        """
        if self._ws is None:
            raise MexcConnectionError("WebSocket is not connected")
        if self._ws.state is not State.OPEN:
            raise MexcConnectionError(
                f"WebSocket is not open (state: {self._ws.state.name})"
            )
        try:
            await self._ws.send(text)
        except ConnectionClosed as err:
            raise MexcConnectionError("WebSocket closed during send") from err

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to the websocket."""
        await self.send_text(json.dumps(payload))

    def __aiter__(self) -> AsyncIterator[MexcWsMessage]:
        if self._ws is None:
            raise MexcConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[MexcWsMessage]:
        ws = self._ws
        if ws is None:
            raise MexcConnectionError("WebSocket is not connected")

        try:
            async for msg in ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed as err:
            code, reason = self._close_info(err)
            yield MexcWsMessage(
                MexcWsMessageType.CLOSED, close_code=code, close_reason=reason
            )
            return
        except Exception as err:
            yield MexcWsMessage(MexcWsMessageType.ERROR, error=err)
            yield MexcWsMessage(
                MexcWsMessageType.CLOSED, close_code=ABNORMAL_CLOSURE
            )
            return

        # Normal iteration completion means the peer closed gracefully.
        code = getattr(ws, "close_code", None)
        reason = getattr(ws, "close_reason", None)
        yield MexcWsMessage(
            MexcWsMessageType.CLOSED,
            close_code=code if isinstance(code, int) else ABNORMAL_CLOSURE,
            close_reason=reason if isinstance(reason, str) else "",
        )

    @staticmethod
    def _close_info(err: ConnectionClosed) -> tuple[int, str]:
        """Extract the peer's close code and reason, if a close frame arrived."""
        if err.rcvd is None:
            return ABNORMAL_CLOSURE, ""
        return err.rcvd.code, err.rcvd.reason

    @staticmethod
    def _normalize_message(msg: Any) -> MexcWsMessage | None:
        """Normalize a websockets frame; binary frames are skipped."""
        if isinstance(msg, str):
            return MexcWsMessage(MexcWsMessageType.TEXT, msg)
        return None

    @staticmethod
    def decode_json(message: MexcWsMessage) -> dict[str, Any]:
        """Decode a TEXT message payload into JSON."""
        if message.type is not MexcWsMessageType.TEXT:
            raise MexcClientError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise MexcClientError("Message data is not a string")
        result: dict[str, Any] = json.loads(message.data)
        return result
