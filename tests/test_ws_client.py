"""Tests for MexcWsClient WebSocket wrapper."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosed, InvalidURI
from websockets.frames import Close
from websockets.protocol import State

from mexc_futures.errors import (
    MexcClientError,
    MexcConnectionError,
    MexcHandshakeError,
    MexcTimeout,
)
from mexc_futures.transport import connect_websocket
from mexc_futures.transport.ws_client import (
    ABNORMAL_CLOSURE,
    MexcWsClient,
    MexcWsMessage,
    MexcWsMessageType,
)

WS_URL = "wss://contract.mexc.com/edge"


def _open_ws() -> AsyncMock:
    mock_ws = AsyncMock()
    mock_ws.state = State.OPEN
    return mock_ws


class TestMexcWsMessage:
    """Tests for MexcWsMessage dataclass."""

    def test_create_text_message(self):
        """Test creating a text message."""
        msg = MexcWsMessage(type=MexcWsMessageType.TEXT, data="hello")
        assert msg.type == MexcWsMessageType.TEXT
        assert msg.data == "hello"
        assert msg.close_code is None

    def test_create_closed_message(self):
        """Test creating a closed message."""
        msg = MexcWsMessage(
            type=MexcWsMessageType.CLOSED, close_code=1006, close_reason="gone"
        )
        assert msg.data is None
        assert msg.close_code == 1006
        assert msg.close_reason == "gone"

    def test_message_is_frozen(self):
        """Test that messages are immutable."""
        msg = MexcWsMessage(type=MexcWsMessageType.TEXT, data="test")
        with pytest.raises(AttributeError):
            msg.data = "modified"  # type: ignore[misc]


class TestConnectWebsocket:
    """Tests for connect_websocket()."""

    @pytest.mark.asyncio
    async def test_connect_options(self):
        """The handshake deadline and frame limits are passed through."""
        mock_ws = _open_ws()

        with patch(
            "mexc_futures.transport.ws.websockets.connect",
            new_callable=AsyncMock,
            return_value=mock_ws,
        ) as mock_connect:
            result = await connect_websocket(WS_URL, timeout=3.0)

        assert result is mock_ws
        mock_connect.assert_called_once_with(
            WS_URL,
            open_timeout=3.0,
            ping_interval=20,
            close_timeout=5.0,
            max_size=None,
        )

    @pytest.mark.asyncio
    async def test_plaintext_url_rejected(self):
        """Only wss:// endpoints are dialed."""
        with patch(
            "mexc_futures.transport.ws.websockets.connect",
            new_callable=AsyncMock,
        ) as mock_connect:
            with pytest.raises(MexcHandshakeError, match="wss://"):
                await connect_websocket("ws://contract.mexc.com/edge")

        mock_connect.assert_not_called()

    @pytest.mark.asyncio
    async def test_oserror_maps_to_connection_error(self):
        with patch(
            "mexc_futures.transport.ws.websockets.connect",
            new_callable=AsyncMock,
            side_effect=OSError("refused"),
        ):
            with pytest.raises(MexcConnectionError, match="refused"):
                await connect_websocket(WS_URL)

    @pytest.mark.asyncio
    async def test_invalid_uri_maps_to_handshake_error(self):
        with patch(
            "mexc_futures.transport.ws.websockets.connect",
            new_callable=AsyncMock,
            side_effect=InvalidURI("wss://", "no host"),
        ):
            with pytest.raises(MexcHandshakeError):
                await connect_websocket("wss://")

    @pytest.mark.asyncio
    async def test_timeout_maps_to_timeout(self):
        with patch(
            "mexc_futures.transport.ws.websockets.connect",
            new_callable=AsyncMock,
            side_effect=TimeoutError(),
        ):
            with pytest.raises(MexcTimeout, match="timed out"):
                await connect_websocket(WS_URL, timeout=0.1)


class TestMexcWsClientConnect:
    """Tests for MexcWsClient.connect()."""

    @pytest.mark.asyncio
    async def test_connect_success(self):
        """Test successful WebSocket connection."""
        mock_ws = _open_ws()

        with patch(
            "mexc_futures.transport.ws_client.connect_websocket",
            return_value=mock_ws,
        ) as mock_connect:
            client = MexcWsClient()
            await client.connect()

            mock_connect.assert_called_once_with(
                WS_URL,
                ping_interval=20,
                timeout=15.0,
            )
            assert client._ws is mock_ws
            assert client.is_open

    @pytest.mark.asyncio
    async def test_connect_propagates_errors(self):
        """Test that connection errors are propagated."""
        with patch(
            "mexc_futures.transport.ws_client.connect_websocket",
            side_effect=MexcConnectionError("Connection failed"),
        ):
            client = MexcWsClient()
            with pytest.raises(MexcConnectionError, match="Connection failed"):
                await client.connect()
            assert not client.is_open


class TestMexcWsClientSend:
    """Tests for MexcWsClient.send_json() / send_text()."""

    @pytest.mark.asyncio
    async def test_send_json_success(self):
        """Test sending JSON payload."""
        mock_ws = _open_ws()

        with patch(
            "mexc_futures.transport.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = MexcWsClient()
            await client.connect()
            await client.send_json({"method": "ping"})

            mock_ws.send.assert_called_once_with('{"method": "ping"}')

    @pytest.mark.asyncio
    async def test_send_not_connected(self):
        """Test send_json raises when not connected."""
        client = MexcWsClient()
        with pytest.raises(MexcConnectionError, match="not connected"):
            await client.send_json({"method": "ping"})

    @pytest.mark.asyncio
    async def test_send_not_open(self):
        """Sending on a closing socket raises and sends nothing."""
        mock_ws = _open_ws()
        mock_ws.state = State.CLOSING

        with patch(
            "mexc_futures.transport.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = MexcWsClient()
            await client.connect()
            with pytest.raises(MexcConnectionError, match="not open"):
                await client.send_text("{}")

        mock_ws.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_connection_closed(self):
        """A close during send is reported as MexcConnectionError."""
        mock_ws = _open_ws()
        mock_ws.send.side_effect = ConnectionClosed(None, None)

        with patch(
            "mexc_futures.transport.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = MexcWsClient()
            await client.connect()
            with pytest.raises(MexcConnectionError, match="closed during send"):
                await client.send_text("{}")


class TestMexcWsClientClose:
    """Tests for MexcWsClient.close()."""

    @pytest.mark.asyncio
    async def test_close_connected(self):
        mock_ws = _open_ws()

        with patch(
            "mexc_futures.transport.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = MexcWsClient()
            await client.connect()
            await client.close()

            mock_ws.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_not_connected(self):
        """Test closing when not connected (no error)."""
        client = MexcWsClient()
        await client.close()


class AsyncIteratorMock:
    """Helper class to create a proper async iterator mock."""

    def __init__(
        self,
        items: list,
        *,
        raise_on_iter: Exception | None = None,
        close_code: int | None = None,
        close_reason: str | None = None,
    ):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()
        self.state = State.OPEN
        self.close_code = close_code
        self.close_reason = close_reason

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._index >= len(self._items):
            if self._raise_on_iter is not None:
                raise self._raise_on_iter
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


async def _collect(mock_ws: AsyncIteratorMock) -> list[MexcWsMessage]:
    with patch(
        "mexc_futures.transport.ws_client.connect_websocket",
        return_value=mock_ws,
    ):
        client = MexcWsClient()
        await client.connect()
        return [msg async for msg in client]


class TestMexcWsClientIteration:
    """Tests for MexcWsClient async iteration."""

    def test_iter_not_connected(self):
        """Test iteration raises when not connected."""
        client = MexcWsClient()
        with pytest.raises(MexcConnectionError, match="not connected"):
            client.__aiter__()

    @pytest.mark.asyncio
    async def test_iter_text_then_graceful_close(self):
        """Text frames arrive in order, followed by one CLOSED."""
        messages = await _collect(
            AsyncIteratorMock(["m1", "m2"], close_code=1000, close_reason="bye")
        )

        assert [m.type for m in messages] == [
            MexcWsMessageType.TEXT,
            MexcWsMessageType.TEXT,
            MexcWsMessageType.CLOSED,
        ]
        assert [m.data for m in messages[:2]] == ["m1", "m2"]
        assert messages[-1].close_code == 1000
        assert messages[-1].close_reason == "bye"

    @pytest.mark.asyncio
    async def test_iter_graceful_close_without_code(self):
        """A close without a known code reports 1006."""
        messages = await _collect(AsyncIteratorMock([]))

        assert len(messages) == 1
        assert messages[0].close_code == ABNORMAL_CLOSURE
        assert messages[0].close_reason == ""

    @pytest.mark.asyncio
    async def test_iter_connection_closed_with_frame(self):
        """ConnectionClosed carries the peer's close code and reason."""
        closed = ConnectionClosed(Close(1001, "going away"), None)
        messages = await _collect(AsyncIteratorMock(["m1"], raise_on_iter=closed))

        assert messages[0].data == "m1"
        assert messages[-1].type == MexcWsMessageType.CLOSED
        assert messages[-1].close_code == 1001
        assert messages[-1].close_reason == "going away"

    @pytest.mark.asyncio
    async def test_iter_connection_closed_without_frame(self):
        """A vanished peer is reported as 1006."""
        messages = await _collect(
            AsyncIteratorMock([], raise_on_iter=ConnectionClosed(None, None))
        )

        assert len(messages) == 1
        assert messages[0].close_code == ABNORMAL_CLOSURE

    @pytest.mark.asyncio
    async def test_iter_unexpected_error(self):
        """Unexpected errors yield ERROR followed by CLOSED."""
        boom = RuntimeError("Unexpected")
        messages = await _collect(AsyncIteratorMock([], raise_on_iter=boom))

        assert [m.type for m in messages] == [
            MexcWsMessageType.ERROR,
            MexcWsMessageType.CLOSED,
        ]
        assert messages[0].error is boom
        assert messages[1].close_code == ABNORMAL_CLOSURE

    @pytest.mark.asyncio
    async def test_iter_skips_binary_messages(self):
        """Test iteration skips binary messages."""
        messages = await _collect(AsyncIteratorMock(["t1", b"\x00\x01", "t2"]))

        text = [m.data for m in messages if m.type == MexcWsMessageType.TEXT]
        assert text == ["t1", "t2"]


class TestMexcWsClientDecodeJson:
    """Tests for MexcWsClient.decode_json()."""

    def test_decode_valid_json(self):
        msg = MexcWsMessage(
            type=MexcWsMessageType.TEXT,
            data='{"channel": "pong", "data": 1}',
        )
        assert MexcWsClient.decode_json(msg) == {"channel": "pong", "data": 1}

    def test_decode_non_text_raises(self):
        msg = MexcWsMessage(type=MexcWsMessageType.CLOSED)
        with pytest.raises(MexcClientError, match="Only TEXT messages"):
            MexcWsClient.decode_json(msg)

    def test_decode_invalid_json_raises(self):
        msg = MexcWsMessage(type=MexcWsMessageType.TEXT, data="not valid json {")
        with pytest.raises(json.JSONDecodeError):
            MexcWsClient.decode_json(msg)
