"""Pytest configuration and fixtures for mexc_futures tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from mexc_futures.errors import MexcConnectionError
from mexc_futures.transport import MexcWsMessage, MexcWsMessageType


class FakeWsClient:
    """Scripted stand-in for MexcWsClient.

    Frames pushed with feed_json/feed_text are delivered through async
    iteration in order; server_close ends the iteration with CLOSED.
    """

    def __init__(self, *, connect_error: Exception | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.connect_calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False
        self.connect_gate: asyncio.Event | None = None
        self._connect_error = connect_error
        self._queue: asyncio.Queue[MexcWsMessage] = asyncio.Queue()

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_calls.append((url, kwargs))
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self._connect_error is not None:
            raise self._connect_error

    async def close(self) -> None:
        self.closed = True

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.closed:
            raise MexcConnectionError("WebSocket is not connected")
        self.sent.append(payload)

    def __aiter__(self):
        return self._iter_messages()

    async def _iter_messages(self):
        while True:
            msg = await self._queue.get()
            yield msg
            if msg.type is MexcWsMessageType.CLOSED:
                return

    def feed_text(self, text: str) -> None:
        self._queue.put_nowait(MexcWsMessage(MexcWsMessageType.TEXT, text))

    def feed_json(self, payload: dict[str, Any]) -> None:
        self.feed_text(json.dumps(payload))

    def feed_error(self, error: BaseException) -> None:
        self._queue.put_nowait(MexcWsMessage(MexcWsMessageType.ERROR, error=error))

    def server_close(self, code: int = 1006, reason: str = "") -> None:
        self._queue.put_nowait(
            MexcWsMessage(
                MexcWsMessageType.CLOSED, close_code=code, close_reason=reason
            )
        )


async def drain(rounds: int = 10) -> None:
    """Let pending tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_ws() -> FakeWsClient:
    """Create a scripted WebSocket client."""
    return FakeWsClient()


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call

    Returns:
        Configured AsyncMock response usable as an async context manager
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data
    response.text.return_value = text_data or ""

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response
