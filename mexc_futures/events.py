"""Per-session observer registry.

Each session owns one EventEmitter; nothing is shared between sessions.
Listeners may be plain callables or coroutine functions. Coroutine results
are scheduled as tasks on the running loop and kept alive by the emitter.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

_LOGGER = logging.getLogger(__name__)

Listener = Callable[..., Any]


class SessionEvent(Enum):
    """Events a session exposes to its caller.

    Listener arguments:
        CONNECTED: none
        DISCONNECTED: close code, close reason
        LOGIN / LOGIN_ERROR: acknowledgment data
        FILTER_SET / FILTER_ERROR: acknowledgment data
        ERROR: exception
        PONG: pong data (server timestamp)
        private data events: push data, unchanged
        MESSAGE: the full decoded message (unrecognized pushes)
    """

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    LOGIN = "login"
    LOGIN_ERROR = "login_error"
    FILTER_SET = "filter_set"
    FILTER_ERROR = "filter_error"
    ERROR = "error"
    PONG = "pong"

    ORDER_UPDATE = "order_update"
    ORDER_DEAL = "order_deal"
    POSITION_UPDATE = "position_update"
    ASSET_UPDATE = "asset_update"
    RISK_LIMIT = "risk_limit"
    ADL_LEVEL = "adl_level"
    PLAN_ORDER = "plan_order"
    STOP_ORDER = "stop_order"
    STOP_PLAN_ORDER = "stop_plan_order"

    MESSAGE = "message"


class EventEmitter:
    """Listener lists keyed by SessionEvent."""

    def __init__(self) -> None:
        self._listeners: dict[SessionEvent, list[Listener]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, event: SessionEvent | str, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that removes it."""
        key = SessionEvent(event)
        self._listeners.setdefault(key, []).append(listener)

        def _remove() -> None:
            self.off(key, listener)

        return _remove

    def once(self, event: SessionEvent | str, listener: Listener) -> Callable[[], None]:
        """Register a listener that is removed after its first call."""
        key = SessionEvent(event)

        def _wrapper(*args: Any) -> Any:
            self.off(key, _wrapper)
            return listener(*args)

        _wrapper.__wrapped__ = listener  # type: ignore[attr-defined]
        return self.on(key, _wrapper)

    def off(self, event: SessionEvent | str, listener: Listener) -> None:
        """Remove a listener, including one registered with once().

        Only the earliest matching registration is removed; unknown
        listeners are ignored.
        """
        listeners = self._listeners.get(SessionEvent(event))
        if not listeners:
            return
        for index, registered in enumerate(listeners):
            if registered == listener or _unwrap(registered) == listener:
                del listeners[index]
                return

    def clear(self, event: SessionEvent | str | None = None) -> None:
        """Remove all listeners, or all listeners of one event."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(SessionEvent(event), None)

    def listener_count(self, event: SessionEvent | str) -> int:
        """Number of listeners registered for an event."""
        return len(self._listeners.get(SessionEvent(event), ()))

    def emit(self, event: SessionEvent, *args: Any) -> int:
        """Call every listener of ``event`` in registration order.

        Listener failures are logged and never propagate to the caller.

        Returns:
            Number of listeners called.
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception as err:
                _LOGGER.exception("Listener error for %s: %s", event.value, err)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result)
        return len(listeners)

    def _schedule(self, event: SessionEvent, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def _done(done: asyncio.Task[Any]) -> None:
            self._tasks.discard(done)
            if done.cancelled():
                return
            err = done.exception()
            if err is not None:
                _LOGGER.error(
                    "Async listener error for %s: %s",
                    event.value,
                    err,
                    exc_info=err,
                )

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _unwrap(listener: Listener) -> Listener | None:
    """Return the listener a once() wrapper stands for."""
    return getattr(listener, "__wrapped__", None)
