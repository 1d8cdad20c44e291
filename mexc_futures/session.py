"""High-level session manager for the MEXC futures private WebSocket.

This module provides the canonical API for streaming private account data.
It handles:
- Connection management and the connect → login → filter handshake
- Connection state machine
- Heartbeat pings
- Automatic reconnection after unsolicited closes
- Message routing to per-session listeners

Login and filters are NOT replayed after a reconnect. Callers must re-run
login and their subscriptions from a CONNECTED listener every time.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine, Iterable, Sequence
from enum import Enum
from typing import Any

from .config import MexcWsConfig
from .errors import (
    MexcAlreadyConnectedError,
    MexcClientError,
    MexcConnectionError,
    MexcLoginPendingError,
    MexcNotConnectedError,
    MexcStateError,
)
from .events import EventEmitter, Listener, SessionEvent
from .protocol import DEFAULT_WS_URL, build_login, build_ping
from .router import MessageRouter
from .signer import current_req_time, sign_login
from .subscription import FilterSpec, SubscriptionManager
from .transport import ABNORMAL_CLOSURE, MexcWsClient, MexcWsMessageType

_LOGGER = logging.getLogger(__name__)

CLIENT_CLOSE_CODE = 1000
CLIENT_CLOSE_REASON = "client disconnect"


class ConnectionState(Enum):
    """Connection status of a session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MexcFuturesSession:
    """High-level session manager for the MEXC futures private WebSocket.

    Usage:
        session = MexcFuturesSession(api_key="...", secret_key="...")

        async def on_connected():
            await session.login()

        async def on_login(data):
            await session.subscribe_to_orders(["BTC_USDT"])

        session.on(SessionEvent.CONNECTED, on_connected)
        session.on(SessionEvent.LOGIN, on_login)
        session.on(SessionEvent.ORDER_UPDATE, handle_order)
        await session.connect()
        ...
        await session.disconnect()
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        *,
        auto_reconnect: bool = True,
        reconnect_interval: float = 5.0,
        heartbeat_interval: float = 15.0,
        url: str = DEFAULT_WS_URL,
        connect_timeout: float = 15.0,
    ) -> None:
        """Initialize session. No network activity happens here.

        Args:
            api_key: API key from MEXC API management
            secret_key: Secret key used to sign the login request
            auto_reconnect: Reconnect after unsolicited closes
            reconnect_interval: Delay before each reconnect attempt (seconds)
            heartbeat_interval: Ping interval (seconds), keep within 10-20s
            url: WebSocket endpoint
            connect_timeout: Timeout for opening the socket (seconds)
        """
        self.config = MexcWsConfig(
            api_key=api_key,
            secret_key=secret_key,
            auto_reconnect=auto_reconnect,
            reconnect_interval=reconnect_interval,
            heartbeat_interval=heartbeat_interval,
            url=url,
            connect_timeout=connect_timeout,
        )

        # Connection state
        self._ws: MexcWsClient | None = None
        self._state = ConnectionState.DISCONNECTED
        self._listen_task: asyncio.Task[None] | None = None
        self._shutdown_requested = False
        # Bumped by disconnect() so a pending connect() can detect it.
        self._generation = 0

        # Login state
        self._logged_in = False
        self._login_pending = False

        # Timers
        self._heartbeat_timer: asyncio.TimerHandle | None = None
        self._reconnect_timer: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._send_tasks: set[asyncio.Task[None]] = set()

        # Observers and routing
        self._emitter = EventEmitter()
        self._router = MessageRouter(
            self._emitter,
            on_login_ack=self._handle_login_ack,
            on_error_ack=self._handle_error_ack,
        )
        self._subscriptions = SubscriptionManager(self._send, lambda: self.logged_in)

        # Event loop reference (set on connect)
        self._loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_config(cls, config: MexcWsConfig) -> MexcFuturesSession:
        """Create a session from an existing configuration."""
        return cls(
            config.api_key,
            config.secret_key,
            auto_reconnect=config.auto_reconnect,
            reconnect_interval=config.reconnect_interval,
            heartbeat_interval=config.heartbeat_interval,
            url=config.url,
            connect_timeout=config.connect_timeout,
        )

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the WebSocket.

        Raises:
            MexcAlreadyConnectedError: If already connecting or connected.
            MexcClientError: If the socket cannot be opened, or if
                disconnect() was called while the open was pending.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise MexcAlreadyConnectedError(f"Session is already {self._state.value}")

        self._loop = asyncio.get_running_loop()
        self._shutdown_requested = False
        self._cancel_reconnect_timer()
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)

        _LOGGER.info("Connecting to %s", self.config.url)
        ws_client = MexcWsClient()
        try:
            await ws_client.connect(
                self.config.url, timeout=self.config.connect_timeout
            )
        except MexcClientError as err:
            _LOGGER.warning("Connection failed: %s", err)
            if generation == self._generation:
                self._set_state(ConnectionState.DISCONNECTED)
            raise
        except asyncio.CancelledError:
            if generation == self._generation:
                self._set_state(ConnectionState.DISCONNECTED)
            raise

        if generation != self._generation:
            _LOGGER.info("Connect aborted: disconnect requested while connecting")
            await self._close_transport(ws_client)
            raise MexcConnectionError("Connect aborted by disconnect")

        self._ws = ws_client
        self._set_state(ConnectionState.CONNECTED)
        self._start_heartbeat()
        self._listen_task = asyncio.create_task(self._listen(ws_client))

        _LOGGER.info("WebSocket connected")
        self._emitter.emit(SessionEvent.CONNECTED)

    async def disconnect(self) -> None:
        """Close the session without reconnecting. Safe to call repeatedly.

        Listeners stay registered. A later connect() re-arms auto-reconnect.
        """
        _LOGGER.info("Disconnecting WebSocket")
        was_connected = self._state is ConnectionState.CONNECTED
        self._shutdown_requested = True
        self._generation += 1

        self._cancel_reconnect()
        self._stop_heartbeat()
        for task in list(self._send_tasks):
            task.cancel()

        listen_task, self._listen_task = self._listen_task, None
        ws, self._ws = self._ws, None
        self._logged_in = False
        self._login_pending = False
        self._set_state(ConnectionState.DISCONNECTED)

        if listen_task is not None and listen_task is not asyncio.current_task():
            listen_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await listen_task

        if ws is not None:
            await self._close_transport(ws)

        if was_connected:
            self._emitter.emit(
                SessionEvent.DISCONNECTED, CLIENT_CLOSE_CODE, CLIENT_CLOSE_REASON
            )

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Whether the WebSocket is open."""
        return self._state is ConnectionState.CONNECTED

    @property
    def logged_in(self) -> bool:
        """Whether the login has been acknowledged on the current connection."""
        return self._logged_in

    @property
    def login_pending(self) -> bool:
        """Whether a login request awaits its acknowledgment."""
        return self._login_pending

    @property
    def heartbeat_active(self) -> bool:
        """Whether a heartbeat is scheduled."""
        return self._heartbeat_timer is not None

    @property
    def reconnect_scheduled(self) -> bool:
        """Whether a reconnect attempt is scheduled or running."""
        return self._reconnect_timer is not None or self._reconnect_task is not None

    @property
    def auto_reconnect(self) -> bool:
        """Whether unsolicited closes trigger a reconnect."""
        return self.config.auto_reconnect

    @auto_reconnect.setter
    def auto_reconnect(self, value: bool) -> None:
        self.config.auto_reconnect = value
        if not value:
            self._cancel_reconnect()

    # -------------------------------------------------------------------------
    # Public API: Authentication
    # -------------------------------------------------------------------------

    async def login(self, subscribe: bool = True) -> None:
        """Send a signed login request.

        Returns once the request is sent; the outcome arrives later as a
        LOGIN or LOGIN_ERROR event. Register listeners before calling.

        Args:
            subscribe: False cancels the default push of all private data.

        Raises:
            MexcNotConnectedError: If the session is not connected.
            MexcLoginPendingError: If a previous login is unacknowledged.
        """
        if self._state is not ConnectionState.CONNECTED or self._ws is None:
            raise MexcNotConnectedError("WebSocket not connected")
        if self._login_pending:
            raise MexcLoginPendingError(
                "A login request is already awaiting acknowledgment"
            )

        req_time = current_req_time()
        frame = build_login(
            api_key=self.config.api_key,
            signature=sign_login(self.config.api_key, self.config.secret_key, req_time),
            req_time=req_time,
            subscribe=subscribe,
        )

        self._login_pending = True
        try:
            await self._send(frame)
        except MexcClientError:
            self._login_pending = False
            raise
        _LOGGER.debug("Login request sent (subscribe=%s)", subscribe)

    # -------------------------------------------------------------------------
    # Public API: Subscriptions
    # -------------------------------------------------------------------------

    async def set_personal_filter(
        self, filters: Iterable[FilterSpec] | None = None
    ) -> None:
        """Replace the personal data filter set. Requires a successful login."""
        await self._subscriptions.set_filter(filters)

    async def subscribe_to_orders(self, symbols: Sequence[str] | None = None) -> None:
        """Subscribe to order updates for symbols."""
        await self._subscriptions.subscribe_to_orders(symbols)

    async def subscribe_to_order_deals(
        self, symbols: Sequence[str] | None = None
    ) -> None:
        """Subscribe to order deals (executions) for symbols."""
        await self._subscriptions.subscribe_to_order_deals(symbols)

    async def subscribe_to_positions(
        self, symbols: Sequence[str] | None = None
    ) -> None:
        """Subscribe to position updates for symbols."""
        await self._subscriptions.subscribe_to_positions(symbols)

    async def subscribe_to_assets(self) -> None:
        """Subscribe to asset (balance) updates."""
        await self._subscriptions.subscribe_to_assets()

    async def subscribe_to_adl_levels(self) -> None:
        """Subscribe to ADL level updates."""
        await self._subscriptions.subscribe_to_adl_levels()

    async def subscribe_to_multiple(self, filters: Iterable[FilterSpec]) -> None:
        """Subscribe to multiple data types with custom filters."""
        await self._subscriptions.subscribe_to_multiple(filters)

    async def subscribe_to_all(self) -> None:
        """Subscribe to all private data."""
        await self._subscriptions.subscribe_to_all()

    # -------------------------------------------------------------------------
    # Public API: Listeners
    # -------------------------------------------------------------------------

    def on(self, event: SessionEvent | str, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that removes it."""
        return self._emitter.on(event, listener)

    def once(self, event: SessionEvent | str, listener: Listener) -> Callable[[], None]:
        """Register a listener for the next occurrence of an event only."""
        return self._emitter.once(event, listener)

    def off(self, event: SessionEvent | str, listener: Listener) -> None:
        """Remove a listener."""
        self._emitter.off(event, listener)

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        """Update connection state; leaving CONNECTED drops the login."""
        if self._state is not state:
            _LOGGER.debug("State: %s → %s", self._state.value, state.value)
            self._state = state
        if state is not ConnectionState.CONNECTED:
            self._logged_in = False
            self._login_pending = False

    def _handle_closed(self, code: int, reason: str) -> None:
        """Tear down after the transport closed on its own."""
        _LOGGER.info("WebSocket closed: %s %s", code, reason)
        self._stop_heartbeat()
        self._ws = None
        self._listen_task = None
        self._set_state(ConnectionState.DISCONNECTED)
        self._emitter.emit(SessionEvent.DISCONNECTED, code, reason)

        if self.config.auto_reconnect and not self._shutdown_requested:
            self._schedule_reconnect()

    def _handle_login_ack(self, success: bool) -> None:
        self._login_pending = False
        self._logged_in = success and self._state is ConnectionState.CONNECTED

    def _handle_error_ack(self) -> None:
        # Error pushes carry no method; one arriving mid-login answers it.
        if self._login_pending:
            _LOGGER.warning("Login answered on the error channel")
            self._login_pending = False

    async def _close_transport(self, ws: MexcWsClient) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("WebSocket close timed out")

    # -------------------------------------------------------------------------
    # Internal: Reconnect
    # -------------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        """Schedule one reconnect attempt after the configured interval."""
        self._cancel_reconnect_timer()
        delay = self.config.reconnect_interval
        _LOGGER.info("Scheduling reconnect in %.1fs", delay)
        loop = self._loop or asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(delay, self._on_reconnect_timer)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_timer = None
        if (
            self._state is not ConnectionState.DISCONNECTED
            or self._shutdown_requested
            or not self.config.auto_reconnect
        ):
            return
        self._reconnect_task = asyncio.ensure_future(self._reconnect())

    async def _reconnect(self) -> None:
        try:
            _LOGGER.info("Attempting to reconnect")
            await self.connect()
        except MexcStateError as err:
            _LOGGER.debug("Reconnect skipped: %s", err)
        except MexcClientError as err:
            _LOGGER.warning("Reconnection failed: %s", err)
            if self.config.auto_reconnect and not self._shutdown_requested:
                self._schedule_reconnect()
        finally:
            self._reconnect_task = None

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _cancel_reconnect(self) -> None:
        """Cancel both a pending reconnect timer and a running attempt."""
        self._cancel_reconnect_timer()
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, ws_client: MexcWsClient) -> None:
        """Feed transport notifications into the router until close."""
        close_code, close_reason = ABNORMAL_CLOSURE, ""
        message_count = 0

        try:
            async for msg in ws_client:
                if msg.type is MexcWsMessageType.TEXT:
                    message_count += 1
                    _LOGGER.debug("Received: %s", msg.data)
                    try:
                        self._router.route_text(msg.data or "")
                    except Exception as err:
                        _LOGGER.exception("Error handling message: %s", err)
                        self._emitter.emit(SessionEvent.ERROR, err)

                elif msg.type is MexcWsMessageType.ERROR:
                    _LOGGER.error("WebSocket error: %s", msg.error)
                    self._emitter.emit(SessionEvent.ERROR, msg.error)

                elif msg.type is MexcWsMessageType.CLOSED:
                    close_code = msg.close_code or ABNORMAL_CLOSURE
                    close_reason = msg.close_reason
                    break

        except MexcClientError as err:
            _LOGGER.warning("Client error: %s", err)
            self._emitter.emit(SessionEvent.ERROR, err)
        except Exception as err:
            _LOGGER.exception("Unexpected listener error: %s", err)
            self._emitter.emit(SessionEvent.ERROR, err)

        _LOGGER.debug("Listener finished (%d messages)", message_count)
        if ws_client is self._ws:
            self._handle_closed(close_code, close_reason)

    # -------------------------------------------------------------------------
    # Internal: Heartbeat
    # -------------------------------------------------------------------------

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        loop = self._loop or asyncio.get_running_loop()
        self._heartbeat_timer = loop.call_later(
            self.config.heartbeat_interval, self._on_heartbeat_timer
        )

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_timer is not None:
            self._heartbeat_timer.cancel()
            self._heartbeat_timer = None

    def _on_heartbeat_timer(self) -> None:
        self._heartbeat_timer = None
        if self._state is not ConnectionState.CONNECTED:
            return
        self._spawn(self._send_heartbeat())
        self._start_heartbeat()

    async def _send_heartbeat(self) -> None:
        try:
            await self._send(build_ping())
        except MexcClientError as err:
            _LOGGER.warning("Heartbeat failed: %s", err)
            self._emitter.emit(SessionEvent.ERROR, err)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.ensure_future(coro)
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    # -------------------------------------------------------------------------
    # Internal: Sending
    # -------------------------------------------------------------------------

    async def _send(self, frame: dict[str, Any]) -> None:
        """Send one frame. Nothing is queued when the socket is not open."""
        if self._ws is None:
            raise MexcConnectionError("WebSocket is not connected")
        _LOGGER.debug("Sending: %s", frame.get("method"))
        await self._ws.send_json(frame)
