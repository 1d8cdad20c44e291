"""Personal data filter requests.

Each call replaces the server-side filter set; nothing is accumulated here.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any

from .errors import MexcNotLoggedInError
from .protocol import FilterKind, PersonalFilter, build_personal_filter

_LOGGER = logging.getLogger(__name__)

FilterSpec = PersonalFilter | Mapping[str, Any]


class SubscriptionManager:
    """Build and send ``personal.filter`` requests.

    Args:
        send: Coroutine function sending one outbound frame.
        is_logged_in: Returns the session's current login status.
    """

    def __init__(
        self,
        send: Callable[[dict[str, Any]], Awaitable[None]],
        is_logged_in: Callable[[], bool],
    ) -> None:
        self._send = send
        self._is_logged_in = is_logged_in

    async def set_filter(self, filters: Iterable[FilterSpec] | None = None) -> None:
        """Replace the personal data filter set.

        Args:
            filters: Filters to apply. ``None`` or empty subscribes to all
                private data.

        Raises:
            MexcNotLoggedInError: If the session is not logged in.
            ValueError: If a filter entry is malformed.
        """
        if not self._is_logged_in():
            raise MexcNotLoggedInError("Must login first before setting filters")
        frame = build_personal_filter(filters)
        _LOGGER.debug("Setting personal filter: %s", frame["param"]["filters"])
        await self._send(frame)

    async def subscribe_to_orders(self, symbols: Sequence[str] | None = None) -> None:
        """Subscribe to order updates, optionally for specific symbols."""
        await self._set_single(FilterKind.ORDER, symbols)

    async def subscribe_to_order_deals(
        self, symbols: Sequence[str] | None = None
    ) -> None:
        """Subscribe to order executions, optionally for specific symbols."""
        await self._set_single(FilterKind.ORDER_DEAL, symbols)

    async def subscribe_to_positions(
        self, symbols: Sequence[str] | None = None
    ) -> None:
        """Subscribe to position updates, optionally for specific symbols."""
        await self._set_single(FilterKind.POSITION, symbols)

    async def subscribe_to_assets(self) -> None:
        """Subscribe to asset (balance) updates."""
        await self._set_single(FilterKind.ASSET, None)

    async def subscribe_to_adl_levels(self) -> None:
        """Subscribe to ADL level updates."""
        await self._set_single(FilterKind.ADL_LEVEL, None)

    async def subscribe_to_multiple(self, filters: Iterable[FilterSpec]) -> None:
        """Subscribe to several data types with custom filters."""
        await self.set_filter(filters)

    async def subscribe_to_all(self) -> None:
        """Subscribe to all private data (the default after login)."""
        await self.set_filter([])

    async def _set_single(
        self, kind: FilterKind, symbols: Sequence[str] | None
    ) -> None:
        if isinstance(symbols, str):
            raise ValueError("Symbols must be a list of symbols, not a string")
        rules = tuple(symbols) if symbols is not None else None
        await self.set_filter([PersonalFilter(kind, rules)])
