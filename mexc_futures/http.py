"""HTTP client for MEXC futures REST endpoints.

One request per call, no retries. The decoded JSON envelope
(``{"success": ..., "code": ..., "data": ...}``) is returned unchanged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Final

import aiohttp

from .errors import (
    MexcConnectionError,
    MexcResponseError,
    MexcTimeout,
)
from .signer import current_req_time, sign_web_request

_LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL: Final = "https://futures.mexc.com/api/v1"
DEFAULT_USER_AGENT: Final = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MAX_CANCEL_BATCH: Final = 50


class Endpoints:
    """REST paths relative to the base URL."""

    SUBMIT_ORDER = "/private/order/submit"
    CANCEL_ORDER = "/private/order/cancel"
    CANCEL_ORDER_BY_EXTERNAL_ID = "/private/order/cancel_with_external"
    CANCEL_ALL_ORDERS = "/private/order/cancel_all"
    ORDER_HISTORY = "/private/order/list/history_orders"
    ORDER_DEALS = "/private/order/list/order_deals"
    GET_ORDER = "/private/order/get"
    GET_ORDER_BY_EXTERNAL_ID = "/private/order/external"
    RISK_LIMIT = "/private/account/risk_limit"
    FEE_RATE = "/private/account/tiered_fee_rate"
    ACCOUNT_ASSET = "/private/account/asset"
    OPEN_POSITIONS = "/private/position/open_positions"
    TICKER = "/contract/ticker"
    CONTRACT_DETAIL = "/contract/detail"
    CONTRACT_DEPTH = "/contract/depth"


class MexcFuturesHttpClient:
    """HTTP client wrapper for MEXC futures REST endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        auth_token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        user_agent: str | None = None,
        custom_headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize client.

        Args:
            session: Shared aiohttp session
            auth_token: WEB authentication token (starts with "WEB")
            base_url: API base URL
            timeout: Total request timeout (seconds)
            user_agent: User-Agent header override
            custom_headers: Extra headers sent with every request
        """
        self._session = session
        self._auth_token = auth_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent or DEFAULT_USER_AGENT
        self._custom_headers = dict(custom_headers or {})

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _headers(self, body: str | None = None) -> dict[str, str]:
        """Build request headers; a body adds the request signature."""
        headers = {
            "Authorization": self._auth_token,
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
        }
        if body is not None:
            nonce = current_req_time()
            headers["x-mxc-nonce"] = nonce
            headers["x-mxc-sign"] = sign_web_request(self._auth_token, nonce, body)
        headers.update(self._custom_headers)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        url = self._url(path)
        payload = None
        if body is not None:
            payload = json.dumps(body, separators=(",", ":"))

        _LOGGER.debug("%s %s", method, url)
        try:
            async with self._session.request(
                method,
                url,
                params=_clean_params(params),
                data=payload,
                headers=self._headers(payload),
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    _LOGGER.debug("%s %s failed: %s %s", method, url, resp.status, text)
                    raise MexcResponseError(
                        resp.status, f"{method} {path} failed with status {resp.status}"
                    )
                return await resp.json()
        except TimeoutError as err:
            raise MexcTimeout(f"{method} {path} timed out") from err
        except aiohttp.ClientError as err:
            raise MexcConnectionError(f"{method} {path} failed") from err

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def submit_order(self, order: Mapping[str, Any]) -> Any:
        """Submit an order via /private/order/submit."""
        return await self._request("POST", Endpoints.SUBMIT_ORDER, body=dict(order))

    async def cancel_orders(self, order_ids: Sequence[int]) -> Any:
        """Cancel orders by order ID (up to 50 at once)."""
        if not order_ids:
            raise ValueError("Order IDs array cannot be empty")
        if len(order_ids) > MAX_CANCEL_BATCH:
            raise ValueError(
                f"Cannot cancel more than {MAX_CANCEL_BATCH} orders at once"
            )
        return await self._request(
            "POST", Endpoints.CANCEL_ORDER, body=list(order_ids)
        )

    async def cancel_order_by_external_id(self, symbol: str, external_oid: str) -> Any:
        """Cancel an order by its external order ID."""
        return await self._request(
            "POST",
            Endpoints.CANCEL_ORDER_BY_EXTERNAL_ID,
            body={"symbol": symbol, "externalOid": external_oid},
        )

    async def cancel_all_orders(self, symbol: str | None = None) -> Any:
        """Cancel all orders of a contract, or every order without a symbol."""
        body = {"symbol": symbol} if symbol else {}
        return await self._request("POST", Endpoints.CANCEL_ALL_ORDERS, body=body)

    async def get_order_history(self, **params: Any) -> Any:
        """Get order history (symbol, states, category, page_num, page_size...)."""
        return await self._request("GET", Endpoints.ORDER_HISTORY, params=params)

    async def get_order_deals(self, **params: Any) -> Any:
        """Get all transaction details of the user's orders."""
        return await self._request("GET", Endpoints.ORDER_DEALS, params=params)

    async def get_order(self, order_id: int | str) -> Any:
        """Get order information by order ID."""
        return await self._request("GET", f"{Endpoints.GET_ORDER}/{order_id}")

    async def get_order_by_external_id(self, symbol: str, external_oid: str) -> Any:
        """Get order information by external order ID."""
        return await self._request(
            "GET", f"{Endpoints.GET_ORDER_BY_EXTERNAL_ID}/{symbol}/{external_oid}"
        )

    # -------------------------------------------------------------------------
    # Account
    # -------------------------------------------------------------------------

    async def get_risk_limit(self) -> Any:
        """Get risk limits for the account."""
        return await self._request("GET", Endpoints.RISK_LIMIT)

    async def get_fee_rate(self) -> Any:
        """Get fee rates for contracts."""
        return await self._request("GET", Endpoints.FEE_RATE)

    async def get_account_asset(self, currency: str) -> Any:
        """Get the account asset for a single currency (e.g. "USDT")."""
        return await self._request("GET", f"{Endpoints.ACCOUNT_ASSET}/{currency}")

    async def get_open_positions(self, symbol: str | None = None) -> Any:
        """Get open positions, optionally for one contract."""
        return await self._request(
            "GET", Endpoints.OPEN_POSITIONS, params={"symbol": symbol}
        )

    # -------------------------------------------------------------------------
    # Market
    # -------------------------------------------------------------------------

    async def get_ticker(self, symbol: str) -> Any:
        """Get ticker data for a contract."""
        return await self._request("GET", Endpoints.TICKER, params={"symbol": symbol})

    async def get_contract_detail(self, symbol: str | None = None) -> Any:
        """Get contract information; all contracts without a symbol."""
        return await self._request(
            "GET", Endpoints.CONTRACT_DETAIL, params={"symbol": symbol}
        )

    async def get_contract_depth(self, symbol: str, limit: int | None = None) -> Any:
        """Get the order book of a contract."""
        return await self._request(
            "GET", f"{Endpoints.CONTRACT_DEPTH}/{symbol}", params={"limit": limit}
        )

    async def test_connection(self) -> bool:
        """Check connectivity using a public endpoint."""
        try:
            await self.get_ticker("BTC_USDT")
        except (MexcConnectionError, MexcResponseError, MexcTimeout) as err:
            _LOGGER.warning("Connection test failed: %s", err)
            return False
        return True


def _clean_params(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop unset query parameters and render booleans as true/false.

    aiohttp rejects None and bool query values.
    """
    if not params:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned or None
