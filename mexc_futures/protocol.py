"""Protocol helpers for MEXC futures WebSocket frames.

Frames are single JSON objects. Requests carry a ``method`` and an optional
``param`` block; acknowledgments echo the method on a ``rs.<method>`` channel.
There are no request identifiers, so responses are matched by name only.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import MexcDecodeError

DEFAULT_WS_URL = "wss://contract.mexc.com/edge"

METHOD_LOGIN = "login"
METHOD_PERSONAL_FILTER = "personal.filter"
METHOD_PING = "ping"

CHANNEL_PONG = "pong"
CHANNEL_LOGIN = "rs.login"
CHANNEL_PERSONAL_FILTER = "rs.personal.filter"
CHANNEL_ERROR = "rs.error"


class FilterKind(Enum):
    """Private data categories accepted by ``personal.filter``."""

    ORDER = "order"
    ORDER_DEAL = "order.deal"
    POSITION = "position"
    PLAN_ORDER = "plan.order"
    STOP_ORDER = "stop.order"
    STOP_PLAN_ORDER = "stop.planorder"
    RISK_LIMIT = "risk.limit"
    ADL_LEVEL = "adl.level"
    ASSET = "asset"

    @property
    def accepts_rules(self) -> bool:
        """Whether the stream can be narrowed to a list of symbols."""
        return self not in _GLOBAL_FILTERS


_GLOBAL_FILTERS = frozenset({FilterKind.ASSET, FilterKind.ADL_LEVEL})


@dataclass(frozen=True)
class PersonalFilter:
    """One entry of a filter set.

    Attributes:
        kind: Private data category.
        rules: Symbols to narrow the stream to. ``None`` or empty means all
            symbols. Ignored for global kinds.
    """

    kind: FilterKind
    rules: tuple[str, ...] | None = None

    @classmethod
    def from_value(cls, value: PersonalFilter | Mapping[str, Any]) -> PersonalFilter:
        """Normalize a filter given either as a PersonalFilter or a mapping.

        Raises:
            ValueError: If the filter kind is missing or unknown.
        """
        if isinstance(value, PersonalFilter):
            return value
        raw_kind = value.get("filter")
        if raw_kind is None:
            raise ValueError("Filter entry is missing the 'filter' field")
        kind = raw_kind if isinstance(raw_kind, FilterKind) else FilterKind(raw_kind)
        rules = value.get("rules")
        if isinstance(rules, str):
            raise ValueError("Filter rules must be a list of symbols, not a string")
        return cls(kind=kind, rules=tuple(rules) if rules is not None else None)

    def to_param(self) -> dict[str, Any]:
        """Render the wire form of this filter."""
        param: dict[str, Any] = {"filter": self.kind.value}
        if self.rules is not None and self.kind.accepts_rules:
            param["rules"] = list(self.rules)
        return param


def build_login(
    *,
    api_key: str,
    signature: str,
    req_time: str,
    subscribe: bool | None = True,
) -> dict[str, Any]:
    """Build a login request.

    Args:
        api_key: API key from the MEXC API management page.
        signature: Output of ``sign_login`` for ``req_time``.
        req_time: Epoch milliseconds used for the signature.
        subscribe: ``False`` cancels the default push of all private data.
            ``None`` omits the flag.
    """
    frame: dict[str, Any] = {"method": METHOD_LOGIN}
    if subscribe is not None:
        frame["subscribe"] = subscribe
    frame["param"] = {
        "apiKey": api_key,
        "signature": signature,
        "reqTime": req_time,
    }
    return frame


def build_personal_filter(
    filters: Iterable[PersonalFilter | Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a personal filter request. An empty list subscribes to everything."""
    normalized = [PersonalFilter.from_value(item) for item in filters or ()]
    return {
        "method": METHOD_PERSONAL_FILTER,
        "param": {"filters": [item.to_param() for item in normalized]},
    }


def build_ping() -> dict[str, Any]:
    """Build a heartbeat request."""
    return {"method": METHOD_PING}


def encode_message(message: Mapping[str, Any]) -> str:
    """Serialize a frame for the wire."""
    return json.dumps(message)


def decode_message(text: str | bytes) -> dict[str, Any]:
    """Decode one inbound frame into a JSON object.

    Raises:
        MexcDecodeError: If the frame is not valid JSON or not an object.
    """
    try:
        decoded = json.loads(text)
    except (TypeError, ValueError) as err:
        raise MexcDecodeError(f"Malformed frame: {err}") from err
    if not isinstance(decoded, dict):
        raise MexcDecodeError(
            f"Expected a JSON object, got {type(decoded).__name__}"
        )
    return decoded
