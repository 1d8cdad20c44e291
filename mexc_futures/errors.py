"""Client error types for MEXC futures interactions."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any


class MexcClientError(Exception):
    """Base error for MEXC futures client failures."""


class MexcTimeout(MexcClientError):
    """Timeout while communicating with the exchange."""


class MexcConnectionError(MexcClientError):
    """Network connection to the exchange failed or is not open."""


class MexcHandshakeError(MexcClientError):
    """WebSocket handshake failed."""


class MexcResponseError(MexcClientError):
    """HTTP response error from the exchange."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class MexcDecodeError(MexcClientError):
    """Inbound frame could not be decoded into a JSON object."""


class MexcApiError(MexcClientError):
    """Error reported by the exchange itself (e.g. on the rs.error channel)."""

    def __init__(self, message: str, code: int = 0, extend: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.extend = extend

    @classmethod
    def from_payload(cls, payload: Any) -> MexcApiError:
        """Build an error from a server payload of unknown shape."""
        if isinstance(payload, Mapping):
            message = payload.get("msg") or payload.get("message") or "Unknown error"
            code = payload.get("code", 0)
            try:
                code = int(code)
            except (TypeError, ValueError):
                code = 0
            return cls(str(message), code=code, extend=dict(payload))
        if payload is None:
            return cls("Unknown error")
        return cls(str(payload), extend=payload)

    def __str__(self) -> str:
        extend = json.dumps(self.extend, default=str)
        return f"Mexc Error {self.code} - {self.args[0]} ({extend})"


class MexcStateError(MexcClientError):
    """Operation called in the wrong session state."""


class MexcNotConnectedError(MexcStateError):
    """Session is not connected."""


class MexcAlreadyConnectedError(MexcStateError):
    """Session is already connecting or connected."""


class MexcNotLoggedInError(MexcStateError):
    """Private operation attempted before a successful login."""


class MexcLoginPendingError(MexcStateError):
    """A login request is still waiting for its acknowledgment."""
