"""Request signatures for MEXC futures."""

from __future__ import annotations

import hashlib
import hmac
import time


def current_req_time() -> str:
    """Return the current epoch time in milliseconds, as sent on the wire."""
    return str(int(time.time() * 1000))


def sign_login(api_key: str, secret_key: str, req_time: str) -> str:
    """Sign a WebSocket login request.

    The signature is the hex HMAC-SHA256 of ``api_key + req_time`` keyed by
    the secret key.
    """
    return hmac.new(
        secret_key.encode("utf-8"),
        f"{api_key}{req_time}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def sign_web_request(auth_token: str, nonce: str, body: str) -> str:
    """Sign a REST request made with a browser (``WEB...``) auth token.

    Args:
        auth_token: WEB authentication token.
        nonce: Epoch milliseconds, also sent as ``x-mxc-nonce``.
        body: The exact serialized request body.
    """
    inner = hashlib.md5(f"{auth_token}{nonce}".encode("utf-8")).hexdigest()[7:]
    return hashlib.md5(f"{nonce}{body}{inner}".encode("utf-8")).hexdigest()
