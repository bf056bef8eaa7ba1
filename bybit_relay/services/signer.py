"""
Request signing for the two Bybit API generations.

Legacy (v2): every parameter, timestamp included, is sorted by key, joined as
``key=value`` pairs with ``&`` and HMAC-SHA256 signed; the hex digest travels
as the ``sign`` parameter.

Current (v5): the signed string is ``timestamp + api_key + recv_window + payload``
where ``payload`` is the compact JSON body of a POST or the sorted query string
of a GET. The signature travels in the ``X-BAPI-SIGN`` header.

Signing is pure. A parameter that cannot be rendered as a string raises
``TypeError``; that is a programming error and is never retried.
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import Any, Dict, Mapping
from urllib.parse import urlencode


def utc_millis() -> str:
    return str(int(time.time() * 1000))


def param_str(value: Any) -> str:
    """Render one parameter value the way the exchange expects it on the wire."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        # always fixed-point, never exponent form
        return format(value, "f")
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    raise TypeError(f"cannot sign parameter of type {type(value).__name__}")


def hmac_sha256_hexdigest(secret: str, message: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def canonical_query(params: Mapping[str, Any]) -> str:
    """Sorted, URL-encoded query string; the exact bytes signed and sent."""
    return urlencode([(key, param_str(params[key])) for key in sorted(params)])


def canonical_body(params: Mapping[str, Any]) -> str:
    """Compact JSON body; the exact bytes signed and sent."""
    return json.dumps({key: param_str(value) for key, value in params.items()}, separators=(",", ":"))


def legacy_payload(params: Mapping[str, Any]) -> str:
    return "&".join(f"{key}={param_str(params[key])}" for key in sorted(params))


def legacy_signature(secret: str, params: Mapping[str, Any]) -> str:
    return hmac_sha256_hexdigest(secret, legacy_payload(params))


def sign_legacy(secret: str, params: Mapping[str, Any], timestamp: str = None) -> Dict[str, str]:
    """Return a copy of ``params`` with ``timestamp`` and ``sign`` added."""
    signed = {key: param_str(value) for key, value in params.items()}
    if "timestamp" not in signed:
        signed["timestamp"] = timestamp or utc_millis()
    signed["sign"] = legacy_signature(secret, signed)
    return signed


def current_signature(secret: str, timestamp: str, api_key: str, recv_window, payload: str) -> str:
    return hmac_sha256_hexdigest(secret, f"{timestamp}{api_key}{recv_window}{payload}")


def current_headers(api_key: str, secret: str, timestamp: str, recv_window, payload: str) -> Dict[str, str]:
    """Authentication headers for a v5 request over ``payload``."""
    return {
        "X-BAPI-API-KEY": api_key,
        "X-BAPI-TIMESTAMP": timestamp,
        "X-BAPI-RECV-WINDOW": str(recv_window),
        "X-BAPI-SIGN": current_signature(secret, timestamp, api_key, recv_window, payload),
    }
