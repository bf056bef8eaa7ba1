"""
Bybit order placement and position queries.

One stateless client serves both API generations; the wire format of each is
a ``ProtocolStrategy`` picked from the account's ``api_version``. Every call
builds, signs and sends a fresh one-shot request, nothing is cached between
calls.

Time-in-force defaults: market orders go out as immediate-or-cancel and limit
orders as post-only (maker only). Both come from ``ExchangeConfig`` and either
can be overridden per call through ``place_order(..., time_in_force=...)``.
"""

import logging
from typing import Any, Dict, Optional

import requests

from bybit_relay.config import ExchangeConfig
from bybit_relay.exceptions import ExchangeError, TransportError, ValidationError
from bybit_relay.schemas.order import AlertIntent, Credentials, OrderResult
from bybit_relay.services import signer

logger = logging.getLogger(__name__)


class ProtocolStrategy:
    """Wire format of one Bybit API generation."""
    name = ""
    order_path = ""
    position_path = ""
    code_field = ""
    message_field = ""
    needs_server_time = False

    def order_params(self, intent: AlertIntent, category: str, time_in_force: str) -> Dict[str, Any]:
        raise NotImplementedError

    def position_params(self, symbol: str, category: str) -> Dict[str, Any]:
        raise NotImplementedError

    def signed_post(self, creds: Credentials, params: Dict[str, Any], timestamp: str, recv_window: int) -> Dict[str, Any]:
        """Return the ``requests.request`` keyword arguments for a signed POST."""
        raise NotImplementedError

    def signed_get(self, creds: Credentials, params: Dict[str, Any], timestamp: str, recv_window: int) -> Dict[str, Any]:
        raise NotImplementedError

    def order_identity(self, result: Dict[str, Any]):
        raise NotImplementedError


class V5Protocol(ProtocolStrategy):
    name = "v5"
    order_path = "/v5/order/create"
    position_path = "/v5/position/list"
    time_path = "/v5/market/time"
    code_field = "retCode"
    message_field = "retMsg"
    needs_server_time = True

    def order_params(self, intent, category, time_in_force):
        params = {
            "category": category,
            "symbol": intent.symbol,
            "side": intent.side,
            "orderType": intent.order_type,
            "qty": signer.param_str(intent.quantity),
            "timeInForce": time_in_force,
        }
        if intent.is_limit and intent.price is not None:
            params["price"] = signer.param_str(intent.price)
        if intent.stop_loss is not None:
            params["stopLoss"] = signer.param_str(intent.stop_loss)
        if intent.take_profit is not None:
            params["takeProfit"] = signer.param_str(intent.take_profit)
        return params

    def position_params(self, symbol, category):
        return {"category": category, "symbol": symbol}

    def signed_post(self, creds, params, timestamp, recv_window):
        body = signer.canonical_body(params)
        headers = signer.current_headers(creds.api_key, creds.api_secret, timestamp, recv_window, body)
        headers["Content-Type"] = "application/json"
        return {"data": body, "headers": headers}

    def signed_get(self, creds, params, timestamp, recv_window):
        query = signer.canonical_query(params)
        headers = signer.current_headers(creds.api_key, creds.api_secret, timestamp, recv_window, query)
        return {"query": query, "headers": headers}

    def order_identity(self, result):
        # v5 create only acknowledges the order; status arrives later.
        return result.get("orderId"), result.get("orderStatus") or "Created"


class LegacyProtocol(ProtocolStrategy):
    name = "v2"
    order_path = "/v2/private/order/create"
    position_path = "/v2/private/position/list"
    code_field = "ret_code"
    message_field = "ret_msg"

    TIME_IN_FORCE = {
        "IOC": "ImmediateOrCancel",
        "GTC": "GoodTillCancel",
        "FOK": "FillOrKill",
        "PostOnly": "PostOnly",
    }

    def order_params(self, intent, category, time_in_force):
        params = {
            "symbol": intent.symbol,
            "side": intent.side,
            "order_type": intent.order_type,
            "qty": signer.param_str(intent.quantity),
            "time_in_force": self.TIME_IN_FORCE.get(time_in_force, time_in_force),
        }
        if intent.is_limit and intent.price is not None:
            params["price"] = signer.param_str(intent.price)
        if intent.stop_loss is not None:
            params["stop_loss"] = signer.param_str(intent.stop_loss)
        if intent.take_profit is not None:
            params["take_profit"] = signer.param_str(intent.take_profit)
        return params

    def position_params(self, symbol, category):
        return {"symbol": symbol}

    def _sign(self, creds, params, timestamp):
        return signer.sign_legacy(creds.api_secret, dict(params, api_key=creds.api_key), timestamp)

    def signed_post(self, creds, params, timestamp, recv_window):
        return {
            "data": self._sign(creds, params, timestamp),
            "headers": {"Content-Type": "application/x-www-form-urlencoded"},
        }

    def signed_get(self, creds, params, timestamp, recv_window):
        return {"query": signer.canonical_query(self._sign(creds, params, timestamp)), "headers": {}}

    def order_identity(self, result):
        return result.get("order_id"), result.get("order_status")


PROTOCOLS = {
    "v5": V5Protocol(),
    "v2": LegacyProtocol(),
    "legacy": LegacyProtocol(),
}


def resolve_protocol(name: str) -> ProtocolStrategy:
    protocol = PROTOCOLS.get((name or "").lower())
    if protocol is None:
        raise ValidationError(f"Unsupported Bybit API version: {name}")
    return protocol


class BybitClient:
    """Signed REST client for Bybit.

    ``http`` is anything exposing ``request(method, url, **kwargs)``; the
    ``requests`` module by default.
    """

    def __init__(self, config: ExchangeConfig, http=requests):
        self.config = config
        self.http = http

    def protocol_for(self, creds: Credentials) -> ProtocolStrategy:
        return resolve_protocol(creds.api_version or self.config.api_version)

    def default_time_in_force(self, order_type: str) -> str:
        if order_type.lower() == "market":
            return self.config.market_time_in_force
        return self.config.limit_time_in_force

    def get_server_time(self, testnet: bool) -> str:
        """Exchange clock in milliseconds, used as the v5 signing timestamp."""
        url = f"{self.config.base_url(testnet)}{V5Protocol.time_path}"
        data = self._request(PROTOCOLS["v5"], "GET", url, V5Protocol.time_path)
        if data.get("time") is not None:
            return str(data["time"])
        nanos = (data.get("result") or {}).get("timeNano")
        if nanos is None:
            raise TransportError("Bybit server time response carried no timestamp")
        return str(int(nanos) // 1_000_000)

    def _timestamp(self, protocol: ProtocolStrategy, testnet: bool) -> str:
        if protocol.needs_server_time:
            return self.get_server_time(testnet)
        return signer.utc_millis()

    def place_order(self, creds: Credentials, intent: AlertIntent, testnet: bool,
                    time_in_force: Optional[str] = None) -> OrderResult:
        protocol = self.protocol_for(creds)
        tif = time_in_force or self.default_time_in_force(intent.order_type)
        params = protocol.order_params(intent, self.config.category, tif)

        timestamp = self._timestamp(protocol, testnet)
        request_kwargs = protocol.signed_post(creds, params, timestamp, self.config.recv_window)
        url = f"{self.config.base_url(testnet)}{protocol.order_path}"

        logger.info(
            "bybit_order_submit api=%s testnet=%s key=%s symbol=%s side=%s type=%s qty=%s tif=%s",
            protocol.name, testnet, creds.masked_key(), intent.symbol, intent.side,
            intent.order_type, params.get("qty"), tif,
        )
        data = self._request(protocol, "POST", url, protocol.order_path, **request_kwargs)
        result = data.get("result") or {}

        order_id, status = protocol.order_identity(result)
        logger.info("bybit_order_accepted order_id=%s status=%s", order_id, status)
        return OrderResult(
            order_id=str(order_id) if order_id is not None else None,
            symbol=intent.symbol,
            side=intent.side,
            order_type=intent.order_type,
            qty=intent.quantity,
            price=intent.price,
            status=status,
        )

    def list_positions(self, creds: Credentials, symbol: str, testnet: bool):
        """Return the vendor ``result`` payload untouched."""
        protocol = self.protocol_for(creds)
        params = protocol.position_params(symbol, self.config.category)
        timestamp = self._timestamp(protocol, testnet)
        request_kwargs = protocol.signed_get(creds, params, timestamp, self.config.recv_window)
        query = request_kwargs.pop("query")
        url = f"{self.config.base_url(testnet)}{protocol.position_path}?{query}"
        data = self._request(protocol, "GET", url, protocol.position_path, **request_kwargs)
        return data.get("result")

    def _request(self, protocol: ProtocolStrategy, method: str, url: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send one request and return the decoded envelope once the vendor code is 0."""
        # Exception text may embed the URL (and a legacy api_key), so only
        # the exception class and the path are surfaced.
        try:
            response = self.http.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("bybit_transport_error method=%s path=%s error=%s", method, path, exc.__class__.__name__)
            raise TransportError(f"{method} {path} failed: {exc.__class__.__name__}", cause=exc) from exc

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("bybit_bad_response method=%s path=%s status=%s", method, path, response.status_code)
            raise TransportError(
                f"{method} {path} returned undecodable body (HTTP {response.status_code})", cause=exc
            ) from exc
        if not isinstance(data, dict):
            raise TransportError(f"{method} {path} returned unexpected payload (HTTP {response.status_code})")

        code = data.get(protocol.code_field)
        if code is not None and code != 0:
            message = data.get(protocol.message_field, "")
            logger.warning("bybit_reject path=%s code=%s message=%s", path, code, message)
            raise ExchangeError(code, message)
        if not 200 <= response.status_code < 300:
            raise TransportError(f"{method} {path} returned HTTP {response.status_code}")
        if code is None:
            raise TransportError(f"{method} {path} response missing {protocol.code_field}")
        return data
