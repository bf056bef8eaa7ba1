import json
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from bybit_relay.config import ExchangeConfig
from bybit_relay.database import get_db
from bybit_relay.main import app
from bybit_relay.routes import webhook
from bybit_relay.services.bybit import BybitClient
from bybit_relay.services.processor import AlertProcessor
from bybit_relay.services.store import TradeStore
from conftest import FakeHttp, FakeResponse, seed, server_time, trades

client = TestClient(app)

ALERT_URL = "/.netlify/functions/processAlert/{}"
CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "POST, OPTIONS",
    "access-control-allow-headers": "Content-Type, Authorization",
}


@pytest.fixture
def wire(db):
    """Point the app at the test database and a fake Bybit transport."""
    http = FakeHttp()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_processor():
        return AlertProcessor(TradeStore(db), BybitClient(ExchangeConfig(), http=http))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[webhook.get_processor] = override_get_processor
    yield http
    app.dependency_overrides.clear()


def assert_cors(resp):
    for name, value in CORS.items():
        assert resp.headers[name] == value


def test_expired_webhook_returns_404(db, wire):
    seed(db, token="abc123", expires_in=timedelta(days=-1))

    resp = client.post(ALERT_URL.format("abc123"), json={"symbol": "BTCUSDT"})

    assert resp.status_code == 404
    assert resp.json() == {"error": "Invalid or expired webhook"}
    assert_cors(resp)
    assert trades(db) == []


def test_unknown_webhook_matches_expired_response(db, wire):
    seed(db, token="abc123", expires_in=timedelta(days=-1))
    expired = client.post(ALERT_URL.format("abc123"), json={})
    unknown = client.post(ALERT_URL.format("zzz999"), json={})
    assert expired.status_code == unknown.status_code == 404
    assert expired.json() == unknown.json()


def test_test_mode_alert_is_simulated(db, wire):
    seed(db, token="abc123", test_mode=True)

    resp = client.post(ALERT_URL.format("abc123"), json={
        "symbol": "BTCUSDT", "side": "Buy", "orderType": "Market", "quantity": 0.001,
    })

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["status"] == "TEST_ORDER"
    assert data["testMode"] is True
    assert data["orderId"].startswith("test-")
    assert_cors(resp)

    assert wire.calls == []
    (trade,) = trades(db)
    assert trade.quantity == Decimal("0.001")
    assert trade.order_id == data["orderId"]


def test_live_alert_places_order(db, wire):
    seed(db, token="live", test_mode=False)
    wire.responses = [server_time(), FakeResponse({"retCode": 0, "retMsg": "OK", "result": {"orderId": "1321003749386327552"}})]

    resp = client.post("/api/processAlert/live", json={"side": "Buy", "quantity": "0.002"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "orderId": "1321003749386327552", "status": "Created", "testMode": False}
    assert wire.calls[1]["url"] == "https://api.bybit.com/v5/order/create"
    assert trades(db)[0].order_id == "1321003749386327552"


def test_live_order_uses_trimmed_bot_defaults(db, wire):
    seed(db, token="live", test_mode=False, default_stop_loss=Decimal("0"))
    wire.responses = [server_time(), FakeResponse({"retCode": 0, "retMsg": "OK", "result": {"orderId": "1321003749386327553"}})]

    resp = client.post(ALERT_URL.format("live"), json={"side": "Buy"})

    assert resp.status_code == 200
    sent = json.loads(wire.calls[1]["data"])
    assert sent["qty"] == "0.01"
    assert sent["stopLoss"] == "0"


def test_vendor_error_returns_500_without_trade(db, wire):
    seed(db, token="live", test_mode=False)
    wire.responses = [server_time(), FakeResponse({"retCode": 110007, "retMsg": "ab not enough for new order"})]

    resp = client.post(ALERT_URL.format("live"), json={"side": "Buy"})

    assert resp.status_code == 500
    assert "110007" in resp.json()["error"]
    assert "s3cr3t" not in resp.text
    assert_cors(resp)
    assert trades(db) == []


def test_unreachable_exchange_returns_500(db, wire):
    import requests
    seed(db, token="live", test_mode=False)
    wire.responses = [requests.ConnectionError("boom")]

    resp = client.post(ALERT_URL.format("live"), json={})

    assert resp.status_code == 500
    assert resp.json()["error"].startswith("Failed to execute order")
    assert trades(db) == []


def test_missing_credentials_returns_400(db, wire):
    seed(db, token="abc123", with_credentials=False)

    resp = client.post(ALERT_URL.format("abc123"), json={"symbol": "BTCUSDT"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "API credentials not found"}
    assert trades(db) == []


def test_malformed_body_returns_400(db, wire):
    seed(db, token="abc123")
    resp = client.post(ALERT_URL.format("abc123"), content=b"{oops", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_trade_log_failure_still_reports_success(db, wire, monkeypatch):
    seed(db, token="abc123")

    def fail(self, **fields):
        raise Exception("db commit failed")

    monkeypatch.setattr(TradeStore, "insert_trade", fail)

    resp = client.post(ALERT_URL.format("abc123"), json={})

    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_unexpected_error_returns_generic_500(db, wire, monkeypatch):
    seed(db, token="abc123")

    def boom(self, user_id, exchange):
        raise RuntimeError("connection string postgres://user:pw@host")

    monkeypatch.setattr(TradeStore, "get_credential", boom)

    resp = client.post(ALERT_URL.format("abc123"), json={})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_preflight_returns_204_with_cors():
    resp = client.options(ALERT_URL.format("abc123"))
    assert resp.status_code == 204
    assert resp.content == b""
    assert_cors(resp)


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "TRACE"])
def test_other_methods_are_not_allowed(method):
    resp = client.request(method, ALERT_URL.format("abc123"))
    assert resp.status_code == 405
    assert resp.json() == {"error": "Method not allowed"}
    assert_cors(resp)


def test_head_is_not_allowed_and_keeps_cors():
    resp = client.head(ALERT_URL.format("abc123"))
    assert resp.status_code == 405
    assert_cors(resp)


def test_root():
    resp = client.get("/")
    assert resp.status_code == 200
