"""Shared fixtures: in-memory database, seeded rows and a fake HTTP transport."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bybit_relay.database import Base
from bybit_relay.models.api_key import ApiCredential
from bybit_relay.models.bot import Bot
from bybit_relay.models.trade import Trade
from bybit_relay.models.webhook import Webhook


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def seed(db, token="tok_" + "a" * 32, test_mode=True, expires_in=timedelta(days=30),
         with_credentials=True, api_version=None, **bot_fields):
    """Insert a bot, a webhook for it and (optionally) Bybit credentials."""
    fields = dict(
        user_id="user-1",
        name="btc scalper",
        symbol="BTCUSDT",
        default_side="Buy",
        default_order_type="Market",
        default_quantity=Decimal("0.01"),
        test_mode=test_mode,
        trade_count=0,
    )
    fields.update(bot_fields)
    bot = Bot(**fields)
    db.add(bot)
    db.commit()

    now = datetime.now(timezone.utc)
    db.add(Webhook(webhook_token=token, user_id=bot.user_id, bot_id=bot.id,
                   created_at=now, expires_at=now + expires_in))
    if with_credentials:
        db.add(ApiCredential(user_id=bot.user_id, exchange="bybit", api_key="KEYabcdef",
                             api_secret="s3cr3t-value", test_mode=False, api_version=api_version))
    db.commit()
    return bot


def trades(db):
    return db.query(Trade).all()


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeHttp:
    """Stands in for the ``requests`` module; replays canned responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def server_time(ms="1700000000000"):
    return FakeResponse({"retCode": 0, "retMsg": "OK", "result": {}, "time": int(ms)})
