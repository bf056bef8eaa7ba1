from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from datetime import datetime, timezone
from bybit_relay.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Trade(Base):
    """Append-only log: one row per executed or simulated alert."""
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    bot_id = Column(Integer, ForeignKey("bots.id"), index=True)
    symbol = Column(String)
    side = Column(String)
    order_type = Column(String)
    quantity = Column(Numeric(28, 10))
    price = Column(Numeric(28, 10), nullable=True)
    order_id = Column(String, index=True)
    status = Column(String)  # vendor order status or TEST_ORDER
    created_at = Column(DateTime(timezone=True), default=utcnow)
