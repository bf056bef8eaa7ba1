from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime
from bybit_relay.database import Base
from bybit_relay.models.trade import utcnow


class Bot(Base):
    """User-owned trading bot; supplies defaults for fields an alert omits."""
    __tablename__ = "bots"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    name = Column(String, nullable=True)
    symbol = Column(String)
    default_side = Column(String, doc="Buy or Sell")
    default_order_type = Column(String, doc="Market or Limit")
    default_quantity = Column(Numeric(28, 10))
    default_stop_loss = Column(Numeric(28, 10), nullable=True)
    default_take_profit = Column(Numeric(28, 10), nullable=True)
    test_mode = Column(Boolean, default=True, doc="If true, alerts are simulated and never reach the exchange")
    status = Column(String, default="active")  # active or paused
    trade_count = Column(Integer, default=0)
    last_trade_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
