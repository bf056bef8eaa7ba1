from sqlalchemy import Column, Integer, String, Boolean, DateTime
from bybit_relay.database import Base
from bybit_relay.models.trade import utcnow


class ApiCredential(Base):
    """Exchange API credentials, one per (user, exchange)."""
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    exchange = Column(String, default="bybit")
    api_key = Column(String)
    api_secret = Column(String)
    # Stored for the front-end only; bot.test_mode decides the venue.
    test_mode = Column(Boolean, default=False)
    api_version = Column(String, nullable=True, doc="v5 or v2; NULL falls back to BYBIT_API_VERSION")
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<ApiCredential id={self.id} user_id={self.user_id} exchange={self.exchange}>"
