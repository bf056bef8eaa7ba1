from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from bybit_relay.database import Base
from bybit_relay.models.trade import utcnow


class Webhook(Base):
    """Bearer token that lets TradingView trigger one bot."""
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True)
    webhook_token = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, index=True)
    bot_id = Column(Integer, ForeignKey("bots.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    bot = relationship("Bot")
