from typing import Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session
from bybit_relay.exceptions import ValidationError
from bybit_relay.models.api_key import ApiCredential
from bybit_relay.models.bot import Bot
from bybit_relay.models.trade import Trade
from bybit_relay.models.webhook import Webhook
import logging

logger = logging.getLogger(__name__)


class TradeStore:
    """The backing-store operations the alert pipeline needs, on one session."""

    def __init__(self, db: Session):
        self.db = db

    def find_active_webhook(self, token: str, now: datetime) -> Optional[Tuple[Webhook, Bot]]:
        """Webhook and its bot in one joined query, or None if expired/unknown/orphaned."""
        row = (
            self.db.query(Webhook, Bot)
            .join(Bot, Webhook.bot_id == Bot.id)
            .filter(Webhook.webhook_token == token, Webhook.expires_at > now)
            .first()
        )
        return tuple(row) if row else None

    def get_credential(self, user_id: str, exchange: str) -> ApiCredential:
        rows = (
            self.db.query(ApiCredential)
            .filter(ApiCredential.user_id == user_id, ApiCredential.exchange == exchange)
            .limit(2)
            .all()
        )
        if len(rows) != 1:
            if rows:
                logger.warning("Ambiguous %s credentials for user %s (%d rows)", exchange, user_id, len(rows))
            raise ValidationError("API credentials not found")
        return rows[0]

    def insert_trade(self, **fields) -> Trade:
        trade = Trade(**fields)
        self.db.add(trade)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Trade saved (id=%s) with status: %s", getattr(trade, 'id', None), trade.status)
        return trade

    def bump_bot_counters(self, bot_id: int, now: datetime) -> None:
        # Read-modify-write; concurrent alerts may under-count.
        bot = self.db.query(Bot).filter(Bot.id == bot_id).first()
        if bot is None:
            logger.warning("Bot %s vanished before counter update", bot_id)
            return
        bot.trade_count = (bot.trade_count or 0) + 1
        bot.last_trade_at = now
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
