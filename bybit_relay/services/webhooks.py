import logging
import secrets
from datetime import timedelta, timezone
from typing import Tuple
from sqlalchemy.orm import Session
from bybit_relay.exceptions import ValidationError
from bybit_relay.models.bot import Bot
from bybit_relay.models.trade import utcnow
from bybit_relay.models.webhook import Webhook

logger = logging.getLogger(__name__)

ALERT_PATH = "/.netlify/functions/processAlert"


def iso_timestamp(value) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def mint_token() -> str:
    # 24 random bytes -> 32 URL-safe characters
    return secrets.token_urlsafe(24)


def generate_webhook(db: Session, user_id: str, bot_id: int, expiration_days: int,
                     base_url: str, clock=utcnow) -> Tuple[str, object]:
    """Insert a fresh webhook row for the user's bot and return (url, expires_at)."""
    bot = db.query(Bot).filter(Bot.id == bot_id, Bot.user_id == user_id).first()
    if bot is None:
        raise ValidationError("Bot not found")

    token = mint_token()
    now = clock()
    expires_at = now + timedelta(days=expiration_days)
    db.add(Webhook(webhook_token=token, user_id=user_id, bot_id=bot_id, created_at=now, expires_at=expires_at))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Generated webhook token %s... for bot %s, expires %s", token[:5], bot_id, expires_at.isoformat())
    return f"{base_url.rstrip('/')}{ALERT_PATH}/{token}", expires_at
