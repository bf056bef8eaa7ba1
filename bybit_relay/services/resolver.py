from dataclasses import dataclass
from typing import Any
from bybit_relay.exceptions import NotFoundError
from bybit_relay.models.trade import utcnow

MAX_TOKEN_LENGTH = 128


@dataclass(frozen=True)
class ResolvedWebhook:
    owner_id: str
    bot: Any


class WebhookResolver:
    """Maps a webhook token to its owner and bot.

    Unknown, malformed, expired and orphaned tokens all raise the same
    ``NotFoundError`` so callers cannot probe which tokens ever existed.
    """

    def __init__(self, store, clock=utcnow):
        self.store = store
        self.clock = clock

    def resolve(self, token) -> ResolvedWebhook:
        if not isinstance(token, str) or not token or len(token) > MAX_TOKEN_LENGTH:
            raise NotFoundError()

        found = self.store.find_active_webhook(token, self.clock())
        if not found:
            raise NotFoundError()

        webhook, bot = found
        if bot is None:
            raise NotFoundError()
        return ResolvedWebhook(owner_id=webhook.user_id, bot=bot)
