"""
Alert processing pipeline.

Steps, strictly in order, for one inbound TradingView alert:

1. Resolve the webhook token (NotFoundError -> nothing written).
2. Parse the alert body (ValidationError -> nothing written).
3. Load the owner's Bybit credentials (ValidationError -> nothing written).
4. Assemble the order intent from alert + bot defaults.
5. Execute: simulate when ``bot.test_mode``, otherwise place the order.
   Failures propagate and nothing is persisted.
6. Log the trade row (best effort).
7. Bump the bot's trade counters (best effort).

Steps 6 and 7 run after an irreversible order, so their failures are logged
as ``PersistenceWarning`` and never retried or surfaced to the caller.
"""

import logging
import secrets
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

import pydantic

from bybit_relay.exceptions import PersistenceWarning, ValidationError
from bybit_relay.models.trade import utcnow
from bybit_relay.schemas.order import Credentials, OrderResult
from bybit_relay.schemas.webhook import TradingViewAlert
from bybit_relay.services.assembler import assemble, use_testnet
from bybit_relay.services.resolver import WebhookResolver

logger = logging.getLogger(__name__)

EXCHANGE = "bybit"
SIMULATED_STATUS = "TEST_ORDER"


@dataclass
class AlertOutcome:
    order_id: Optional[str]
    status: str
    test_mode: bool
    warnings: List[PersistenceWarning] = field(default_factory=list)


def parse_alert(raw_body) -> TradingViewAlert:
    """Parse the request body. An empty body means "use the bot defaults"."""
    try:
        if raw_body is None:
            return TradingViewAlert()
        if isinstance(raw_body, dict):
            return TradingViewAlert.model_validate(raw_body)
        if not raw_body.strip():
            return TradingViewAlert()
        return TradingViewAlert.model_validate_json(raw_body)
    except pydantic.ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "body" for err in exc.errors()})
        raise ValidationError(f"Invalid alert payload: {', '.join(fields)}") from exc


def simulate_order(intent, clock=utcnow) -> OrderResult:
    millis = int(clock().timestamp() * 1000)
    return OrderResult(
        order_id=f"test-{millis}-{secrets.token_hex(4)}",
        symbol=intent.symbol,
        side=intent.side,
        order_type=intent.order_type,
        qty=intent.quantity,
        price=intent.price if intent.price is not None else Decimal("0"),
        status=SIMULATED_STATUS,
    )


class AlertProcessor:
    def __init__(self, store, client, clock=utcnow):
        self.store = store
        self.client = client
        self.clock = clock
        self.resolver = WebhookResolver(store, clock=clock)

    def process(self, token, raw_body=None) -> AlertOutcome:
        resolved = self.resolver.resolve(token)
        bot = resolved.bot
        # Plain values up front: a failed commit later expires ORM instances.
        bot_id, test_mode = bot.id, bool(bot.test_mode)

        alert = parse_alert(raw_body)
        credential = self.store.get_credential(resolved.owner_id, EXCHANGE)
        creds = Credentials(
            api_key=credential.api_key,
            api_secret=credential.api_secret,
            api_version=credential.api_version,
        )
        intent = assemble(alert, bot)

        if test_mode:
            logger.info("Bot %s in test mode, simulating %s %s %s", bot_id, intent.side, intent.quantity, intent.symbol)
            result = simulate_order(intent, self.clock)
        else:
            result = self.client.place_order(creds, intent, testnet=use_testnet(bot))

        outcome = AlertOutcome(order_id=result.order_id, status=result.status, test_mode=test_mode)
        self._record_trade(resolved.owner_id, bot_id, result, outcome)
        self._bump_counters(bot_id, outcome)
        return outcome

    def _record_trade(self, owner_id, bot_id, result: OrderResult, outcome: AlertOutcome):
        try:
            self.store.insert_trade(
                user_id=owner_id,
                bot_id=bot_id,
                symbol=result.symbol,
                side=result.side,
                order_type=result.order_type,
                quantity=result.qty,
                price=result.price,
                order_id=result.order_id,
                status=result.status,
                created_at=self.clock(),
            )
        except Exception as exc:
            logger.exception("Trade log failed for order %s; order stands", result.order_id)
            outcome.warnings.append(PersistenceWarning(f"trade log failed: {exc.__class__.__name__}"))

    def _bump_counters(self, bot_id, outcome: AlertOutcome):
        try:
            self.store.bump_bot_counters(bot_id, self.clock())
        except Exception as exc:
            logger.exception("Counter update failed for bot %s", bot_id)
            outcome.warnings.append(PersistenceWarning(f"counter update failed: {exc.__class__.__name__}"))
