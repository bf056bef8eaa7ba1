from decimal import Decimal
from bybit_relay.exceptions import ValidationError
from bybit_relay.schemas.order import AlertIntent
from bybit_relay.schemas.webhook import TradingViewAlert


def _pick(value, default):
    return value if value is not None else default


def _column_value(value):
    """Drop the padding a Numeric column adds: 0.0100000000 -> 0.01, 0E-10 -> 0."""
    if isinstance(value, Decimal):
        return Decimal(format(value.normalize(), "f"))
    return value


def assemble(alert: TradingViewAlert, bot) -> AlertIntent:
    """Overlay the alert on the bot's defaults, field by field.

    Price is never defaulted: bots carry no price, only the alert does.
    """
    intent = dict(
        symbol=_pick(alert.symbol, bot.symbol),
        side=_pick(alert.side, bot.default_side),
        order_type=_pick(alert.order_type, bot.default_order_type),
        quantity=_pick(alert.quantity, _column_value(bot.default_quantity)),
        price=alert.price,
        stop_loss=_pick(alert.stop_loss, _column_value(bot.default_stop_loss)),
        take_profit=_pick(alert.take_profit, _column_value(bot.default_take_profit)),
    )

    missing = [name for name in ("symbol", "side", "order_type", "quantity") if intent[name] in (None, "")]
    if missing:
        raise ValidationError(f"Missing order fields: {', '.join(missing)}")
    if intent["order_type"].lower() == "limit" and intent["price"] is None:
        raise ValidationError("Limit orders require a price")
    return AlertIntent(**intent)


def use_testnet(bot) -> bool:
    """Venue choice. Only the bot's test_mode counts; credential flags are ignored."""
    return bool(bot.test_mode)
