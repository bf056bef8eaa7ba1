from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class TradingViewAlert(BaseModel):
    """Inbound alert body. Every field is optional; the bot fills the gaps.

    Numbers are parsed as ``Decimal`` so a quantity such as ``0.001`` reaches
    the exchange exactly as TradingView sent it.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbol: Optional[str] = None
    side: Optional[str] = None
    order_type: Optional[str] = Field(None, alias="orderType")
    quantity: Optional[Decimal] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, gt=0)
    stop_loss: Optional[Decimal] = Field(None, alias="stopLoss")
    take_profit: Optional[Decimal] = Field(None, alias="takeProfit")


class GenerateWebhookRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    bot_id: Optional[int] = Field(None, alias="botId")
    expiration_days: Optional[int] = Field(None, alias="expirationDays", gt=0)


class GenerateWebhookResponse(BaseModel):
    webhookUrl: str
    expiresAt: str
