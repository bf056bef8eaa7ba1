from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    api_key: str
    api_secret: str = field(repr=False)
    api_version: Optional[str] = None

    def masked_key(self) -> str:
        return f"{self.api_key[:4]}***" if self.api_key else "***"

    def __repr__(self):
        return f"Credentials(api_key={self.masked_key()!r}, api_version={self.api_version!r})"


@dataclass(frozen=True)
class AlertIntent:
    symbol: str
    side: str
    order_type: str
    quantity: Decimal
    price: Optional[Decimal] = None
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None

    @property
    def is_limit(self) -> bool:
        return self.order_type.lower() == "limit"


@dataclass(frozen=True)
class OrderResult:
    order_id: str
    symbol: str
    side: str
    order_type: str
    qty: Decimal
    price: Optional[Decimal]
    status: str
