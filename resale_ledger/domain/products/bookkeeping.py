from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from resale_ledger.domain.money import non_negative_decimal, safe_rate


@dataclass
class BookkeepingEntry:
    item_name: str
    currency: str
    foreign_price: Decimal
    rate: Decimal
    selling_price: Decimal
    created_at: int | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        self.currency = str(self.currency).upper()
        self.foreign_price = non_negative_decimal(self.foreign_price, "foreign_price")
        self.rate = non_negative_decimal(self.rate, "rate")
        self.selling_price = non_negative_decimal(self.selling_price, "selling_price")

    @property
    def home_cost(self) -> Decimal:
        return self.foreign_price / safe_rate(self.rate)

    @property
    def profit(self) -> Decimal:
        return self.selling_price - self.home_cost

    def as_dict(self) -> dict:
        return {
            "item_name": self.item_name,
            "currency": self.currency,
            "foreign_price": self.foreign_price,
            "rate": self.rate,
            "home_cost": self.home_cost,
            "selling_price": self.selling_price,
            "profit": self.profit,
        }
