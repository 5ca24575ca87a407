from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

from resale_ledger.domain.money import ZERO, non_negative_decimal
from resale_ledger.domain.orders.aggregates import LineItem


@dataclass
class ProductCatalogEntry:
    name: str
    suggested_unit_price: Decimal = ZERO
    estimated_unit_shipping_cost: Decimal = ZERO
    created_at: int | None = None
    updated_at: int | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip()
        self.suggested_unit_price = non_negative_decimal(self.suggested_unit_price, "suggested_unit_price")
        self.estimated_unit_shipping_cost = non_negative_decimal(
            self.estimated_unit_shipping_cost, "estimated_unit_shipping_cost"
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "suggestedPrice": self.suggested_unit_price,
            "estimatedShipping": self.estimated_unit_shipping_cost,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ProductCatalogEntry":
        return cls(
            id=doc.get("id"),
            name=doc.get("name", ""),
            suggested_unit_price=doc.get("suggestedPrice", 0),
            estimated_unit_shipping_cost=doc.get("estimatedShipping") or 0,
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )


def find_product(catalog: Iterable[ProductCatalogEntry], name: str) -> ProductCatalogEntry | None:
    for entry in catalog:
        if entry.name == name:
            return entry
    return None


def prefill_item(item: LineItem, entry: ProductCatalogEntry) -> LineItem:
    item.product_name = entry.name
    item.unit_selling_price = entry.suggested_unit_price
    item.estimated_unit_shipping_cost = entry.estimated_unit_shipping_cost
    return item
