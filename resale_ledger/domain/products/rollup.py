"""Per-product profitability over the live order book.

The rollup holds no state between calls: each invocation seeds rows from the
catalog and folds every active order into them from scratch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from resale_ledger.domain.money import ZERO
from resale_ledger.domain.orders.aggregates import LineItem, Order
from resale_ledger.domain.orders.ledger import item_cost
from resale_ledger.domain.products.catalog import ProductCatalogEntry


@dataclass
class ProductStats:
    name: str
    total_quantity: int = 0
    buyers: set[str] = field(default_factory=set)
    total_revenue: Decimal = ZERO
    total_cost: Decimal = ZERO
    order_ids: list[str] = field(default_factory=list)

    @property
    def buyer_count(self) -> int:
        return len(self.buyers)

    @property
    def profit(self) -> Decimal:
        return self.total_revenue - self.total_cost

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "total_quantity": self.total_quantity,
            "buyer_count": self.buyer_count,
            "total_revenue": self.total_revenue,
            "total_cost": self.total_cost,
            "profit": self.profit,
            "order_ids": list(self.order_ids),
        }


def procurement_cost(item: LineItem) -> Decimal:
    if item.purchased_quantity > 0:
        return item_cost(item)
    first = item.first_batch
    if item.desired_quantity > 0 and first is not None:
        # not yet procured: price the demand at the first batch's unit economics
        return first.unit_cost * item.desired_quantity
    return ZERO


def shipping_cost(item: LineItem, catalog_entry: ProductCatalogEntry | None = None) -> Decimal:
    per_unit = item.estimated_unit_shipping_cost
    if per_unit is None:
        per_unit = catalog_entry.estimated_unit_shipping_cost if catalog_entry is not None else ZERO
    return per_unit * item.desired_quantity


def landed_cost(
    item: LineItem,
    catalog_entry: ProductCatalogEntry | None = None,
    include_shipping: bool = True,
) -> Decimal:
    cost = procurement_cost(item)
    if include_shipping:
        cost += shipping_cost(item, catalog_entry)
    return cost


def rollup_as_mapping(
    catalog: Iterable[ProductCatalogEntry],
    orders: Iterable[Order],
    include_shipping: bool = True,
) -> dict[str, ProductStats]:
    entries: dict[str, ProductCatalogEntry] = {}
    stats: dict[str, ProductStats] = {}
    for entry in catalog:
        entries.setdefault(entry.name, entry)
        stats.setdefault(entry.name, ProductStats(name=entry.name))

    for order in orders:
        if not order.is_active:
            continue
        for item in order.items:
            name = item.display_name
            row = stats.get(name)
            if row is None:
                row = stats[name] = ProductStats(name=name)
            row.total_quantity += item.desired_quantity
            row.buyers.add(order.customer)
            row.total_revenue += item.revenue
            row.total_cost += landed_cost(item, entries.get(name), include_shipping)
            order_ref = order.id or f"unsaved-{id(order)}"
            if order_ref not in row.order_ids:
                row.order_ids.append(order_ref)
    return stats


def rollup(
    catalog: Iterable[ProductCatalogEntry],
    orders: Iterable[Order],
    include_shipping: bool = True,
) -> list[ProductStats]:
    stats = rollup_as_mapping(catalog, orders, include_shipping)
    return sorted(stats.values(), key=lambda row: row.total_quantity, reverse=True)


def filter_stats(rows: Iterable[ProductStats], query: str | None) -> list[ProductStats]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(rows)
    return [row for row in rows if needle in row.name.lower()]
