from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from resale_ledger.domain.money import ZERO
from resale_ledger.domain.orders.aggregates import Order
from resale_ledger.domain.products.catalog import ProductCatalogEntry
from resale_ledger.domain.products.rollup import procurement_cost, shipping_cost


def split_orders(orders: Iterable[Order]) -> tuple[list[Order], list[Order]]:
    active: list[Order] = []
    archived: list[Order] = []
    for order in orders:
        (active if order.is_active else archived).append(order)
    return active, archived


@dataclass
class DashboardSummary:
    total_sales: Decimal
    processed_count: int
    unpaid_count: int
    unshipped_count: int
    pending_amount: Decimal
    active_count: int
    archived_count: int

    def as_dict(self) -> dict:
        return {
            "total_sales": self.total_sales,
            "processed_count": self.processed_count,
            "unpaid_count": self.unpaid_count,
            "unshipped_count": self.unshipped_count,
            "pending_amount": self.pending_amount,
            "active_count": self.active_count,
            "archived_count": self.archived_count,
        }


def dashboard_summary(orders: Iterable[Order]) -> DashboardSummary:
    active, archived = split_orders(orders)
    unpaid = [o for o in active if not o.status.is_paid]
    return DashboardSummary(
        total_sales=sum((o.amount_due for o in active), ZERO),
        processed_count=sum(1 for o in active if o.status.is_processed),
        unpaid_count=len(unpaid),
        unshipped_count=sum(1 for o in active if o.status.is_processed and not o.status.is_shipped),
        pending_amount=sum((o.amount_due for o in unpaid), ZERO),
        active_count=len(active),
        archived_count=len(archived),
    )


def search_orders(orders: Iterable[Order], query: str | None) -> list[Order]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(orders)
    matched = []
    for order in orders:
        if needle in order.customer.lower() or any(needle in item.display_name.lower() for item in order.items):
            matched.append(order)
    return matched


@dataclass
class DrilldownRow:
    order_id: str | None
    customer: str
    quantity: int
    purchases: list[dict]
    procurement_cost: Decimal
    shipping_cost: Decimal

    @property
    def combined_cost(self) -> Decimal:
        return self.procurement_cost + self.shipping_cost

    def as_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "customer": self.customer,
            "quantity": self.quantity,
            "purchases": self.purchases,
            "procurement_cost": self.procurement_cost,
            "shipping_cost": self.shipping_cost,
            "combined_cost": self.combined_cost,
        }


def product_drilldown(
    name: str,
    orders: Iterable[Order],
    catalog_entry: ProductCatalogEntry | None = None,
    include_shipping: bool = True,
) -> list[DrilldownRow]:
    rows: list[DrilldownRow] = []
    for order in orders:
        if not order.is_active:
            continue
        item = next((i for i in order.items if i.display_name == name), None)
        if item is None:
            continue
        rows.append(
            DrilldownRow(
                order_id=order.id,
                customer=order.customer,
                quantity=item.desired_quantity,
                purchases=[batch.to_document() for batch in item.purchases],
                procurement_cost=procurement_cost(item),
                shipping_cost=shipping_cost(item, catalog_entry) if include_shipping else ZERO,
            )
        )
    return rows
