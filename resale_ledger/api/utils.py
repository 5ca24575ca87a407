from __future__ import annotations

from typing import Any

from resale_ledger.domain.orders.aggregates import Order
from resale_ledger.domain.products.catalog import ProductCatalogEntry
from resale_ledger.domain.rates.table import ExchangeRate
from resale_ledger.persistence.codec import to_document_obj
from resale_ledger.persistence.store import SqlDocumentStore, get_document_store


def get_store() -> SqlDocumentStore:
    return get_document_store()


def order_view(order: Order) -> dict[str, Any]:
    view = {"id": order.id, **order.to_document()}
    for doc, item in zip(view["items"], order.items):
        doc["purchasedQty"] = item.purchased_quantity
    view["amountDue"] = order.amount_due
    return to_document_obj(view)


def rate_view(record: ExchangeRate) -> dict[str, Any]:
    return to_document_obj({"id": record.id, **record.to_document()})


def product_view(entry: ProductCatalogEntry) -> dict[str, Any]:
    return to_document_obj({"id": entry.id, **entry.to_document()})


def encode(value: Any) -> Any:
    return to_document_obj(value)
