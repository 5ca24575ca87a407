from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from resale_ledger.core.errors import DocumentNotFoundError, InvalidInputError
from resale_ledger.domain.money import now_ms
from resale_ledger.domain.orders.aggregates import Order
from resale_ledger.domain.products.catalog import ProductCatalogEntry, find_product
from resale_ledger.persistence.models import ORDERS, PRODUCTS
from resale_ledger.persistence.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ProductDeletion:
    name: str
    product_deleted: bool
    orders_deleted: int


class ProductService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def list_products(self) -> list[ProductCatalogEntry]:
        docs = self.store.list_documents(PRODUCTS, order_by="name", descending=False)
        return [ProductCatalogEntry.from_document(doc) for doc in docs]

    def get_product(self, product_id: str) -> ProductCatalogEntry:
        doc = self.store.get_document(PRODUCTS, product_id)
        if doc is None:
            raise DocumentNotFoundError(PRODUCTS, product_id)
        return ProductCatalogEntry.from_document(doc)

    def save_product(
        self,
        name: str,
        suggested_unit_price: Decimal | str | int = 0,
        estimated_unit_shipping_cost: Decimal | str | int = 0,
        product_id: str | None = None,
    ) -> ProductCatalogEntry:
        entry = ProductCatalogEntry(
            name=name,
            suggested_unit_price=suggested_unit_price,
            estimated_unit_shipping_cost=estimated_unit_shipping_cost,
        )
        if not entry.name:
            raise InvalidInputError("product name is required")

        entry.updated_at = now_ms()
        if product_id is None:
            existing = find_product(self.list_products(), entry.name)
            product_id = existing.id if existing is not None else None

        payload = entry.to_document()
        if product_id is None:
            entry.created_at = entry.updated_at
            payload["createdAt"] = entry.created_at
            entry.id = self.store.add_document(PRODUCTS, payload)
            return entry

        payload.pop("createdAt")
        self.store.update_document(PRODUCTS, product_id, payload)
        return self.get_product(product_id)

    def delete_product(self, name: str, cascade_orders: bool = True) -> ProductDeletion:
        entry = find_product(self.list_products(), name)
        if entry is not None and entry.id:
            self.store.delete_document(PRODUCTS, entry.id)

        deleted_orders = 0
        if cascade_orders:
            referencing = [
                doc["id"]
                for doc in self.store.list_documents(ORDERS)
                if any(item.display_name == name for item in Order.from_document(doc).items)
            ]
            deleted_orders = self.store.delete_documents(ORDERS, referencing)

        logger.info("product deleted: name=%s orders_deleted=%s", name, deleted_orders)
        return ProductDeletion(name=name, product_deleted=entry is not None, orders_deleted=deleted_orders)
