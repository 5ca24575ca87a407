from __future__ import annotations

import threading
from typing import Callable

from resale_ledger.core.config import Settings, get_settings
from resale_ledger.domain.orders.aggregates import Order
from resale_ledger.domain.orders.projections import DashboardSummary, dashboard_summary
from resale_ledger.domain.products.catalog import ProductCatalogEntry
from resale_ledger.domain.products.rollup import ProductStats, rollup
from resale_ledger.domain.rates.table import ExchangeRateTable
from resale_ledger.persistence.models import EXCHANGE_RATES, ORDERS, PRODUCTS
from resale_ledger.persistence.store import DocumentStore, Snapshot


class LiveOrderBook:
    """Latest pushed snapshots of orders, products and rates.

    Derived views are recomputed from the current snapshots on every read.
    """

    def __init__(self, store: DocumentStore, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._lock = threading.Lock()
        self._orders: list[Order] = []
        self._catalog: list[ProductCatalogEntry] = []
        self._rates = ExchangeRateTable()
        self._unsubscribers: list[Callable[[], None]] = [
            store.subscribe_collection(ORDERS, self._on_orders, order_by="createdAt", descending=True),
            store.subscribe_collection(PRODUCTS, self._on_products, order_by="name", descending=False),
            store.subscribe_collection(
                EXCHANGE_RATES,
                self._on_rates,
                order_by="date",
                descending=True,
                limit=self.settings.rates_snapshot_limit,
            ),
        ]

    def _on_orders(self, snapshot: Snapshot) -> None:
        orders = [Order.from_document(doc, self.settings.default_currency) for doc in snapshot]
        with self._lock:
            self._orders = orders

    def _on_products(self, snapshot: Snapshot) -> None:
        catalog = [ProductCatalogEntry.from_document(doc) for doc in snapshot]
        with self._lock:
            self._catalog = catalog

    def _on_rates(self, snapshot: Snapshot) -> None:
        table = ExchangeRateTable.from_documents(snapshot)
        with self._lock:
            self._rates = table

    @property
    def orders(self) -> list[Order]:
        with self._lock:
            return list(self._orders)

    @property
    def catalog(self) -> list[ProductCatalogEntry]:
        with self._lock:
            return list(self._catalog)

    @property
    def rates(self) -> ExchangeRateTable:
        with self._lock:
            return self._rates

    def product_stats(self, include_shipping: bool | None = None) -> list[ProductStats]:
        if include_shipping is None:
            include_shipping = self.settings.include_shipping_in_landed_cost
        return rollup(self.catalog, self.orders, include_shipping=include_shipping)

    def dashboard(self) -> DashboardSummary:
        return dashboard_summary(self.orders)

    def close(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

    def __enter__(self) -> "LiveOrderBook":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
