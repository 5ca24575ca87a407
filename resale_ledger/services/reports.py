from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from resale_ledger.core.config import Settings, get_settings
from resale_ledger.domain.money import CENT
from resale_ledger.domain.orders.aggregates import Order
from resale_ledger.domain.orders.projections import DashboardSummary, DrilldownRow, dashboard_summary, product_drilldown
from resale_ledger.domain.products.catalog import ProductCatalogEntry, find_product
from resale_ledger.domain.products.rollup import ProductStats, filter_stats, rollup
from resale_ledger.persistence.models import ORDERS, PRODUCTS
from resale_ledger.persistence.store import DocumentStore

logger = logging.getLogger(__name__)

ROLLUP_COLUMNS = ["name", "total_quantity", "buyer_count", "total_revenue", "total_cost", "profit"]


def stats_frame(rows: list[ProductStats]) -> pd.DataFrame:
    records = [
        {
            "name": row.name,
            "total_quantity": row.total_quantity,
            "buyer_count": row.buyer_count,
            "total_revenue": format(row.total_revenue.quantize(CENT), "f"),
            "total_cost": format(row.total_cost.quantize(CENT), "f"),
            "profit": format(row.profit.quantize(CENT), "f"),
        }
        for row in rows
    ]
    return pd.DataFrame(records, columns=ROLLUP_COLUMNS)


class ReportService:
    def __init__(self, store: DocumentStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    def _catalog(self) -> list[ProductCatalogEntry]:
        docs = self.store.list_documents(PRODUCTS, order_by="name", descending=False)
        return [ProductCatalogEntry.from_document(doc) for doc in docs]

    def _orders(self) -> list[Order]:
        docs = self.store.list_documents(ORDERS, order_by="createdAt")
        return [Order.from_document(doc, self.settings.default_currency) for doc in docs]

    def _include_shipping(self, include_shipping: bool | None) -> bool:
        if include_shipping is None:
            return self.settings.include_shipping_in_landed_cost
        return include_shipping

    def product_rollup(self, include_shipping: bool | None = None, query: str | None = None) -> list[ProductStats]:
        rows = rollup(self._catalog(), self._orders(), include_shipping=self._include_shipping(include_shipping))
        return filter_stats(rows, query)

    def drilldown(self, name: str, include_shipping: bool | None = None) -> list[DrilldownRow]:
        return product_drilldown(
            name,
            self._orders(),
            catalog_entry=find_product(self._catalog(), name),
            include_shipping=self._include_shipping(include_shipping),
        )

    def dashboard(self) -> DashboardSummary:
        return dashboard_summary(self._orders())

    def products_csv(self, include_shipping: bool | None = None, query: str | None = None) -> str:
        return stats_frame(self.product_rollup(include_shipping, query)).to_csv(index=False)

    def export_products(self, out: Path | None = None, include_shipping: bool | None = None) -> Path:
        target = out or (self.settings.exports_root / "product_rollup.csv")
        target.parent.mkdir(parents=True, exist_ok=True)
        frame = stats_frame(self.product_rollup(include_shipping))
        frame.to_csv(target, index=False)
        logger.info("product rollup exported: rows=%s path=%s", len(frame), target)
        return target
