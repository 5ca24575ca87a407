from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from resale_ledger.api.schemas import BookkeepingQuoteRequest
from resale_ledger.api.utils import encode, get_store
from resale_ledger.core.config import get_settings
from resale_ledger.domain.products.bookkeeping import BookkeepingEntry
from resale_ledger.persistence.store import SqlDocumentStore
from resale_ledger.services.reports import ReportService

router = APIRouter(tags=["reports"])


@router.get("/reports/products")
def get_product_rollup(
    q: str | None = Query(default=None, description="product name search"),
    include_shipping: bool | None = Query(default=None),
    store: SqlDocumentStore = Depends(get_store),
):
    rows = ReportService(store).product_rollup(include_shipping=include_shipping, query=q)
    return {"count": len(rows), "products": [encode(row.as_dict()) for row in rows]}


@router.get("/reports/products.csv", response_class=PlainTextResponse)
def get_product_rollup_csv(
    include_shipping: bool | None = Query(default=None),
    store: SqlDocumentStore = Depends(get_store),
):
    return PlainTextResponse(ReportService(store).products_csv(include_shipping), media_type="text/csv")


@router.get("/reports/products/{name}/orders")
def get_product_drilldown(
    name: str,
    include_shipping: bool | None = Query(default=None),
    store: SqlDocumentStore = Depends(get_store),
):
    rows = ReportService(store).drilldown(name, include_shipping=include_shipping)
    return {"name": name, "count": len(rows), "orders": [encode(row.as_dict()) for row in rows]}


@router.get("/reports/dashboard")
def get_dashboard(store: SqlDocumentStore = Depends(get_store)):
    return encode(ReportService(store).dashboard().as_dict())


@router.post("/bookkeeping/quote")
def bookkeeping_quote(body: BookkeepingQuoteRequest):
    entry = BookkeepingEntry(
        item_name=body.item_name,
        currency=body.currency,
        foreign_price=body.foreign_price,
        rate=body.rate,
        selling_price=body.selling_price,
    )
    return encode(entry.as_dict())


@router.get("/operators")
def list_operators():
    settings = get_settings()
    return {"operators": list(settings.operators), "default_operator": settings.default_operator}
