from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query

from resale_ledger.api.schemas import RateUpsertRequest
from resale_ledger.api.utils import encode, get_store, rate_view
from resale_ledger.domain.money import PaymentMethod
from resale_ledger.persistence.store import SqlDocumentStore
from resale_ledger.services.rates import RateService

router = APIRouter(tags=["rates"])


@router.get("/rates")
def list_rates(store: SqlDocumentStore = Depends(get_store)):
    records = RateService(store).table().records
    return {"count": len(records), "rates": [rate_view(r) for r in records]}


@router.put("/rates")
def upsert_rate(body: RateUpsertRequest, store: SqlDocumentStore = Depends(get_store)):
    record = RateService(store).save_rate(
        currency=body.currency,
        day=body.date,
        cash_rate=body.cash,
        visa_rate=body.visa,
        jcb_rate=body.jcb,
        rate_id=body.id,
    )
    return {"rate": rate_view(record)}


@router.delete("/rates/{rate_id}")
def delete_rate(rate_id: str, store: SqlDocumentStore = Depends(get_store)):
    RateService(store).delete_rate(rate_id)
    return {"deleted": rate_id}


@router.get("/rates/lookup")
def lookup_rate(
    currency: str = Query(..., min_length=3, max_length=3),
    payment_method: PaymentMethod = Query(default=PaymentMethod.VISA),
    as_of: dt.date | None = Query(default=None),
    store: SqlDocumentStore = Depends(get_store),
):
    quote = RateService(store).lookup(currency, payment_method, as_of)
    return {
        "currency": quote.currency,
        "payment_method": quote.payment_method,
        "as_of": encode(quote.as_of),
        "rate": encode(quote.rate),
        "source": quote.source,
        "record_date": encode(quote.record_date),
    }
