from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from resale_ledger.api.routes_orders import router as orders_router
from resale_ledger.api.routes_products import router as products_router
from resale_ledger.api.routes_rates import router as rates_router
from resale_ledger.api.routes_reports import router as reports_router
from resale_ledger.core.config import get_settings
from resale_ledger.core.errors import (
    DocumentNotFoundError,
    InvalidInputError,
    MissingRateError,
    OrderValidationError,
    PersistenceError,
)
from resale_ledger.core.logging import configure_logging
from resale_ledger.persistence.pg import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    logger.info("resale ledger ready: env=%s home_currency=%s", settings.env, settings.home_currency)


@app.exception_handler(OrderValidationError)
async def order_validation_handler(_: Request, exc: OrderValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": exc.code})


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(_: Request, exc: InvalidInputError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "invalid_input"})


@app.exception_handler(MissingRateError)
async def missing_rate_handler(_: Request, exc: MissingRateError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "error": "missing_rate",
            "currency": exc.currency,
            "payment_method": exc.payment_method,
        },
    )


@app.exception_handler(DocumentNotFoundError)
async def not_found_handler(_: Request, exc: DocumentNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc), "error": "not_found"})


@app.exception_handler(PersistenceError)
async def persistence_handler(_: Request, exc: PersistenceError):
    logger.error("persistence failure: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc), "error": "persistence_unavailable"})


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(orders_router)
app.include_router(rates_router)
app.include_router(products_router)
app.include_router(reports_router)
