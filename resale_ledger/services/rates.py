from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from resale_ledger.core.config import Settings, get_settings
from resale_ledger.domain.money import PaymentMethod, now_ms, parse_day
from resale_ledger.domain.rates.table import ExchangeRate, ExchangeRateTable, RateQuote
from resale_ledger.persistence.models import EXCHANGE_RATES
from resale_ledger.persistence.store import DocumentStore

logger = logging.getLogger(__name__)


class RateService:
    def __init__(self, store: DocumentStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    def list_rates(self) -> list[ExchangeRate]:
        docs = self.store.list_documents(
            EXCHANGE_RATES,
            order_by="date",
            descending=True,
            limit=self.settings.rates_snapshot_limit,
        )
        return [ExchangeRate.from_document(doc) for doc in docs]

    def table(self) -> ExchangeRateTable:
        return ExchangeRateTable(self.list_rates())

    def lookup(self, currency: str, payment_method: PaymentMethod | str, as_of: date | str | None = None) -> RateQuote:
        return self.table().rate_for(currency, payment_method, as_of)

    def _find_by_key(self, currency: str, day: date) -> ExchangeRate | None:
        for doc in self.store.list_documents(EXCHANGE_RATES, order_by="date"):
            record = ExchangeRate.from_document(doc)
            if record.key == (currency, day):
                return record
        return None

    def save_rate(
        self,
        currency: str,
        day: date | str,
        cash_rate: Decimal | str | int = 0,
        visa_rate: Decimal | str | int = 0,
        jcb_rate: Decimal | str | int = 0,
        rate_id: str | None = None,
    ) -> ExchangeRate:
        stamp = now_ms()
        record = ExchangeRate(
            currency=currency,
            date=parse_day(day),
            cash_rate=cash_rate,
            visa_rate=visa_rate,
            jcb_rate=jcb_rate,
            created_at=stamp,
            updated_at=stamp,
        )
        target_id = rate_id
        existing = self._find_by_key(record.currency, record.date)
        if target_id is None and existing is not None:
            target_id = existing.id

        payload = record.to_document()
        if target_id is None:
            record.id = self.store.add_document(EXCHANGE_RATES, payload)
            logger.info("exchange rate added: %s %s", record.currency, record.date)
            return record

        payload.pop("createdAt")
        self.store.set_document(EXCHANGE_RATES, target_id, payload, merge=True)
        if existing is not None and existing.id != target_id:
            # an edit moved this record onto another record's (currency, date)
            self.store.delete_document(EXCHANGE_RATES, existing.id)
        merged = self.store.get_document(EXCHANGE_RATES, target_id)
        logger.info("exchange rate updated: %s %s", record.currency, record.date)
        return ExchangeRate.from_document(merged) if merged else record

    def delete_rate(self, rate_id: str) -> None:
        self.store.delete_document(EXCHANGE_RATES, rate_id)
