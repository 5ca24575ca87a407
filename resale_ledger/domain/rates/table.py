from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Literal, Mapping

from resale_ledger.core.errors import MissingRateError
from resale_ledger.domain.money import ONE, PaymentMethod, non_negative_decimal, parse_day

logger = logging.getLogger(__name__)

RateSource = Literal["exact", "latest", "missing"]


class MissingRatePolicy(str, Enum):
    FALLBACK_ONE = "fallback_one"
    REJECT = "reject"


@dataclass
class ExchangeRate:
    currency: str
    date: date
    cash_rate: Decimal = Decimal("0")
    visa_rate: Decimal = Decimal("0")
    jcb_rate: Decimal = Decimal("0")
    created_at: int = 0
    updated_at: int | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        self.currency = str(self.currency).upper()
        self.date = parse_day(self.date)
        self.cash_rate = non_negative_decimal(self.cash_rate, "cash_rate")
        self.visa_rate = non_negative_decimal(self.visa_rate, "visa_rate")
        self.jcb_rate = non_negative_decimal(self.jcb_rate, "jcb_rate")

    @property
    def key(self) -> tuple[str, date]:
        return (self.currency, self.date)

    @property
    def last_write(self) -> int:
        return self.updated_at if self.updated_at is not None else self.created_at

    def rate_for_method(self, payment_method: PaymentMethod | str) -> Decimal:
        method = PaymentMethod(payment_method)
        if method is PaymentMethod.CASH:
            return self.cash_rate
        if method is PaymentMethod.VISA:
            return self.visa_rate
        return self.jcb_rate

    def to_document(self) -> dict[str, Any]:
        return {
            "currency": self.currency,
            "date": self.date.isoformat(),
            "cash": self.cash_rate,
            "visa": self.visa_rate,
            "jcb": self.jcb_rate,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ExchangeRate":
        return cls(
            id=doc.get("id"),
            currency=doc["currency"],
            date=doc["date"],
            cash_rate=doc.get("cash", 0),
            visa_rate=doc.get("visa", 0),
            jcb_rate=doc.get("jcb", 0),
            created_at=int(doc.get("createdAt") or 0),
            updated_at=doc.get("updatedAt"),
        )


@dataclass(frozen=True)
class RateQuote:
    currency: str
    payment_method: str
    as_of: date | None
    rate: Decimal | None
    source: RateSource
    record_date: date | None = None

    @property
    def is_missing(self) -> bool:
        return self.rate is None


def _recency(indexed: tuple[int, ExchangeRate]) -> tuple[date, int, int]:
    position, record = indexed
    return (record.date, record.last_write, position)


@dataclass
class ExchangeRateTable:
    records: list[ExchangeRate] = field(default_factory=list)

    def __post_init__(self) -> None:
        # one authoritative record per (currency, date): the latest write wins
        winners: dict[tuple[str, date], tuple[int, ExchangeRate]] = {}
        for indexed in enumerate(self.records):
            key = indexed[1].key
            current = winners.get(key)
            if current is None or (indexed[1].last_write, indexed[0]) >= (current[1].last_write, current[0]):
                winners[key] = indexed
        ordered = sorted(winners.values(), key=_recency, reverse=True)
        self.records = [record for _, record in ordered]

    @classmethod
    def from_documents(cls, docs: Iterable[Mapping[str, Any]]) -> "ExchangeRateTable":
        return cls([ExchangeRate.from_document(doc) for doc in docs])

    def currencies(self) -> list[str]:
        return sorted({record.currency for record in self.records})

    def history(self, currency: str) -> list[ExchangeRate]:
        wanted = str(currency).upper()
        return [record for record in self.records if record.currency == wanted]

    def exact(self, currency: str, as_of: date | str) -> ExchangeRate | None:
        key = (str(currency).upper(), parse_day(as_of))
        for record in self.records:
            if record.key == key:
                return record
        return None

    def latest(self, currency: str) -> ExchangeRate | None:
        history = self.history(currency)
        return history[0] if history else None

    def rate_for(
        self,
        currency: str,
        payment_method: PaymentMethod | str,
        as_of: date | str | None = None,
    ) -> RateQuote:
        method = PaymentMethod(payment_method)
        day = parse_day(as_of) if as_of is not None else None
        wanted = str(currency).upper()

        candidates: list[tuple[RateSource, ExchangeRate | None]] = []
        if day is not None:
            candidates.append(("exact", self.exact(wanted, day)))
        candidates.append(("latest", self.latest(wanted)))

        for source, record in candidates:
            if record is None:
                continue
            rate = record.rate_for_method(method)
            if rate > 0:
                return RateQuote(
                    currency=wanted,
                    payment_method=method.value,
                    as_of=day,
                    rate=rate,
                    source=source,
                    record_date=record.date,
                )

        return RateQuote(currency=wanted, payment_method=method.value, as_of=day, rate=None, source="missing")


def resolve_rate(
    quote: RateQuote,
    policy: MissingRatePolicy | str = MissingRatePolicy.FALLBACK_ONE,
    fallback: Decimal | None = None,
) -> Decimal:
    if quote.rate is not None:
        return quote.rate

    if fallback is not None and fallback > 0:
        return fallback

    as_of = quote.as_of.isoformat() if quote.as_of else None
    if MissingRatePolicy(policy) is MissingRatePolicy.REJECT:
        raise MissingRateError(quote.currency, quote.payment_method, as_of)

    logger.warning(
        "no exchange rate for %s/%s as of %s, using 1:1",
        quote.currency,
        quote.payment_method,
        as_of or "latest",
    )
    return ONE
