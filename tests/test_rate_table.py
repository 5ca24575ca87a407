from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from resale_ledger.core.errors import InvalidInputError, MissingRateError
from resale_ledger.domain.money import PaymentMethod
from resale_ledger.domain.rates.table import ExchangeRate, ExchangeRateTable, MissingRatePolicy, resolve_rate


def test_exact_date_match_wins(krw_rates: ExchangeRateTable):
    quote = krw_rates.rate_for("KRW", PaymentMethod.CASH, date(2024, 5, 1))
    assert quote.source == "exact"
    assert quote.rate == Decimal("41")
    assert quote.record_date == date(2024, 5, 1)


def test_falls_back_to_latest_by_date(krw_rates: ExchangeRateTable):
    quote = krw_rates.rate_for("krw", PaymentMethod.VISA, date(2024, 6, 1))
    assert quote.source == "latest"
    assert quote.rate == Decimal("40.5")
    assert quote.record_date == date(2024, 5, 3)

    undated = krw_rates.rate_for("KRW", PaymentMethod.VISA)
    assert undated.as_of is None
    assert undated.rate == Decimal("40.5")


def test_zero_rate_for_method_counts_as_missing_on_that_record(krw_rates: ExchangeRateTable):
    quote = krw_rates.rate_for("KRW", PaymentMethod.JCB, date(2024, 5, 1))
    # the exact record has no JCB rate, so the latest record answers
    assert quote.source == "latest"
    assert quote.rate == Decimal("40.2")


def test_unknown_currency_is_missing(krw_rates: ExchangeRateTable):
    quote = krw_rates.rate_for("USD", PaymentMethod.CASH, date(2024, 5, 1))
    assert quote.is_missing
    assert quote.source == "missing"


def test_duplicate_key_keeps_latest_write():
    table = ExchangeRateTable(
        [
            ExchangeRate(currency="KRW", date="2024-05-01", visa_rate="42", created_at=10),
            ExchangeRate(currency="KRW", date="2024-05-01", visa_rate="43", created_at=5, updated_at=20),
            ExchangeRate(currency="KRW", date="2024-05-01", visa_rate="44", created_at=15),
        ]
    )
    assert len(table.records) == 1
    assert table.exact("KRW", "2024-05-01").visa_rate == Decimal("43")


def test_same_write_time_prefers_later_input():
    table = ExchangeRateTable(
        [
            ExchangeRate(currency="KRW", date="2024-05-01", visa_rate="42", created_at=10),
            ExchangeRate(currency="KRW", date="2024-05-01", visa_rate="45", created_at=10),
        ]
    )
    assert table.rate_for("KRW", "Visa", "2024-05-01").rate == Decimal("45")


def test_history_and_currencies(krw_rates: ExchangeRateTable):
    assert krw_rates.currencies() == ["JPY", "KRW"]
    assert [r.date for r in krw_rates.history("KRW")] == [date(2024, 5, 3), date(2024, 5, 1)]


def test_resolve_rate_policies():
    table = ExchangeRateTable()
    quote = table.rate_for("KRW", PaymentMethod.CASH, "2024-05-01")

    assert resolve_rate(quote, MissingRatePolicy.FALLBACK_ONE) == Decimal("1")
    assert resolve_rate(quote, MissingRatePolicy.REJECT, fallback=Decimal("39")) == Decimal("39")
    with pytest.raises(MissingRateError) as excinfo:
        resolve_rate(quote, "reject")
    assert excinfo.value.currency == "KRW"
    assert excinfo.value.as_of == "2024-05-01"


def test_negative_rate_is_rejected():
    with pytest.raises(InvalidInputError):
        ExchangeRate(currency="KRW", date="2024-05-01", cash_rate="-1")


def test_document_round_trip_keeps_keys():
    record = ExchangeRate(currency="jpy", date="2024-05-02", cash_rate="4.6", visa_rate="4.7", jcb_rate="4.75")
    doc = record.to_document()
    assert set(doc) >= {"currency", "date", "cash", "visa", "jcb"}
    restored = ExchangeRate.from_document({"id": "r1", **doc})
    assert restored.currency == "JPY"
    assert restored.key == ("JPY", date(2024, 5, 2))
    assert restored.id == "r1"
