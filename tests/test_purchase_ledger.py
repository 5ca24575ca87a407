from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from resale_ledger.core.errors import InvalidInputError, MissingRateError
from resale_ledger.domain.money import PaymentMethod
from resale_ledger.domain.orders.aggregates import LineItem, PurchaseBatch
from resale_ledger.domain.orders.ledger import (
    append_unit,
    item_cost,
    next_unit_candidate,
    remove_unit,
    rerate_first_batch,
    suggest_price_for_margin,
)
from resale_ledger.domain.rates.table import ExchangeRateTable, MissingRatePolicy

DAY = date(2024, 5, 1)


def _batch(qty: int, price: str, rate: str | None, day: date = DAY, method=PaymentMethod.VISA) -> PurchaseBatch:
    return PurchaseBatch(
        quantity=qty,
        foreign_unit_price=price,
        currency="KRW",
        exchange_rate=rate,
        payment_method=method,
        purchase_date=day,
    )


def test_cost_sums_batches_in_home_currency():
    item = LineItem(product_name="Widget", desired_quantity=3, purchases=[_batch(2, "1000", "30"), _batch(1, "1000", "31")])
    cost = item_cost(item)
    assert cost.quantize(Decimal("0.01")) == Decimal("98.92")
    assert abs(cost - Decimal("98.93")) < Decimal("0.01")
    assert item.cost == cost


def test_zero_or_missing_rate_is_treated_as_one():
    item = LineItem(product_name="Widget", purchases=[_batch(1, "500", "40"), _batch(2, "100", "40")])
    item.purchases[0].exchange_rate = Decimal("0")
    item.purchases[1].exchange_rate = None
    assert item_cost(item) == Decimal("700")


@pytest.mark.parametrize("rate", ["0", None])
def test_batch_holding_units_needs_a_rate(rate):
    with pytest.raises(InvalidInputError):
        _batch(1, "12000", rate)
    assert _batch(0, "12000", rate).quantity == 0


def test_empty_ledger_costs_nothing():
    assert item_cost(LineItem(product_name="Widget")) == Decimal("0")


def test_append_merges_into_matching_batch():
    item = LineItem(product_name="Widget", purchases=[_batch(2, "1000", "30"), _batch(1, "1000", "31")])
    append_unit(item, _batch(1, "1000", "30"))
    assert [b.quantity for b in item.purchases] == [3, 1]


def test_append_with_last_scope_only_merges_tail():
    item = LineItem(product_name="Widget", purchases=[_batch(2, "1000", "30"), _batch(1, "1000", "31")])
    append_unit(item, _batch(1, "1000", "30"), merge_scope="last")
    assert [b.quantity for b in item.purchases] == [2, 1, 1]


def test_append_opens_new_batch_on_any_difference():
    item = LineItem(product_name="Widget", purchases=[_batch(1, "1000", "30")])
    append_unit(item, _batch(5, "1000", "30", day=date(2024, 5, 2)))
    assert [b.quantity for b in item.purchases] == [1, 1]
    assert item.purchases[1].purchase_date == date(2024, 5, 2)


def test_append_then_remove_restores_ledger():
    item = LineItem(product_name="Widget", purchases=[_batch(2, "1000", "30")])
    before = [(b.quantity, b.merge_key) for b in item.purchases]
    append_unit(item, _batch(1, "900", "30"))
    remove_unit(item)
    assert [(b.quantity, b.merge_key) for b in item.purchases] == before


@pytest.mark.parametrize("scope", ["any", "last"])
def test_repeated_identical_appends_make_one_batch(scope):
    item = LineItem(product_name="Widget")
    for _ in range(5):
        append_unit(item, _batch(1, "1000", "30"), merge_scope=scope)
    assert [b.quantity for b in item.purchases] == [5]


@pytest.mark.parametrize("scope", ["any", "last"])
def test_template_is_never_a_merge_target(scope):
    item = LineItem(product_name="Widget", desired_quantity=2, purchases=[_batch(0, "12000", "40")])
    append_unit(item, _batch(1, "12000", "40"), merge_scope=scope)
    assert [b.quantity for b in item.purchases] == [0, 1]

    remove_unit(item)
    assert [b.quantity for b in item.purchases] == [0]
    assert item.first_batch.foreign_unit_price == Decimal("12000")
    assert next_unit_candidate(item, ExchangeRateTable(), DAY, "KRW").foreign_unit_price == Decimal("12000")


def test_remove_skips_empty_tail_batches():
    item = LineItem(product_name="Widget", purchases=[_batch(2, "1000", "30"), _batch(0, "1000", "31")])
    remove_unit(item)
    assert item.purchased_quantity == 1
    remove_unit(item)
    assert item.purchased_quantity == 0
    assert remove_unit(item) is None
    assert item.purchases == []


def test_remove_is_lifo():
    item = LineItem(product_name="Widget", purchases=[_batch(2, "1000", "30"), _batch(2, "1000", "31")])
    remove_unit(item)
    assert [b.quantity for b in item.purchases] == [2, 1]
    remove_unit(item)
    assert [b.quantity for b in item.purchases] == [2]
    assert item.purchases[0].exchange_rate == Decimal("30")


def test_remove_on_empty_or_template_is_noop():
    empty = LineItem(product_name="Widget")
    assert remove_unit(empty) is None
    assert empty.purchases == []

    template = LineItem(product_name="Widget", purchases=[_batch(0, "1000", "30")])
    assert remove_unit(template) is None
    assert [b.quantity for b in template.purchases] == [0]


def test_next_unit_candidate_uses_first_batch_and_rate_lookup(krw_rates: ExchangeRateTable):
    item = LineItem(product_name="Widget", payment_method=PaymentMethod.CASH, purchases=[_batch(0, "12000", "42")])
    candidate = next_unit_candidate(item, krw_rates, date(2024, 5, 1), "KRW")
    assert candidate.quantity == 1
    assert candidate.foreign_unit_price == Decimal("12000")
    assert candidate.exchange_rate == Decimal("41")
    assert candidate.payment_method is PaymentMethod.CASH


def test_next_unit_candidate_falls_back_to_existing_rate():
    item = LineItem(product_name="Widget", purchases=[_batch(1, "1000", "33")])
    candidate = next_unit_candidate(item, ExchangeRateTable(), DAY, "KRW", MissingRatePolicy.REJECT)
    assert candidate.exchange_rate == Decimal("33")


def test_next_unit_candidate_rejects_when_policy_says_so():
    item = LineItem(product_name="Widget")
    with pytest.raises(MissingRateError):
        next_unit_candidate(item, ExchangeRateTable(), DAY, "KRW", MissingRatePolicy.REJECT)


def test_margin_price_rounds_up_from_first_batch():
    item = LineItem(product_name="Widget", purchases=[_batch(1, "1200", "30"), _batch(1, "5000", "1")])
    price = suggest_price_for_margin(item, 20)
    # 1200 / 30 * 1.2 = 48
    assert price == Decimal("48")
    assert item.unit_selling_price == Decimal("48")

    item.purchases[0].foreign_unit_price = Decimal("1230")
    assert suggest_price_for_margin(item, 20) == Decimal("50")


def test_negative_margin_prices_below_cost():
    item = LineItem(product_name="Widget", purchases=[_batch(1, "1200", "30")])
    # 1200 / 30 * 0.75 = 30
    assert suggest_price_for_margin(item, -25) == Decimal("30")
    with pytest.raises(InvalidInputError):
        suggest_price_for_margin(item, -100)


def test_margin_without_batches_keeps_price():
    item = LineItem(product_name="Widget", unit_selling_price="250")
    assert suggest_price_for_margin(item, 50) == Decimal("250")


def test_rerate_first_batch_switches_currency(krw_rates: ExchangeRateTable):
    item = LineItem(product_name="Widget", purchases=[_batch(1, "1000", "30")])
    rerate_first_batch(item, "jpy", krw_rates)
    assert item.purchases[0].currency == "JPY"
    assert item.purchases[0].exchange_rate == Decimal("4.7")

    rerate_first_batch(item, "USD", krw_rates)
    assert item.purchases[0].currency == "USD"
    assert item.purchases[0].exchange_rate == Decimal("4.7")


def test_negative_batch_values_are_rejected():
    with pytest.raises(InvalidInputError):
        _batch(-1, "1000", "30")
    with pytest.raises(InvalidInputError):
        _batch(1, "-5", "30")
