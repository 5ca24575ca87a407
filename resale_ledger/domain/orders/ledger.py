"""Purchase-batch ledger for a single line item.

Every function here mutates or reads ``LineItem.purchases`` only; the item's
home-currency cost is always re-derived from that list.
"""
from __future__ import annotations

import math
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Literal

from resale_ledger.core.errors import InvalidInputError
from resale_ledger.domain.money import ZERO, safe_rate, to_decimal
from resale_ledger.domain.orders.aggregates import LineItem, PurchaseBatch
from resale_ledger.domain.rates.table import ExchangeRateTable, MissingRatePolicy, resolve_rate

MergeScope = Literal["any", "last"]


def item_cost(item: LineItem) -> Decimal:
    return sum(
        (batch.quantity * (batch.foreign_unit_price / safe_rate(batch.exchange_rate)) for batch in item.purchases),
        ZERO,
    )


def _merge_target(item: LineItem, candidate: PurchaseBatch, scope: MergeScope) -> PurchaseBatch | None:
    # zero-quantity batches are pricing templates, never merge targets
    held = [batch for batch in item.purchases if batch.quantity > 0]
    if not held:
        return None
    if scope == "last":
        last = item.purchases[-1]
        return last if last.quantity > 0 and last.merge_key == candidate.merge_key else None
    for batch in held:
        if batch.merge_key == candidate.merge_key:
            return batch
    return None


def append_unit(item: LineItem, candidate: PurchaseBatch, merge_scope: MergeScope = "any") -> PurchaseBatch:
    target = _merge_target(item, candidate, merge_scope)
    if target is not None:
        target.quantity += 1
        return target
    batch = replace(candidate, quantity=1)
    item.purchases.append(batch)
    return batch


def remove_unit(item: LineItem) -> PurchaseBatch | None:
    # empty tail batches hold nothing; the first batch stays as the pricing template
    while len(item.purchases) > 1 and item.purchases[-1].quantity == 0:
        item.purchases.pop()
    if not item.purchases:
        return None
    last = item.purchases[-1]
    if last.quantity > 1:
        last.quantity -= 1
        return last
    if last.quantity == 1:
        item.purchases.pop()
        return last
    return None


def next_unit_candidate(
    item: LineItem,
    rates: ExchangeRateTable,
    on: date,
    default_currency: str,
    policy: MissingRatePolicy | str = MissingRatePolicy.FALLBACK_ONE,
) -> PurchaseBatch:
    first = item.first_batch
    currency = first.currency if first is not None else default_currency
    foreign_price = first.foreign_unit_price if first is not None else ZERO
    existing_rate = first.exchange_rate if first is not None else None

    quote = rates.rate_for(currency, item.payment_method, on)
    rate = resolve_rate(quote, policy, fallback=existing_rate)

    return PurchaseBatch(
        quantity=1,
        foreign_unit_price=foreign_price,
        currency=currency,
        exchange_rate=rate,
        payment_method=item.payment_method,
        purchase_date=on,
    )


def suggest_price_for_margin(item: LineItem, margin_pct: Decimal | int | str) -> Decimal:
    margin = to_decimal(margin_pct, "margin_pct")
    if margin <= -100:
        raise InvalidInputError(f"margin_pct must be > -100, got {margin}")
    first = item.first_batch
    if first is None:
        return item.unit_selling_price
    unit_cost = first.foreign_unit_price / safe_rate(first.exchange_rate)
    price = Decimal(math.ceil(unit_cost * (1 + margin / 100)))
    item.unit_selling_price = price
    return price


def rerate_first_batch(
    item: LineItem,
    currency: str,
    rates: ExchangeRateTable,
    policy: MissingRatePolicy | str = MissingRatePolicy.FALLBACK_ONE,
) -> PurchaseBatch | None:
    first = item.first_batch
    if first is None:
        return None
    first.currency = str(currency).upper()
    quote = rates.rate_for(first.currency, item.payment_method)
    if not quote.is_missing:
        first.exchange_rate = quote.rate
    elif MissingRatePolicy(policy) is MissingRatePolicy.REJECT:
        resolve_rate(quote, policy)
    return first
