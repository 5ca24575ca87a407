from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from resale_ledger.domain.orders.aggregates import LineItem, Order


def derive_is_processed(items: Iterable[LineItem]) -> bool:
    items = list(items)
    if not items:
        return False
    return all(item.desired_quantity > 0 and item.purchased_quantity >= item.desired_quantity for item in items)


@dataclass(frozen=True)
class StatusTransition:
    before: bool
    after: bool

    @property
    def became_processed(self) -> bool:
        return not self.before and self.after

    @property
    def became_unprocessed(self) -> bool:
        return self.before and not self.after


def recompute_status(order: Order, previous: Order | None = None) -> StatusTransition:
    """Overwrite ``order.status.is_processed`` from procurement completeness.

    ``before`` is read from ``previous`` when given (the last persisted
    snapshot), otherwise from the order's current flag, which a user may
    have force-toggled.
    """
    before = previous.status.is_processed if previous is not None else order.status.is_processed
    after = derive_is_processed(order.items)
    order.status.is_processed = after
    return StatusTransition(before=before, after=after)
