from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Literal

from resale_ledger.core.config import Settings, get_settings
from resale_ledger.core.errors import DocumentNotFoundError, InvalidInputError, OrderValidationError
from resale_ledger.domain.money import PaymentMethod, now_ms, today
from resale_ledger.domain.orders.aggregates import LineItem, Order, PurchaseBatch
from resale_ledger.domain.orders.ledger import (
    append_unit,
    next_unit_candidate,
    remove_unit,
    rerate_first_batch,
    suggest_price_for_margin,
)
from resale_ledger.domain.orders.projections import search_orders, split_orders
from resale_ledger.domain.orders.status import StatusTransition, recompute_status
from resale_ledger.domain.products.catalog import ProductCatalogEntry, find_product, prefill_item
from resale_ledger.domain.rates.table import ExchangeRateTable, MissingRatePolicy, resolve_rate
from resale_ledger.persistence.models import ORDERS
from resale_ledger.persistence.store import DocumentStore

logger = logging.getLogger(__name__)

StatusField = Literal["is_paid", "is_processed", "is_shipped"]

_STATUS_FIELDS = frozenset({"is_paid", "is_processed", "is_shipped"})


@dataclass
class SaveResult:
    order: Order
    transition: StatusTransition
    created: bool

    @property
    def became_processed(self) -> bool:
        return self.transition.became_processed


class _OrderLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def for_order(self, order_id: str | None) -> threading.RLock:
        key = order_id or "__new__"
        with self._guard:
            return self._locks.setdefault(key, threading.RLock())

    def discard(self, order_id: str) -> None:
        with self._guard:
            self._locks.pop(order_id, None)

    def __contains__(self, order_id: str) -> bool:
        with self._guard:
            return order_id in self._locks


# one in-flight mutation per order across every service instance
_ORDER_LOCKS = _OrderLocks()


class OrderService:
    def __init__(self, store: DocumentStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()
        self._locks = _ORDER_LOCKS

    def _load(self, doc: dict) -> Order:
        return Order.from_document(doc, default_currency=self.settings.default_currency)

    def list_orders(self, include_archived: bool = False) -> list[Order]:
        orders = [self._load(doc) for doc in self.store.list_documents(ORDERS, order_by="createdAt")]
        if include_archived:
            return orders
        return split_orders(orders)[0]

    def archived_orders(self) -> list[Order]:
        orders = [self._load(doc) for doc in self.store.list_documents(ORDERS, order_by="createdAt")]
        return split_orders(orders)[1]

    def search(self, query: str | None) -> list[Order]:
        return search_orders(self.list_orders(), query)

    def get(self, order_id: str) -> Order:
        doc = self.store.get_document(ORDERS, order_id)
        if doc is None:
            raise DocumentNotFoundError(ORDERS, order_id)
        return self._load(doc)

    def new_draft(self, rates: ExchangeRateTable) -> Order:
        currency = self.settings.default_currency
        quote = rates.rate_for(currency, PaymentMethod.VISA)
        record = rates.latest(currency)
        template = PurchaseBatch(
            quantity=0,
            foreign_unit_price=0,
            currency=currency,
            # zero-quantity template: pricing only, never rejected for a missing rate
            exchange_rate=resolve_rate(quote, MissingRatePolicy.FALLBACK_ONE),
            payment_method=PaymentMethod.VISA,
            purchase_date=record.date if record is not None else today(),
        )
        item = LineItem(product_name="", payment_method=PaymentMethod.VISA, purchases=[template])
        return Order(customer="", items=[item])

    def _validate(self, order: Order, operator: str | None) -> str:
        operator = (operator or "").strip()
        if not operator:
            raise OrderValidationError(OrderValidationError.NO_OPERATOR_SELECTED, "select an operator before saving")
        if not order.customer.strip():
            raise OrderValidationError(OrderValidationError.NO_CUSTOMER_NAME, "customer name is required")
        return operator

    def save(self, order: Order, operator: str | None) -> SaveResult:
        """Validate, recompute derived status and persist the whole order.

        The caller's ``order`` is left untouched; the returned copy carries
        the derived fields and is only produced after the write succeeds.
        """
        operator = self._validate(order, operator)
        with self._locks.for_order(order.id):
            prepared = copy.deepcopy(order)
            previous = self.get(order.id) if order.id else None
            transition = recompute_status(prepared, previous)
            prepared.added_by = operator
            prepared.updated_at = now_ms()

            if previous is None:
                prepared.created_at = prepared.created_at or prepared.updated_at
                prepared.is_archived = False
                prepared.is_deleted = False
                prepared.id = self.store.add_document(ORDERS, prepared.to_document())
                created = True
            else:
                prepared.created_at = previous.created_at
                self.store.update_document(ORDERS, prepared.id, prepared.to_document())
                created = False

        if transition.became_processed:
            logger.info("order %s for %s is fully processed", prepared.id, prepared.customer)
        return SaveResult(order=prepared, transition=transition, created=created)

    def _mutate_item(
        self,
        order_id: str,
        item_index: int,
        operator: str | None,
        mutation: Callable[[LineItem], object],
    ) -> SaveResult:
        with self._locks.for_order(order_id):
            order = self.get(order_id)
            if not 0 <= item_index < len(order.items):
                raise InvalidInputError(f"order {order_id} has no item #{item_index}")
            mutation(order.items[item_index])
            return self.save(order, operator)

    def add_purchase_unit(
        self,
        order_id: str,
        item_index: int,
        rates: ExchangeRateTable,
        operator: str | None,
        on: date | None = None,
    ) -> SaveResult:
        def _append(item: LineItem) -> None:
            candidate = next_unit_candidate(
                item,
                rates,
                on or today(),
                self.settings.default_currency,
                self.settings.missing_rate_policy,
            )
            append_unit(item, candidate, self.settings.batch_merge_scope)

        return self._mutate_item(order_id, item_index, operator, _append)

    def remove_purchase_unit(self, order_id: str, item_index: int, operator: str | None) -> SaveResult:
        return self._mutate_item(order_id, item_index, operator, remove_unit)

    def apply_margin(
        self,
        order_id: str,
        item_index: int,
        margin_pct: Decimal | int | str,
        operator: str | None,
    ) -> SaveResult:
        return self._mutate_item(order_id, item_index, operator, lambda item: suggest_price_for_margin(item, margin_pct))

    def change_currency(
        self,
        order_id: str,
        item_index: int,
        currency: str,
        rates: ExchangeRateTable,
        operator: str | None,
    ) -> SaveResult:
        return self._mutate_item(
            order_id,
            item_index,
            operator,
            lambda item: rerate_first_batch(item, currency, rates, self.settings.missing_rate_policy),
        )

    def pick_product(self, order: Order, item_index: int, name: str, catalog: list[ProductCatalogEntry]) -> Order:
        if not 0 <= item_index < len(order.items):
            raise InvalidInputError(f"order has no item #{item_index}")
        item = order.items[item_index]
        entry = find_product(catalog, name)
        if entry is None:
            item.product_name = name.strip()
        else:
            prefill_item(item, entry)
        return order

    def toggle_status(self, order_id: str, field: StatusField) -> Order:
        if field not in _STATUS_FIELDS:
            raise InvalidInputError(f"unknown status field: {field}")
        with self._locks.for_order(order_id):
            order = self.get(order_id)
            setattr(order.status, field, not getattr(order.status, field))
            self.store.update_document(ORDERS, order_id, {"status": order.status.to_document()})
        return order

    def _set_flags(self, order_id: str, **flags: bool) -> Order:
        with self._locks.for_order(order_id):
            order = self.get(order_id)
            for name, value in flags.items():
                setattr(order, name, value)
            order.updated_at = now_ms()
            self.store.update_document(
                ORDERS,
                order_id,
                {"isArchived": order.is_archived, "isDeleted": order.is_deleted, "updatedAt": order.updated_at},
            )
        return order

    def archive(self, order_id: str) -> Order:
        return self._set_flags(order_id, is_archived=True)

    def soft_delete(self, order_id: str) -> Order:
        return self._set_flags(order_id, is_deleted=True)

    def restore(self, order_id: str) -> Order:
        return self._set_flags(order_id, is_archived=False, is_deleted=False)

    def hard_delete(self, order_id: str) -> None:
        with self._locks.for_order(order_id):
            self.get(order_id)
            self.store.delete_document(ORDERS, order_id)
        self._locks.discard(order_id)
        logger.info("order %s permanently deleted", order_id)
