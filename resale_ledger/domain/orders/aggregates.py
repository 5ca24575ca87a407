from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from resale_ledger.core.errors import InvalidInputError
from resale_ledger.domain.money import (
    ZERO,
    PaymentMethod,
    non_negative_decimal,
    non_negative_int,
    parse_day,
    safe_rate,
    today,
)

UNNAMED_PRODUCT = "Unnamed product"


class Category(str, Enum):
    GENERAL = "general"
    FREE_SHIPPING = "free_shipping"


class DeliveryMethod(str, Enum):
    UNSET = "unset"
    IN_PERSON = "in_person"
    POST = "post"
    CONVENIENCE_STORE = "convenience_store"


@dataclass
class PurchaseBatch:
    quantity: int
    foreign_unit_price: Decimal
    currency: str
    exchange_rate: Decimal | None
    payment_method: PaymentMethod
    purchase_date: date = field(default_factory=today)

    def __post_init__(self) -> None:
        self.quantity = non_negative_int(self.quantity, "quantity")
        self.foreign_unit_price = non_negative_decimal(self.foreign_unit_price, "foreign_unit_price")
        if self.exchange_rate is not None:
            self.exchange_rate = non_negative_decimal(self.exchange_rate, "exchange_rate")
        if self.quantity > 0 and not self.exchange_rate:
            # only a zero-quantity pricing template may be unrated
            raise InvalidInputError("exchange_rate must be > 0 on a batch holding units")
        self.currency = str(self.currency).upper()
        self.payment_method = PaymentMethod(self.payment_method)
        self.purchase_date = parse_day(self.purchase_date)

    @property
    def merge_key(self) -> tuple:
        return (
            self.payment_method,
            self.exchange_rate,
            self.foreign_unit_price,
            self.currency,
            self.purchase_date,
        )

    @property
    def unit_cost(self) -> Decimal:
        return self.foreign_unit_price / safe_rate(self.exchange_rate)

    @property
    def home_cost(self) -> Decimal:
        return self.quantity * self.unit_cost

    def to_document(self) -> dict[str, Any]:
        return {
            "qty": self.quantity,
            "foreignPrice": self.foreign_unit_price,
            "currency": self.currency,
            "rate": self.exchange_rate if self.exchange_rate is not None else Decimal("0"),
            "paymentType": self.payment_method.value,
            "date": self.purchase_date.isoformat(),
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], default_currency: str) -> "PurchaseBatch":
        return cls(
            quantity=doc.get("qty", 0),
            foreign_unit_price=doc.get("foreignPrice", 0),
            currency=doc.get("currency") or default_currency,
            exchange_rate=doc.get("rate"),
            payment_method=doc.get("paymentType", PaymentMethod.VISA.value),
            purchase_date=doc.get("date") or today(),
        )


@dataclass
class LineItem:
    product_name: str
    desired_quantity: int = 0
    unit_selling_price: Decimal = ZERO
    payment_method: PaymentMethod = PaymentMethod.VISA
    purchases: list[PurchaseBatch] = field(default_factory=list)
    estimated_unit_shipping_cost: Decimal | None = None

    def __post_init__(self) -> None:
        self.product_name = (self.product_name or "").strip()
        self.desired_quantity = non_negative_int(self.desired_quantity, "desired_quantity")
        self.unit_selling_price = non_negative_decimal(self.unit_selling_price, "unit_selling_price")
        self.payment_method = PaymentMethod(self.payment_method)
        if self.estimated_unit_shipping_cost is not None:
            self.estimated_unit_shipping_cost = non_negative_decimal(
                self.estimated_unit_shipping_cost, "estimated_unit_shipping_cost"
            )

    @property
    def display_name(self) -> str:
        return self.product_name or UNNAMED_PRODUCT

    @property
    def purchased_quantity(self) -> int:
        return sum(batch.quantity for batch in self.purchases)

    @property
    def cost(self) -> Decimal:
        return sum((batch.home_cost for batch in self.purchases), ZERO)

    @property
    def revenue(self) -> Decimal:
        return self.desired_quantity * self.unit_selling_price

    @property
    def first_batch(self) -> PurchaseBatch | None:
        return self.purchases[0] if self.purchases else None

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.product_name,
            "qty": self.desired_quantity,
            "price": self.unit_selling_price,
            # display snapshot only; never read back
            "cost": self.cost,
            "paymentType": self.payment_method.value,
            "estimatedShipping": self.estimated_unit_shipping_cost,
            "purchases": [batch.to_document() for batch in self.purchases],
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], default_currency: str) -> "LineItem":
        return cls(
            product_name=doc.get("name", ""),
            desired_quantity=doc.get("qty", 0),
            unit_selling_price=doc.get("price", 0),
            payment_method=doc.get("paymentType", PaymentMethod.VISA.value),
            purchases=[PurchaseBatch.from_document(p, default_currency) for p in doc.get("purchases") or []],
            estimated_unit_shipping_cost=doc.get("estimatedShipping"),
        )


@dataclass
class OrderStatus:
    is_paid: bool = False
    is_processed: bool = False
    is_shipped: bool = False

    def to_document(self) -> dict[str, bool]:
        return {"isPaid": self.is_paid, "isProcessed": self.is_processed, "isShipped": self.is_shipped}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any] | None) -> "OrderStatus":
        doc = doc or {}
        return cls(
            is_paid=bool(doc.get("isPaid", False)),
            is_processed=bool(doc.get("isProcessed", False)),
            is_shipped=bool(doc.get("isShipped", False)),
        )


@dataclass
class Order:
    customer: str
    category: Category = Category.GENERAL
    delivery_method: DeliveryMethod = DeliveryMethod.UNSET
    domestic_shipping_fee: Decimal = ZERO
    items: list[LineItem] = field(default_factory=list)
    status: OrderStatus = field(default_factory=OrderStatus)
    created_at: int | None = None
    updated_at: int | None = None
    is_archived: bool = False
    is_deleted: bool = False
    added_by: str | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        self.customer = (self.customer or "").strip()
        self.category = Category(self.category)
        self.delivery_method = DeliveryMethod(self.delivery_method)
        self.domestic_shipping_fee = non_negative_decimal(self.domestic_shipping_fee, "domestic_shipping_fee")

    @property
    def total_amount(self) -> Decimal:
        return sum((item.revenue for item in self.items), ZERO)

    @property
    def amount_due(self) -> Decimal:
        return self.total_amount + self.domestic_shipping_fee

    @property
    def is_active(self) -> bool:
        return not self.is_archived and not self.is_deleted

    def to_document(self) -> dict[str, Any]:
        return {
            "customer": self.customer,
            "category": self.category.value,
            "deliveryMethod": self.delivery_method.value,
            "shippingFee": self.domestic_shipping_fee,
            "items": [item.to_document() for item in self.items],
            "totalAmount": self.total_amount,
            "status": self.status.to_document(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "isArchived": self.is_archived,
            "isDeleted": self.is_deleted,
            "addedBy": self.added_by,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], default_currency: str = "KRW") -> "Order":
        return cls(
            id=doc.get("id"),
            customer=doc.get("customer", ""),
            category=doc.get("category") or Category.GENERAL,
            delivery_method=doc.get("deliveryMethod") or DeliveryMethod.UNSET,
            domestic_shipping_fee=doc.get("shippingFee", 0),
            items=[LineItem.from_document(item, default_currency) for item in doc.get("items") or []],
            status=OrderStatus.from_document(doc.get("status")),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
            is_archived=bool(doc.get("isArchived", False)),
            is_deleted=bool(doc.get("isDeleted", False)),
            added_by=doc.get("addedBy"),
        )
