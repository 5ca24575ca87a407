from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from resale_ledger.domain.money import PaymentMethod
from resale_ledger.domain.orders.aggregates import (
    Category,
    DeliveryMethod,
    LineItem,
    Order,
    OrderStatus,
    PurchaseBatch,
)


class PurchaseBatchModel(BaseModel):
    qty: int = Field(ge=0)
    foreign_price: Decimal = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)
    rate: Decimal | None = Field(default=None, ge=0)
    payment_type: PaymentMethod = PaymentMethod.VISA
    date: dt.date | None = None

    @model_validator(mode="after")
    def _units_need_rate(self) -> "PurchaseBatchModel":
        if self.qty > 0 and not self.rate:
            raise ValueError("rate must be > 0 on a batch holding units")
        return self

    def to_domain(self) -> PurchaseBatch:
        kwargs = {}
        if self.date is not None:
            kwargs["purchase_date"] = self.date
        return PurchaseBatch(
            quantity=self.qty,
            foreign_unit_price=self.foreign_price,
            currency=self.currency,
            exchange_rate=self.rate,
            payment_method=self.payment_type,
            **kwargs,
        )


class LineItemModel(BaseModel):
    name: str = ""
    qty: int = Field(default=0, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0, description="unit selling price, home currency")
    payment_type: PaymentMethod = PaymentMethod.VISA
    estimated_shipping: Decimal | None = Field(default=None, ge=0)
    purchases: list[PurchaseBatchModel] = Field(default_factory=list)

    def to_domain(self) -> LineItem:
        return LineItem(
            product_name=self.name,
            desired_quantity=self.qty,
            unit_selling_price=self.price,
            payment_method=self.payment_type,
            purchases=[p.to_domain() for p in self.purchases],
            estimated_unit_shipping_cost=self.estimated_shipping,
        )


class OrderStatusModel(BaseModel):
    is_paid: bool = False
    is_processed: bool = False
    is_shipped: bool = False


class OrderUpsertRequest(BaseModel):
    operator: str | None = None
    customer: str = ""
    category: Category = Category.GENERAL
    delivery_method: DeliveryMethod = DeliveryMethod.UNSET
    shipping_fee: Decimal = Field(default=Decimal("0"), ge=0)
    items: list[LineItemModel] = Field(default_factory=list)
    status: OrderStatusModel = Field(default_factory=OrderStatusModel)

    def to_domain(self, order_id: str | None = None) -> Order:
        return Order(
            id=order_id,
            customer=self.customer,
            category=self.category,
            delivery_method=self.delivery_method,
            domestic_shipping_fee=self.shipping_fee,
            items=[item.to_domain() for item in self.items],
            status=OrderStatus(**self.status.model_dump()),
        )


class OperatorRequest(BaseModel):
    operator: str | None = None


class PurchaseUnitRequest(OperatorRequest):
    date: dt.date | None = None


class MarginRequest(OperatorRequest):
    margin_pct: Decimal = Field(gt=-100)


class CurrencyChangeRequest(OperatorRequest):
    currency: str = Field(min_length=3, max_length=3)


class PickProductRequest(BaseModel):
    order: OrderUpsertRequest
    item_index: int = Field(ge=0)
    name: str


class RateUpsertRequest(BaseModel):
    id: str | None = None
    currency: str = Field(min_length=3, max_length=3)
    date: dt.date
    cash: Decimal = Field(default=Decimal("0"), ge=0)
    visa: Decimal = Field(default=Decimal("0"), ge=0)
    jcb: Decimal = Field(default=Decimal("0"), ge=0)


class ProductUpsertRequest(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    suggested_price: Decimal = Field(default=Decimal("0"), ge=0)
    estimated_shipping: Decimal = Field(default=Decimal("0"), ge=0)


class BookkeepingQuoteRequest(BaseModel):
    item_name: str
    currency: str = Field(min_length=3, max_length=3)
    foreign_price: Decimal = Field(ge=0)
    rate: Decimal = Field(ge=0)
    selling_price: Decimal = Field(ge=0)
