from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from resale_ledger.api.schemas import (
    CurrencyChangeRequest,
    MarginRequest,
    OperatorRequest,
    OrderUpsertRequest,
    PickProductRequest,
    PurchaseUnitRequest,
)
from resale_ledger.api.utils import get_store, order_view
from resale_ledger.persistence.store import SqlDocumentStore
from resale_ledger.services.orders import OrderService, SaveResult, StatusField
from resale_ledger.services.products import ProductService
from resale_ledger.services.rates import RateService

router = APIRouter(tags=["orders"])


def _save_response(result: SaveResult) -> dict:
    return {
        "order": order_view(result.order),
        "created": result.created,
        "status_transition": {
            "before": result.transition.before,
            "after": result.transition.after,
            "became_processed": result.became_processed,
        },
    }


@router.get("/orders")
def list_orders(
    q: str | None = Query(default=None, description="customer or product name"),
    archived: bool = Query(default=False, description="list the recycle bin instead"),
    store: SqlDocumentStore = Depends(get_store),
):
    service = OrderService(store)
    if archived:
        orders = service.archived_orders()
    else:
        orders = service.search(q)
    return {"count": len(orders), "orders": [order_view(o) for o in orders]}


@router.get("/orders/draft")
def new_order_draft(store: SqlDocumentStore = Depends(get_store)):
    draft = OrderService(store).new_draft(RateService(store).table())
    return {"order": order_view(draft)}


@router.post("/orders/draft/pick-product")
def pick_product(body: PickProductRequest, store: SqlDocumentStore = Depends(get_store)):
    catalog = ProductService(store).list_products()
    order = OrderService(store).pick_product(body.order.to_domain(), body.item_index, body.name, catalog)
    return {"order": order_view(order)}


@router.get("/orders/{order_id}")
def get_order(order_id: str, store: SqlDocumentStore = Depends(get_store)):
    return {"order": order_view(OrderService(store).get(order_id))}


@router.post("/orders")
def create_order(body: OrderUpsertRequest, store: SqlDocumentStore = Depends(get_store)):
    result = OrderService(store).save(body.to_domain(), body.operator)
    return _save_response(result)


@router.put("/orders/{order_id}")
def update_order(order_id: str, body: OrderUpsertRequest, store: SqlDocumentStore = Depends(get_store)):
    service = OrderService(store)
    order = body.to_domain(order_id)
    current = service.get(order_id)
    order.created_at = current.created_at
    order.is_archived = current.is_archived
    order.is_deleted = current.is_deleted
    return _save_response(service.save(order, body.operator))


@router.post("/orders/{order_id}/status/{field}")
def toggle_order_status(order_id: str, field: StatusField, store: SqlDocumentStore = Depends(get_store)):
    return {"order": order_view(OrderService(store).toggle_status(order_id, field))}


@router.post("/orders/{order_id}/archive")
def archive_order(order_id: str, store: SqlDocumentStore = Depends(get_store)):
    return {"order": order_view(OrderService(store).archive(order_id))}


@router.post("/orders/{order_id}/restore")
def restore_order(order_id: str, store: SqlDocumentStore = Depends(get_store)):
    return {"order": order_view(OrderService(store).restore(order_id))}


@router.delete("/orders/{order_id}")
def delete_order(
    order_id: str,
    permanent: bool = Query(default=False),
    store: SqlDocumentStore = Depends(get_store),
):
    service = OrderService(store)
    if permanent:
        service.hard_delete(order_id)
        return {"deleted": order_id, "permanent": True}
    return {"order": order_view(service.soft_delete(order_id)), "permanent": False}


@router.post("/orders/{order_id}/items/{item_index}/purchases")
def add_purchase_unit(
    order_id: str,
    item_index: int,
    body: PurchaseUnitRequest,
    store: SqlDocumentStore = Depends(get_store),
):
    result = OrderService(store).add_purchase_unit(
        order_id,
        item_index,
        RateService(store).table(),
        body.operator,
        on=body.date,
    )
    return _save_response(result)


@router.post("/orders/{order_id}/items/{item_index}/purchases/remove")
def remove_purchase_unit(
    order_id: str,
    item_index: int,
    body: OperatorRequest,
    store: SqlDocumentStore = Depends(get_store),
):
    return _save_response(OrderService(store).remove_purchase_unit(order_id, item_index, body.operator))


@router.post("/orders/{order_id}/items/{item_index}/margin")
def apply_margin(
    order_id: str,
    item_index: int,
    body: MarginRequest,
    store: SqlDocumentStore = Depends(get_store),
):
    return _save_response(OrderService(store).apply_margin(order_id, item_index, body.margin_pct, body.operator))


@router.post("/orders/{order_id}/items/{item_index}/currency")
def change_currency(
    order_id: str,
    item_index: int,
    body: CurrencyChangeRequest,
    store: SqlDocumentStore = Depends(get_store),
):
    result = OrderService(store).change_currency(
        order_id,
        item_index,
        body.currency,
        RateService(store).table(),
        body.operator,
    )
    return _save_response(result)
