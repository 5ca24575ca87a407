from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from resale_ledger.api.schemas import ProductUpsertRequest
from resale_ledger.api.utils import get_store, product_view
from resale_ledger.persistence.store import SqlDocumentStore
from resale_ledger.services.products import ProductService

router = APIRouter(tags=["products"])


@router.get("/products")
def list_products(store: SqlDocumentStore = Depends(get_store)):
    products = ProductService(store).list_products()
    return {"count": len(products), "products": [product_view(p) for p in products]}


@router.put("/products")
def upsert_product(body: ProductUpsertRequest, store: SqlDocumentStore = Depends(get_store)):
    entry = ProductService(store).save_product(
        name=body.name,
        suggested_unit_price=body.suggested_price,
        estimated_unit_shipping_cost=body.estimated_shipping,
        product_id=body.id,
    )
    return {"product": product_view(entry)}


@router.delete("/products/{name}")
def delete_product(
    name: str,
    cascade_orders: bool = Query(default=True, description="also delete every order referencing the product"),
    store: SqlDocumentStore = Depends(get_store),
):
    result = ProductService(store).delete_product(name, cascade_orders=cascade_orders)
    return {
        "name": result.name,
        "product_deleted": result.product_deleted,
        "orders_deleted": result.orders_deleted,
    }
