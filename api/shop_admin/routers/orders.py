# shop_admin/routers/orders.py
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query

from shop_admin.database import Database, get_database
from shop_admin.db_models import OrderStatus
from shop_admin.models import MessageOut, OrderCreateIn, OrderList, OrderOut, OrderUpdateIn, Pagination
from shop_admin.security import admin_only, get_settings_dep
from shop_admin.services import OrderCoordinator, OrderLine
from shop_admin.settings import Settings

router = APIRouter(prefix="/orders", tags=["Orders"], dependencies=[Depends(admin_only)])


def get_coordinator(
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_settings_dep),
) -> OrderCoordinator:
    return OrderCoordinator(db, settings)


@router.get("", response_model=OrderList)
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    coordinator: OrderCoordinator = Depends(get_coordinator),
):
    orders, total = await coordinator.list_orders(status=status, search=search, page=page, limit=limit)
    return OrderList(
        orders=[OrderOut.model_validate(o) for o in orders],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(order_id: int, coordinator: OrderCoordinator = Depends(get_coordinator)):
    return OrderOut.model_validate(await coordinator.get_order(order_id))


@router.post("", response_model=OrderOut, status_code=201)
async def create_order(body: OrderCreateIn, coordinator: OrderCoordinator = Depends(get_coordinator)):
    """Create an order and take its quantities out of stock."""
    order = await coordinator.create_order(
        customer_id=body.customer_id,
        items=[
            OrderLine(product_id=i.product_id, variant_id=i.variant_id, quantity=i.quantity)
            for i in body.items
        ],
        shipping_cost=body.shipping_cost,
        payment_method=body.payment_method,
        shipping_method=body.shipping_method,
        notes=body.notes,
        internal_notes=body.internal_notes,
    )
    return OrderOut.model_validate(order)


@router.put("/{order_id}", response_model=OrderOut)
async def update_order(order_id: int, body: OrderUpdateIn, coordinator: OrderCoordinator = Depends(get_coordinator)):
    order = await coordinator.update_order(
        order_id,
        status=body.status,
        payment_status=body.payment_status,
        tracking_number=body.tracking_number,
        notes=body.notes,
        internal_notes=body.internal_notes,
    )
    return OrderOut.model_validate(order)


@router.delete("/{order_id}", response_model=MessageOut)
async def delete_order(order_id: int, coordinator: OrderCoordinator = Depends(get_coordinator)):
    """Only PENDING orders; their stock is restored."""
    await coordinator.delete_order(order_id)
    return MessageOut(message="Order deleted successfully")
