# shop_admin/services/orders.py
"""
Order Fulfillment Coordinator.

Creating an order prices its lines from the catalog, takes the quantities out
of stock and writes one OUT movement per line. Deleting a PENDING order puts
the quantities back with compensating IN movements. Both happen in a single
unit of work together with the order rows.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
import logging
import secrets
import time

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import Database
from shop_admin.db_models import (
    Customer, Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus,
    Product, ProductVariant, utcnow,
)
from shop_admin.exceptions import ConflictError, NotFoundError, ValidationError
from shop_admin.services.stock_adjuster import load_target, write_stock
from shop_admin.services.stock_aggregator import variant_count
from shop_admin.settings import Settings

logger = logging.getLogger(__name__)

ORDER_REASON = "Order"
ORDER_DELETED_REASON = "Order deleted"

STATUS_CHAIN = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
STATUS_TIMESTAMPS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


@dataclass
class OrderLine:
    product_id: int
    quantity: int
    variant_id: Optional[int] = None


def check_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    True when ``current -> target`` is a real change, False for a no-op.

    Forward moves along PENDING -> CONFIRMED -> SHIPPED -> DELIVERED may skip
    steps; CANCELLED is reachable from any non-terminal status.
    """
    if target == current:
        return False
    if current in TERMINAL_STATUSES:
        raise ConflictError(f"Order is {current.value} and can no longer change status")
    if target == OrderStatus.CANCELLED:
        return True
    if STATUS_CHAIN.index(target) < STATUS_CHAIN.index(current):
        raise ConflictError(f"Cannot move order from {current.value} back to {target.value}")
    return True


def generate_order_number(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}-{secrets.token_hex(2).upper()}"


def _order_query():
    return select(Order).options(
        selectinload(Order.customer),
        selectinload(Order.items),
    )


class OrderCoordinator:
    """Order lifecycle with its stock side effects."""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.settings = settings

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_order(self, order_id: int) -> Order:
        async with self.database.session_factory() as session:
            order = (await session.execute(
                _order_query().where(Order.id == order_id)
            )).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        filters = []
        if status is not None:
            filters.append(Order.status == status)
        if search:
            like = f"%{search.strip()}%"
            customer_match = select(Customer.id).where(or_(
                Customer.first_name.ilike(like),
                Customer.last_name.ilike(like),
                Customer.email.ilike(like),
                Customer.phone.ilike(like),
            ))
            filters.append(or_(Order.order_number.ilike(like), Order.customer_id.in_(customer_match)))

        async with self.database.session_factory() as session:
            total = (await session.execute(
                select(func.count(Order.id)).where(*filters)
            )).scalar_one()
            stmt = (
                _order_query()
                .where(*filters)
                .order_by(Order.created_at.desc(), Order.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            orders = list((await session.execute(stmt)).scalars().all())
        return orders, total

    # =========================================================================
    # Create
    # =========================================================================

    async def create_order(
        self,
        customer_id: int,
        items: Iterable[OrderLine],
        shipping_cost: Decimal = Decimal("0"),
        payment_method: PaymentMethod = PaymentMethod.COD,
        shipping_method: str = "standard",
        notes: Optional[str] = None,
        internal_notes: Optional[str] = None,
    ) -> Order:
        lines = list(items)
        if not lines:
            raise ValidationError("Order must contain at least one item")
        for line in lines:
            if line.quantity <= 0:
                raise ValidationError(
                    "Item quantity must be positive",
                    {"productId": line.product_id, "quantity": line.quantity},
                )

        shipping_cost = Decimal(str(shipping_cost or 0))

        async with self.database.unit_of_work() as session:
            customer = await session.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError(f"Customer not found: {customer_id}")

            resolved: List[Tuple[OrderLine, Product, Optional[ProductVariant]]] = []
            subtotal = Decimal("0")
            order_items: List[OrderItem] = []
            for line in lines:
                product, variant = await load_target(session, line.product_id, line.variant_id)
                if variant is None and await variant_count(session, product.id):
                    raise ValidationError(
                        f"Choose a variant for {product.name}",
                        {"productId": product.id},
                    )
                unit_price = variant.price if variant is not None and variant.price is not None else product.price
                total_price = unit_price * line.quantity
                subtotal += total_price
                order_items.append(OrderItem(
                    product_id=product.id,
                    variant_id=variant.id if variant is not None else None,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    total_price=total_price,
                    product_name=product.name,
                    product_sku=(variant.sku if variant is not None and variant.sku else product.sku) or "",
                    variant_options=dict(variant.options or {}) if variant is not None else None,
                ))
                resolved.append((line, product, variant))

            order = Order(
                order_number=generate_order_number(self.settings.ORDER_NUMBER_PREFIX),
                customer_id=customer.id,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                payment_method=payment_method,
                shipping_method=shipping_method or "standard",
                subtotal=subtotal,
                shipping_cost=shipping_cost,
                total=subtotal + shipping_cost,
                notes=notes,
                internal_notes=internal_notes,
                items=order_items,
            )
            session.add(order)
            await session.flush()

            reference = str(order.id)
            for line, product, variant in resolved:
                await self._take_stock(session, product, variant, line.quantity, reference)

            order_id = order.id
            order_number = order.order_number

        logger.info(f"Order created {order_number} (id={order_id}), {len(lines)} line(s)")
        return await self.get_order(order_id)

    async def _take_stock(
        self,
        session: AsyncSession,
        product: Product,
        variant: Optional[ProductVariant],
        quantity: int,
        reference: str,
    ) -> None:
        current = variant.stock if variant is not None else product.stock
        if not self.settings.ALLOW_OVERSELL and quantity > current:
            name = f"{product.name} / {variant.name}" if variant is not None else product.name
            raise ConflictError(
                f"Insufficient stock for {name}",
                {"productId": product.id, "variantId": variant.id if variant else None,
                 "available": current, "requested": quantity},
            )
        await write_stock(session, product, variant, current - quantity, ORDER_REASON, reference)

    # =========================================================================
    # Update
    # =========================================================================

    async def update_order(
        self,
        order_id: int,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        tracking_number: Optional[str] = None,
        notes: Optional[str] = None,
        internal_notes: Optional[str] = None,
    ) -> Order:
        """Status / payment / tracking changes. Never touches stock."""
        async with self.database.unit_of_work() as session:
            order = await session.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order not found")

            if status is not None and check_transition(order.status, status):
                logger.info(f"Order {order.order_number}: {order.status.value} -> {status.value}")
                order.status = status
                setattr(order, STATUS_TIMESTAMPS[status], utcnow())
            if payment_status is not None:
                order.payment_status = payment_status
            if tracking_number is not None:
                order.tracking_number = tracking_number
            if notes is not None:
                order.notes = notes
            if internal_notes is not None:
                order.internal_notes = internal_notes

        return await self.get_order(order_id)

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete_order(self, order_id: int) -> None:
        """Delete a PENDING order and put its quantities back into stock."""
        async with self.database.unit_of_work() as session:
            order = (await session.execute(
                select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
            )).scalar_one_or_none()
            if order is None:
                raise NotFoundError("Order not found")
            if order.status != OrderStatus.PENDING:
                raise ConflictError("Cannot delete order that is not pending. Cancel it instead.")

            reference = str(order.id)
            for item in order.items:
                product = await session.get(Product, item.product_id)
                if product is None:
                    raise NotFoundError(f"Product not found: {item.product_id}")
                variant = None
                if item.variant_id is not None:
                    variant = await session.get(ProductVariant, item.variant_id)
                    if variant is not None and variant.product_id != product.id:
                        variant = None
                if variant is None and await variant_count(session, product.id):
                    # stock of a product with variants is the variant sum
                    raise ConflictError(
                        f"Cannot restore stock of {item.product_name}: its variant no longer exists. "
                        "Cancel the order instead.",
                        {"productId": product.id, "orderItemId": item.id},
                    )
                # a removed variant falls back to the product counter of a simple product
                current = variant.stock if variant is not None else product.stock
                await write_stock(session, product, variant, current + item.quantity,
                                  ORDER_DELETED_REASON, reference)

            await session.delete(order)
            order_number = order.order_number

        logger.info(f"Order deleted {order_number} (id={order_id}), stock restored")
