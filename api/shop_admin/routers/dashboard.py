# shop_admin/routers/dashboard.py
"""
Back-office dashboard: catalog, customer and order counts plus revenue.

Revenue counts SHIPPED and DELIVERED orders created within the period.
"""
from __future__ import annotations
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import get_session
from shop_admin.db_models import Customer, Order, OrderItem, OrderStatus, Product, utcnow
from shop_admin.models import (
    DashboardLowStock, DashboardOrderRef, DashboardStats, RevenuePoint, TopProduct,
)
from shop_admin.queries import low_stock_clause
from shop_admin.security import admin_only, get_settings_dep
from shop_admin.settings import Settings

router = APIRouter(prefix="/dashboard", tags=["Dashboard"], dependencies=[Depends(admin_only)])

REVENUE_STATUSES = (OrderStatus.SHIPPED, OrderStatus.DELIVERED)
CHART_DAYS = 7
LIST_SIZE = 10


async def _count(db: AsyncSession, column, *where) -> int:
    return (await db.execute(select(func.count(column)).where(*where))).scalar_one()


@router.get("", response_model=DashboardStats)
async def dashboard(
    period: int = Query(30, ge=1, le=365, description="days back for revenue and top products"),
    settings: Settings = Depends(get_settings_dep),
    db: AsyncSession = Depends(get_session),
):
    now = utcnow()
    since = now - timedelta(days=period)
    earning = (Order.status.in_(REVENUE_STATUSES), Order.created_at >= since)

    by_status = dict((await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )).all())
    orders_by_status = {s.value.lower(): by_status.get(s, 0) for s in OrderStatus}

    revenue = (await db.execute(
        select(func.coalesce(func.sum(Order.total), 0)).where(*earning)
    )).scalar_one()

    recent = (await db.execute(
        select(Order)
        .options(selectinload(Order.customer))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(LIST_SIZE)
    )).scalars().all()

    low_stock = (await db.execute(
        select(Product)
        .options(selectinload(Product.variants))
        .where(Product.is_active.is_(True), low_stock_clause(settings.VARIANT_LOW_STOCK_THRESHOLD))
        .order_by(Product.id)
        .limit(LIST_SIZE)
    )).scalars().all()

    sold = func.sum(OrderItem.quantity)
    top = (await db.execute(
        select(OrderItem.product_id, func.max(OrderItem.product_name), sold, func.sum(OrderItem.total_price))
        .join(Order, Order.id == OrderItem.order_id)
        .where(*earning)
        .group_by(OrderItem.product_id)
        .order_by(sold.desc(), OrderItem.product_id)
        .limit(LIST_SIZE)
    )).all()

    # per-day totals, grouped here so the date bucketing is the same on every backend
    chart_since = now - timedelta(days=CHART_DAYS)
    per_day = defaultdict(Decimal)
    for total, created_at in (await db.execute(
        select(Order.total, Order.created_at)
        .where(Order.status.in_(REVENUE_STATUSES), Order.created_at >= chart_since)
    )).all():
        per_day[created_at.date().isoformat()] += total

    return DashboardStats(
        period_days=period,
        total_products=await _count(db, Product.id),
        total_customers=await _count(db, Customer.id),
        total_orders=sum(orders_by_status.values()),
        orders_by_status=orders_by_status,
        total_revenue=float(revenue),
        recent_orders=[
            DashboardOrderRef(
                id=o.id,
                order_number=o.order_number,
                status=o.status,
                total=float(o.total),
                customer_name=f"{o.customer.first_name} {o.customer.last_name}",
                created_at=o.created_at,
            )
            for o in recent
        ],
        low_stock_products=[
            DashboardLowStock(
                id=p.id, name=p.name, sku=p.sku, total_stock=p.total_stock, has_variants=p.has_variants,
            )
            for p in low_stock
        ],
        top_products=[
            TopProduct(product_id=pid, product_name=name, sold_quantity=int(qty), revenue=float(amount))
            for pid, name, qty, amount in top
        ],
        revenue_chart=[RevenuePoint(date=day, total=float(per_day[day])) for day in sorted(per_day)],
    )
