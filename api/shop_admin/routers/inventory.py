# shop_admin/routers/inventory.py
from __future__ import annotations
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import Database, get_database, get_session
from shop_admin.db_models import Category, Product
from shop_admin.exceptions import ValidationError
from shop_admin.models import (
    BulkFailure, BulkStockResult, BulkStockUpdateIn, InventoryOverview, InventoryProductList,
    InventoryProductOut, Pagination, ProductOut, StockUpdateIn, StockUpdateOut,
)
from shop_admin.queries import is_low_stock, low_stock_clause, out_of_stock_clause, search_clause
from shop_admin.security import admin_only, get_settings_dep
from shop_admin.services import StockAdjuster, StockUpdate
from shop_admin.settings import Settings
from shop_admin.utils import page_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"], dependencies=[Depends(admin_only)])


def get_adjuster(db: Database = Depends(get_database)) -> StockAdjuster:
    return StockAdjuster(db)


@router.get("/overview", response_model=InventoryOverview)
async def overview(
    settings: Settings = Depends(get_settings_dep),
    db: AsyncSession = Depends(get_session),
):
    """Counts over active products (and active categories)."""
    active = Product.is_active.is_(True)
    threshold = settings.VARIANT_LOW_STOCK_THRESHOLD

    async def count(*where) -> int:
        return (await db.execute(select(func.count(Product.id)).where(*where))).scalar_one()

    return InventoryOverview(
        total_products=await count(active),
        low_stock_products=await count(active, low_stock_clause(threshold)),
        out_of_stock_products=await count(active, out_of_stock_clause()),
        total_categories=(await db.execute(
            select(func.count(Category.id)).where(Category.is_active.is_(True))
        )).scalar_one(),
    )


@router.get("/products", response_model=InventoryProductList)
async def inventory_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None),
    category: Optional[int] = Query(None),
    status: Optional[str] = Query(None, description="low_stock | out_of_stock"),
    settings: Settings = Depends(get_settings_dep),
    db: AsyncSession = Depends(get_session),
):
    threshold = settings.VARIANT_LOW_STOCK_THRESHOLD
    filters = []
    if search:
        filters.append(search_clause(search))
    if category is not None:
        filters.append(Product.category_id == category)
    if status == "low_stock":
        filters.append(low_stock_clause(threshold))
    elif status == "out_of_stock":
        filters.append(out_of_stock_clause())
    elif status:
        raise ValidationError(f"Unknown stock status filter: {status}")

    total = (await db.execute(select(func.count(Product.id)).where(*filters))).scalar_one()
    stmt = (
        select(Product)
        .options(selectinload(Product.variants), selectinload(Product.category))
        .where(*filters)
        .order_by(Product.updated_at.desc(), Product.id.desc())
        .offset(page_window(page, limit))
        .limit(limit)
    )
    products = (await db.execute(stmt)).scalars().all()

    items = [
        InventoryProductOut(
            **ProductOut.model_validate(p).model_dump(),
            total_stock=p.total_stock,
            is_low_stock=is_low_stock(p, threshold),
        )
        for p in products
    ]
    return InventoryProductList(products=items, pagination=Pagination.build(page, limit, total))


@router.patch("/stock", response_model=StockUpdateOut)
async def update_stock(body: StockUpdateIn, adjuster: StockAdjuster = Depends(get_adjuster)):
    change = await adjuster.set_stock(body.product_id, body.variant_id, body.new_stock, body.reason)
    return StockUpdateOut(
        message="Stock updated successfully",
        movement_id=change.movement_id,
        previous_stock=change.previous_stock,
        new_stock=change.new_stock,
    )


@router.patch("/stock/bulk", response_model=BulkStockResult)
async def bulk_update_stock(body: BulkStockUpdateIn, adjuster: StockAdjuster = Depends(get_adjuster)):
    updates = [
        StockUpdate(product_id=u.product_id, variant_id=u.variant_id, new_stock=u.new_stock)
        for u in body.updates
    ]
    logger.info(f"Bulk stock request: {len(updates)} item(s), reason={body.reason!r}")
    result = await adjuster.bulk_set_stock(updates, body.reason)
    return BulkStockResult(
        message=f"Updated stock for {result.updated_count} of {len(updates)} items",
        updated_count=result.updated_count,
        failed_count=result.failed_count,
        failures=[
            BulkFailure(index=f.index, product_id=f.product_id, variant_id=f.variant_id, error=f.error)
            for f in result.failures
        ],
    )
