# shop_admin/routers/stock.py
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import Database, get_database, get_session
from shop_admin.db_models import MovementType, Product, ProductStatus
from shop_admin.models import (
    MovementList, MovementOut, Pagination, ProductOut, StockAlert, StockProductOut, SyncStockOut,
)
from shop_admin.queries import is_low_stock, low_stock_clause
from shop_admin.security import admin_only, get_settings_dep
from shop_admin.services import StockAggregator, stock_ledger
from shop_admin.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["Stock"], dependencies=[Depends(admin_only)])


def get_aggregator(db: Database = Depends(get_database)) -> StockAggregator:
    return StockAggregator(db)


def _severity(stock: int) -> str:
    return "critical" if stock <= 0 else "warning"


@router.get("/products", response_model=List[StockProductOut])
async def stock_products(
    low_stock: bool = Query(False, alias="lowStock"),
    status: Optional[ProductStatus] = Query(None),
    settings: Settings = Depends(get_settings_dep),
    db: AsyncSession = Depends(get_session),
):
    threshold = settings.VARIANT_LOW_STOCK_THRESHOLD
    stmt = (
        select(Product)
        .options(selectinload(Product.variants), selectinload(Product.category))
        .order_by(Product.updated_at.desc(), Product.id.desc())
    )
    if status is not None:
        stmt = stmt.where(Product.status == status)
    if low_stock:
        stmt = stmt.where(low_stock_clause(threshold))

    products = (await db.execute(stmt)).scalars().all()
    return [
        StockProductOut(
            **ProductOut.model_validate(p).model_dump(),
            effective_stock=p.total_stock,
            is_low_stock=is_low_stock(p, threshold),
        )
        for p in products
    ]


@router.get("/movements", response_model=MovementList)
async def movements(
    product_id: Optional[int] = Query(None, alias="productId"),
    type: Optional[MovementType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
):
    rows, total = await stock_ledger.query(db, product_id=product_id, type=type, page=page, limit=limit)
    return MovementList(
        movements=[MovementOut.model_validate(m) for m in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/alerts", response_model=List[StockAlert])
async def alerts(
    settings: Settings = Depends(get_settings_dep),
    db: AsyncSession = Depends(get_session),
):
    """Active simple products at/below their own threshold and variants at/below the global one."""
    threshold = settings.VARIANT_LOW_STOCK_THRESHOLD
    stmt = (
        select(Product)
        .options(selectinload(Product.variants))
        .where(Product.is_active.is_(True), low_stock_clause(threshold))
        .order_by(Product.id)
    )
    products = (await db.execute(stmt)).scalars().all()

    out: List[StockAlert] = []
    for p in products:
        if not p.variants:
            out.append(StockAlert(
                type="product",
                product_id=p.id,
                product_name=p.name,
                sku=p.sku,
                current_stock=p.stock,
                low_stock_threshold=p.low_stock,
                severity=_severity(p.stock),
            ))
            continue
        for v in p.variants:
            if v.stock > threshold:
                continue
            out.append(StockAlert(
                type="variant",
                product_id=p.id,
                product_name=p.name,
                variant_id=v.id,
                variant_name=v.name,
                sku=v.sku,
                current_stock=v.stock,
                low_stock_threshold=threshold,
                severity=_severity(v.stock),
            ))
    return out


@router.post("/sync-stock", response_model=SyncStockOut)
async def sync_stock(aggregator: StockAggregator = Depends(get_aggregator)):
    logger.info("Stock synchronization requested")
    synced = await aggregator.sync_all()
    return SyncStockOut(message="Stock synchronization completed", synced_count=synced)
