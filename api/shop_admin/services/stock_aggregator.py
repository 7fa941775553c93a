# shop_admin/services/stock_aggregator.py
"""
Stock Aggregator - keeps Product.stock equal to the sum of its variant stocks.
"""
from __future__ import annotations
from typing import Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import Database
from shop_admin.db_models import Product, ProductVariant

logger = logging.getLogger(__name__)


async def variant_count(session: AsyncSession, product_id: int) -> int:
    return (await session.execute(
        select(func.count(ProductVariant.id)).where(ProductVariant.product_id == product_id)
    )).scalar_one()


async def recompute_product_stock(session: AsyncSession, product_id: int) -> Optional[int]:
    """
    Set the product's stock to the sum of its variants inside ``session``.

    Returns the new aggregate, or None when the product has no variants
    (its own stock is authoritative then and is left alone).
    """
    # pending variant changes must be visible to the SUM below
    await session.flush()

    total, count = (await session.execute(
        select(func.coalesce(func.sum(ProductVariant.stock), 0), func.count(ProductVariant.id))
        .where(ProductVariant.product_id == product_id)
    )).one()
    if not count:
        return None

    product = await session.get(Product, product_id)
    if product is not None and product.stock != total:
        product.stock = int(total)
    return int(total)


class StockAggregator:
    """Reconciles denormalized product stock for the whole catalog."""

    def __init__(self, database: Database):
        self.database = database

    async def sync_all(self) -> int:
        """Fix every product whose stock differs from its variant total. Returns the number fixed."""
        synced = 0
        async with self.database.unit_of_work() as session:
            stmt = (
                select(Product)
                .options(selectinload(Product.variants))
                .where(Product.variants.any())
                .order_by(Product.id)
            )
            products = (await session.execute(stmt)).scalars().all()
            for product in products:
                total = sum(v.stock for v in product.variants)
                if product.stock != total:
                    logger.info(f"Sync stock product={product.id}: {product.stock} -> {total}")
                    product.stock = total
                    synced += 1

        logger.info(f"Stock synchronization completed, {synced} product(s) corrected")
        return synced
