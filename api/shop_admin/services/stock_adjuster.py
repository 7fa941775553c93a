# shop_admin/services/stock_adjuster.py
"""
Stock Adjuster - sets absolute stock levels for products and variants.

Every change writes the new level and its ledger entry in the same unit of
work; variant changes also refresh the parent product's aggregate.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shop_admin.database import Database
from shop_admin.db_models import Product, ProductVariant
from shop_admin.exceptions import AppError, NotFoundError, ValidationError
from shop_admin.services import stock_ledger
from shop_admin.services.stock_aggregator import recompute_product_stock

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Manual adjustment"
DEFAULT_BULK_REASON = "Bulk adjustment"


@dataclass
class StockChange:
    product_id: int
    variant_id: Optional[int]
    previous_stock: int
    new_stock: int
    movement_id: int


@dataclass
class StockUpdate:
    product_id: int
    new_stock: int
    variant_id: Optional[int] = None


@dataclass
class BulkFailure:
    index: int
    product_id: int
    variant_id: Optional[int]
    error: str


@dataclass
class BulkResult:
    updated: List[StockChange] = field(default_factory=list)
    failures: List[BulkFailure] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


# ============================================================================
# Unit-of-work helpers (also used by order fulfillment)
# ============================================================================

async def load_target(
    session: AsyncSession, product_id: int, variant_id: Optional[int]
) -> tuple[Product, Optional[ProductVariant]]:
    """Resolve product and (optionally) one of its variants, or raise NotFoundError."""
    product = await session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product not found: {product_id}")

    variant = None
    if variant_id is not None:
        stmt = select(ProductVariant).where(
            ProductVariant.id == variant_id,
            ProductVariant.product_id == product_id,
        )
        variant = (await session.execute(stmt)).scalar_one_or_none()
        if variant is None:
            raise NotFoundError(f"Variant not found: {variant_id}")
    return product, variant


async def write_stock(
    session: AsyncSession,
    product: Product,
    variant: Optional[ProductVariant],
    new_stock: int,
    reason: str,
    reference: Optional[str] = None,
) -> StockChange:
    """Set the stock of ``variant`` (or ``product``) and append the movement."""
    target = variant if variant is not None else product
    previous = target.stock
    target.stock = new_stock

    movement = await stock_ledger.record(
        session,
        product_id=product.id,
        variant_id=variant.id if variant is not None else None,
        type=stock_ledger.movement_type_for(previous, new_stock),
        quantity=abs(new_stock - previous),
        previous_stock=previous,
        new_stock=new_stock,
        reason=reason,
        reference=reference,
    )

    if variant is not None:
        await recompute_product_stock(session, product.id)

    return StockChange(
        product_id=product.id,
        variant_id=variant.id if variant is not None else None,
        previous_stock=previous,
        new_stock=new_stock,
        movement_id=movement.id,
    )


# ============================================================================
# Service
# ============================================================================

class StockAdjuster:
    """Direct stock corrections, single or in bulk."""

    def __init__(self, database: Database):
        self.database = database

    async def set_stock(
        self,
        product_id: int,
        variant_id: Optional[int],
        new_stock: int,
        reason: Optional[str] = None,
    ) -> StockChange:
        if new_stock < 0:
            raise ValidationError(
                "Stock cannot be negative",
                {"productId": product_id, "variantId": variant_id, "newStock": new_stock},
            )

        async with self.database.unit_of_work() as session:
            product, variant = await load_target(session, product_id, variant_id)
            change = await write_stock(session, product, variant, new_stock, reason or DEFAULT_REASON)

        logger.info(
            f"Stock set product={product_id} variant={variant_id}: "
            f"{change.previous_stock} -> {change.new_stock}"
        )
        return change

    async def bulk_set_stock(self, updates: Iterable[StockUpdate], reason: Optional[str] = None) -> BulkResult:
        """
        Apply each update in its own unit of work.

        A failing item is logged and reported; items before and after it are
        still applied.
        """
        result = BulkResult()
        for index, update in enumerate(updates):
            try:
                change = await self.set_stock(
                    update.product_id,
                    update.variant_id,
                    update.new_stock,
                    reason or DEFAULT_BULK_REASON,
                )
            except (AppError, SQLAlchemyError) as e:
                message = e.message if isinstance(e, AppError) else "Database error"
                logger.warning(
                    f"Bulk stock item {index} failed (product={update.product_id} "
                    f"variant={update.variant_id}): {e}"
                )
                result.failures.append(BulkFailure(
                    index=index,
                    product_id=update.product_id,
                    variant_id=update.variant_id,
                    error=message,
                ))
                continue
            result.updated.append(change)

        logger.info(f"Bulk stock update: {result.updated_count} updated, {result.failed_count} failed")
        return result
