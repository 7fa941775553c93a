# shop_admin/services/stock_ledger.py
"""
Stock Ledger - append-only record of stock changes.

Rows are only ever added inside a caller's unit of work; there is no update
or delete path.
"""
from __future__ import annotations
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.db_models import MovementType, StockMovement
from shop_admin.exceptions import ValidationError


def movement_type_for(previous_stock: int, new_stock: int) -> MovementType:
    return MovementType.IN if new_stock > previous_stock else MovementType.OUT


async def record(
    session: AsyncSession,
    product_id: int,
    variant_id: Optional[int],
    type: MovementType,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    reason: str,
    reference: Optional[str] = None,
) -> StockMovement:
    """Add one movement to ``session``. The caller commits."""
    if quantity < 0:
        raise ValidationError(
            "Movement quantity must be non-negative",
            {"quantity": quantity},
        )

    movement = StockMovement(
        product_id=product_id,
        variant_id=variant_id,
        type=MovementType(type),
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        reference=reference,
    )
    session.add(movement)
    await session.flush()
    return movement


async def query(
    session: AsyncSession,
    product_id: Optional[int] = None,
    type: Optional[MovementType] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[StockMovement], int]:
    """Return one page of movements (newest first) and the total count."""
    filters = []
    if product_id is not None:
        filters.append(StockMovement.product_id == product_id)
    if type is not None:
        filters.append(StockMovement.type == MovementType(type))

    total = (await session.execute(
        select(func.count(StockMovement.id)).where(*filters)
    )).scalar_one()

    stmt = (
        select(StockMovement)
        .options(selectinload(StockMovement.product), selectinload(StockMovement.variant))
        .where(*filters)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    movements = list((await session.execute(stmt)).scalars().all())
    return movements, total


async def for_reference(session: AsyncSession, reference: str) -> List[StockMovement]:
    """All movements written for one order, oldest first."""
    stmt = (
        select(StockMovement)
        .where(StockMovement.reference == reference)
        .order_by(StockMovement.id)
    )
    return list((await session.execute(stmt)).scalars().all())
