# shop_admin/queries.py
"""SQL expressions for stock levels shared by the inventory and stock routers."""
from __future__ import annotations

from sqlalchemy import and_, exists, not_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from shop_admin.db_models import Product, ProductVariant


def has_variants() -> ColumnElement[bool]:
    return exists(select(ProductVariant.id).where(ProductVariant.product_id == Product.id))


def low_stock_clause(variant_threshold: int) -> ColumnElement[bool]:
    """
    Simple product: stock <= its own low_stock.
    Product with variants: any variant at or below ``variant_threshold``.
    """
    low_variant = exists(
        select(ProductVariant.id).where(
            ProductVariant.product_id == Product.id,
            ProductVariant.stock <= variant_threshold,
        )
    )
    return or_(
        and_(not_(has_variants()), Product.stock <= Product.low_stock),
        low_variant,
    )


def out_of_stock_clause() -> ColumnElement[bool]:
    """Simple product: stock <= 0. Product with variants: no variant with stock left."""
    variant_in_stock = exists(
        select(ProductVariant.id).where(
            ProductVariant.product_id == Product.id,
            ProductVariant.stock > 0,
        )
    )
    return or_(
        and_(not_(has_variants()), Product.stock <= 0),
        and_(has_variants(), not_(variant_in_stock)),
    )


def is_low_stock(product: Product, variant_threshold: int) -> bool:
    """Python twin of ``low_stock_clause`` for a loaded product."""
    if product.variants:
        return any(v.stock <= variant_threshold for v in product.variants)
    return product.stock <= product.low_stock


def search_clause(term: str) -> ColumnElement[bool]:
    like = f"%{term.strip()}%"
    return or_(Product.name.ilike(like), Product.sku.ilike(like))
