# shop_admin/routers/products.py
"""
Product catalog CRUD.

A product is either *simple* (its own ``stock``) or has variants, in which
case ``stock`` is kept equal to the sum of the variant stocks. Sending
``hasVariants: true`` with a ``variants`` list replaces the variant set;
``hasVariants: false`` removes all variants. Stock changes made here go
through the ledger like any other adjustment.
"""
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import get_session
from shop_admin.db_models import Category, OrderItem, Product, ProductStatus, ProductVariant, StockMovement
from shop_admin.exceptions import ConflictError, NotFoundError, ValidationError
from shop_admin.models import (
    MessageOut, Pagination, ProductIn, ProductList, ProductOut, ProductSearchOut, ProductUpdate, VariantIn,
)
from shop_admin.queries import search_clause
from shop_admin.security import admin_only
from shop_admin.services.stock_adjuster import write_stock
from shop_admin.utils import page_window, slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"], dependencies=[Depends(admin_only)])

PRODUCT_UPDATE_REASON = "Product update"
VARIANTS_REPLACED_REASON = "Variants replaced"


# ============================================================================
# Helpers
# ============================================================================

async def _load_product(db: AsyncSession, product_id: int) -> Product:
    stmt = (
        select(Product)
        .options(selectinload(Product.variants), selectinload(Product.category))
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    product = (await db.execute(stmt)).scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def _ensure_unique(db: AsyncSession, column, value: str, label: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Product.id).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(f"Product {label} already exists: {value}")


async def _ensure_category(db: AsyncSession, category_id: Optional[int]) -> None:
    if category_id is not None and await db.get(Category, category_id) is None:
        raise NotFoundError(f"Category not found: {category_id}")


def _build_variants(variants: List[VariantIn]) -> List[ProductVariant]:
    return [
        ProductVariant(
            name=v.name,
            sku=v.sku or None,
            price=v.price,
            stock=v.stock,
            options=dict(v.options),
        )
        for v in variants
    ]


# ============================================================================
# Endpoints
# ============================================================================

@router.get("", response_model=ProductList)
async def list_products(
    status: Optional[str] = Query(None, description="DRAFT | ACTIVE | ARCHIVED | active"),
    search: Optional[str] = Query(None),
    category: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
):
    filters = []
    if status == "active":
        filters += [Product.is_active.is_(True), Product.status == ProductStatus.ACTIVE]
    elif status:
        try:
            filters.append(Product.status == ProductStatus(status.upper()))
        except ValueError:
            raise ValidationError(f"Unknown product status: {status}")
    if search:
        filters.append(search_clause(search))
    if category is not None:
        filters.append(Product.category_id == category)

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
    return ProductList(
        products=[ProductOut.model_validate(p) for p in products],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/search", response_model=List[ProductSearchOut])
async def search_products(q: str = Query(""), db: AsyncSession = Depends(get_session)):
    if not q.strip():
        return []
    stmt = select(Product).where(search_clause(q)).order_by(Product.name).limit(10)
    return [ProductSearchOut.model_validate(p) for p in (await db.execute(stmt)).scalars().all()]


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int, db: AsyncSession = Depends(get_session)):
    return ProductOut.model_validate(await _load_product(db, product_id))


@router.post("", response_model=ProductOut, status_code=201)
async def create_product(body: ProductIn, db: AsyncSession = Depends(get_session)):
    slug = body.slug or slugify(body.name)
    if not slug:
        raise ValidationError("Cannot derive a slug from the product name")
    await _ensure_unique(db, Product.slug, slug, "slug")
    if body.sku:
        await _ensure_unique(db, Product.sku, body.sku, "SKU")
    await _ensure_category(db, body.category_id)

    variants = _build_variants(body.variants) if body.has_variants else []
    product = Product(
        name=body.name,
        slug=slug,
        description=body.description,
        sku=body.sku or None,
        price=body.price,
        compare_price=body.compare_price,
        stock=sum(v.stock for v in variants) if variants else body.stock,
        low_stock=body.low_stock,
        status=body.status,
        is_active=body.is_active,
        images=list(body.images),
        tags=list(body.tags),
        category_id=body.category_id,
        variants=variants,
    )
    db.add(product)
    await db.flush()
    logger.info(f"Product created: {product.id} {slug} ({len(variants)} variant(s))")
    return ProductOut.model_validate(await _load_product(db, product.id))


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(product_id: int, body: ProductUpdate, db: AsyncSession = Depends(get_session)):
    product = await _load_product(db, product_id)
    data = body.model_dump(exclude_unset=True, exclude={"variants", "has_variants"})

    if data.get("slug"):
        await _ensure_unique(db, Product.slug, data["slug"], "slug", exclude_id=product_id)
    if data.get("sku"):
        await _ensure_unique(db, Product.sku, data["sku"], "SKU", exclude_id=product_id)
    if "category_id" in data:
        await _ensure_category(db, data["category_id"])

    new_stock = data.pop("stock", None)
    for key, value in data.items():
        if value is None and key in ("name", "slug", "price", "low_stock", "status", "is_active", "images", "tags"):
            continue
        setattr(product, key, value)

    if body.has_variants and body.variants is not None:
        # replace the whole variant set
        product.variants.clear()
        await db.flush()
        product.variants.extend(_build_variants(body.variants))
        await db.flush()
        if product.variants:
            total = sum(v.stock for v in product.variants)
            if total != product.stock:
                await write_stock(db, product, None, total, VARIANTS_REPLACED_REASON)
        logger.info(f"Product {product_id}: variants replaced ({len(product.variants)})")
    elif body.has_variants is False and product.variants:
        product.variants.clear()
        await db.flush()
        logger.info(f"Product {product_id}: switched to simple product")

    # the aggregate of a product with variants only moves with its variants
    if new_stock is not None and not product.variants and new_stock != product.stock:
        await write_stock(db, product, None, new_stock, PRODUCT_UPDATE_REASON)

    await db.flush()
    return ProductOut.model_validate(await _load_product(db, product_id))


@router.delete("/{product_id}", response_model=MessageOut)
async def delete_product(product_id: int, db: AsyncSession = Depends(get_session)):
    product = await _load_product(db, product_id)

    orders = (await db.execute(
        select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id)
    )).scalar_one()
    if orders > 0:
        raise ConflictError("Cannot delete product with existing orders. Archive it instead.")
    movements = (await db.execute(
        select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id)
    )).scalar_one()
    if movements > 0:
        raise ConflictError("Cannot delete product with stock history. Archive it instead.")

    await db.delete(product)
    logger.info(f"Product deleted: {product_id}")
    return MessageOut(message="Product deleted successfully")
