# shop_admin/routers/collections.py
"""
Collections: curated product groups, optionally filed under a category.

Membership is many-to-many and set through ``productIds``; a collection that
still holds products cannot be deleted.
"""
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_admin.database import get_session
from shop_admin.db_models import Category, Collection, Product, collection_products
from shop_admin.exceptions import ConflictError, NotFoundError, ValidationError
from shop_admin.models import (
    CollectionDetail, CollectionIn, CollectionListItem, CollectionOut, CollectionProductOut,
    CollectionUpdate, MessageOut, ProductOut,
)
from shop_admin.security import admin_only
from shop_admin.utils import slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["Collections"], dependencies=[Depends(admin_only)])


async def _product_count(db: AsyncSession, collection_id: int) -> int:
    return (await db.execute(
        select(func.count(collection_products.c.product_id))
        .where(collection_products.c.collection_id == collection_id)
    )).scalar_one()


async def _load_collection(db: AsyncSession, collection_id: int, with_variants: bool = False) -> Collection:
    products = selectinload(Collection.products)
    if with_variants:
        products = products.options(selectinload(Product.variants), selectinload(Product.category))
    stmt = (
        select(Collection)
        .options(selectinload(Collection.category), products)
        .where(Collection.id == collection_id)
        .execution_options(populate_existing=True)
    )
    collection = (await db.execute(stmt)).scalar_one_or_none()
    if collection is None:
        raise NotFoundError("Collection not found")
    return collection


async def _ensure_unique_slug(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Collection.id).where(Collection.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Collection.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(f"Collection slug already exists: {slug}")


async def _ensure_category(db: AsyncSession, category_id: Optional[int]) -> None:
    if category_id is not None and await db.get(Category, category_id) is None:
        raise NotFoundError(f"Category not found: {category_id}")


async def _resolve_products(db: AsyncSession, product_ids: List[int]) -> List[Product]:
    wanted = list(dict.fromkeys(product_ids))
    if not wanted:
        return []
    found = (await db.execute(select(Product).where(Product.id.in_(wanted)))).scalars().all()
    by_id = {p.id: p for p in found}
    missing = [pid for pid in wanted if pid not in by_id]
    if missing:
        raise NotFoundError(f"Product not found: {missing[0]}", {"missing": missing})
    return [by_id[pid] for pid in wanted]


def _out(collection: Collection, count: int) -> CollectionOut:
    return CollectionOut.model_validate(collection).model_copy(update={"product_count": count})


@router.get("", response_model=List[CollectionListItem])
async def list_collections(
    include_products: bool = Query(False, alias="includeProducts"),
    db: AsyncSession = Depends(get_session),
):
    """Newest first; ``includeProducts`` adds the active products of each collection."""
    counts = dict((await db.execute(
        select(collection_products.c.collection_id, func.count(collection_products.c.product_id))
        .group_by(collection_products.c.collection_id)
    )).all())

    options = [selectinload(Collection.category)]
    if include_products:
        options.append(selectinload(Collection.products))
    stmt = select(Collection).options(*options).order_by(Collection.updated_at.desc(), Collection.id.desc())
    collections = (await db.execute(stmt)).scalars().all()

    items = []
    for c in collections:
        products = None
        if include_products:
            products = [CollectionProductOut.model_validate(p) for p in c.products if p.is_active]
        items.append(CollectionListItem(**_out(c, counts.get(c.id, 0)).model_dump(), products=products))
    return items


@router.get("/{collection_id}", response_model=CollectionDetail)
async def get_collection(collection_id: int, db: AsyncSession = Depends(get_session)):
    collection = await _load_collection(db, collection_id, with_variants=True)
    return CollectionDetail(
        **_out(collection, len(collection.products)).model_dump(),
        products=[ProductOut.model_validate(p) for p in collection.products if p.is_active],
    )


@router.post("", response_model=CollectionOut, status_code=201)
async def create_collection(body: CollectionIn, db: AsyncSession = Depends(get_session)):
    slug = body.slug or slugify(body.name)
    if not slug:
        raise ValidationError("Cannot derive a slug from the collection name")
    await _ensure_unique_slug(db, slug)
    await _ensure_category(db, body.category_id)
    products = await _resolve_products(db, body.product_ids)

    collection = Collection(
        name=body.name,
        slug=slug,
        description=body.description,
        image=body.image,
        category_id=body.category_id,
        is_active=body.is_active,
        products=products,
    )
    db.add(collection)
    await db.flush()
    logger.info(f"Collection created: {collection.id} {slug} ({len(products)} product(s))")

    collection = await _load_collection(db, collection.id)
    return _out(collection, len(collection.products))


@router.put("/{collection_id}", response_model=CollectionOut)
async def update_collection(collection_id: int, body: CollectionUpdate, db: AsyncSession = Depends(get_session)):
    collection = await _load_collection(db, collection_id)
    data = body.model_dump(exclude_unset=True, exclude={"product_ids"})

    if data.get("slug"):
        await _ensure_unique_slug(db, data["slug"], exclude_id=collection_id)
    if "category_id" in data:
        await _ensure_category(db, data["category_id"])

    for key, value in data.items():
        if value is None and key in ("name", "slug", "is_active"):
            continue
        setattr(collection, key, value)
    if body.product_ids is not None:
        collection.products = await _resolve_products(db, body.product_ids)
        logger.info(f"Collection {collection_id}: {len(collection.products)} product(s)")
    await db.flush()

    collection = await _load_collection(db, collection_id)
    return _out(collection, len(collection.products))


@router.delete("/{collection_id}", response_model=MessageOut)
async def delete_collection(collection_id: int, db: AsyncSession = Depends(get_session)):
    collection = await _load_collection(db, collection_id)

    if await _product_count(db, collection_id) > 0:
        raise ConflictError("Cannot delete collection with products. Remove products first.")

    await db.delete(collection)
    logger.info(f"Collection deleted: {collection_id}")
    return MessageOut(message="Collection deleted successfully")
