# shop_admin/routers/categories.py
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shop_admin.database import get_session
from shop_admin.db_models import Category, Product
from shop_admin.exceptions import ConflictError, NotFoundError, ValidationError
from shop_admin.models import CategoryIn, CategoryOut, CategoryUpdate, MessageOut
from shop_admin.security import admin_only
from shop_admin.utils import slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Categories"], dependencies=[Depends(admin_only)])


async def _product_count(db: AsyncSession, category_id: int) -> int:
    return (await db.execute(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    )).scalar_one()


async def _get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def _ensure_unique_slug(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Category.id).where(Category.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(f"Category slug already exists: {slug}")


@router.get("", response_model=List[CategoryOut])
async def list_categories(
    active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_session),
):
    stmt = (
        select(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.name)
    )
    if active is not None:
        stmt = stmt.where(Category.is_active == active)

    rows = (await db.execute(stmt)).all()
    return [
        CategoryOut.model_validate(cat).model_copy(update={"product_count": count})
        for cat, count in rows
    ]


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: int, db: AsyncSession = Depends(get_session)):
    category = await _get_category(db, category_id)
    count = await _product_count(db, category_id)
    return CategoryOut.model_validate(category).model_copy(update={"product_count": count})


@router.post("", response_model=CategoryOut, status_code=201)
async def create_category(body: CategoryIn, db: AsyncSession = Depends(get_session)):
    slug = body.slug or slugify(body.name)
    if not slug:
        raise ValidationError("Cannot derive a slug from the category name")
    await _ensure_unique_slug(db, slug)
    if body.parent_id is not None:
        await _get_category(db, body.parent_id)

    category = Category(
        name=body.name,
        slug=slug,
        description=body.description,
        image=body.image,
        parent_id=body.parent_id,
        is_active=body.is_active,
    )
    db.add(category)
    await db.flush()
    logger.info(f"Category created: {category.id} {slug}")
    return CategoryOut.model_validate(category)


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(category_id: int, body: CategoryUpdate, db: AsyncSession = Depends(get_session)):
    category = await _get_category(db, category_id)
    data = body.model_dump(exclude_unset=True)

    if data.get("slug"):
        await _ensure_unique_slug(db, data["slug"], exclude_id=category_id)
    if data.get("parent_id") is not None:
        if data["parent_id"] == category_id:
            raise ValidationError("A category cannot be its own parent")
        await _get_category(db, data["parent_id"])

    for key, value in data.items():
        if key in ("name", "slug") and not value:
            continue
        setattr(category, key, value)
    await db.flush()

    count = await _product_count(db, category_id)
    return CategoryOut.model_validate(category).model_copy(update={"product_count": count})


@router.delete("/{category_id}", response_model=MessageOut)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_session)):
    category = await _get_category(db, category_id)

    if await _product_count(db, category_id) > 0:
        raise ConflictError("Cannot delete category with products. Move or delete them first.")
    children = (await db.execute(
        select(func.count(Category.id)).where(Category.parent_id == category_id)
    )).scalar_one()
    if children > 0:
        raise ConflictError("Cannot delete category with subcategories")

    await db.delete(category)
    logger.info(f"Category deleted: {category_id}")
    return MessageOut(message="Category deleted successfully")
