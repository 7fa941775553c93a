# shop_admin/routers/content.py
"""
Storefront home page sections.

The storefront reads the visible sections without a token; everything else
is admin only. ``order`` positions a section on the page, lowest first.
"""
from __future__ import annotations
from typing import List
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shop_admin.database import get_session
from shop_admin.db_models import HomeSection
from shop_admin.exceptions import NotFoundError, ValidationError
from shop_admin.models import HomeSectionIn, HomeSectionOut, HomeSectionUpdate, MessageOut, ReorderIn
from shop_admin.security import admin_only

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["Content"])

ADMIN = [Depends(admin_only)]


async def _get_section(db: AsyncSession, section_id: int) -> HomeSection:
    section = await db.get(HomeSection, section_id)
    if section is None:
        raise NotFoundError("Home section not found")
    return section


def _ordered():
    return select(HomeSection).order_by(HomeSection.order, HomeSection.id)


@router.get("/home-sections", response_model=List[HomeSectionOut])
async def visible_sections(db: AsyncSession = Depends(get_session)):
    stmt = _ordered().where(HomeSection.is_visible.is_(True))
    return [HomeSectionOut.model_validate(s) for s in (await db.execute(stmt)).scalars().all()]


@router.get("/home-sections/all", response_model=List[HomeSectionOut], dependencies=ADMIN)
async def all_sections(db: AsyncSession = Depends(get_session)):
    return [HomeSectionOut.model_validate(s) for s in (await db.execute(_ordered())).scalars().all()]


@router.patch("/home-sections/reorder", response_model=MessageOut, dependencies=ADMIN)
async def reorder_sections(body: ReorderIn, db: AsyncSession = Depends(get_session)):
    """Give each listed section its index as ``order``; all or nothing."""
    if len(set(body.section_ids)) != len(body.section_ids):
        raise ValidationError("Duplicate section ids", {"sectionIds": body.section_ids})

    rows = (await db.execute(
        select(HomeSection).where(HomeSection.id.in_(body.section_ids))
    )).scalars().all()
    by_id = {s.id: s for s in rows}
    missing = [sid for sid in body.section_ids if sid not in by_id]
    if missing:
        raise NotFoundError(f"Home section not found: {missing[0]}", {"missing": missing})

    for position, section_id in enumerate(body.section_ids):
        by_id[section_id].order = position
    await db.flush()
    logger.info(f"Home sections reordered: {body.section_ids}")
    return MessageOut(message="Sections reordered successfully")


@router.get("/home-sections/{section_id}", response_model=HomeSectionOut, dependencies=ADMIN)
async def get_section(section_id: int, db: AsyncSession = Depends(get_session)):
    return HomeSectionOut.model_validate(await _get_section(db, section_id))


@router.post("/home-sections", response_model=HomeSectionOut, status_code=201, dependencies=ADMIN)
async def create_section(body: HomeSectionIn, db: AsyncSession = Depends(get_session)):
    section = HomeSection(
        title=body.title,
        description=body.description,
        type=body.type,
        content=dict(body.content),
        is_visible=body.is_visible,
        order=body.order,
    )
    db.add(section)
    await db.flush()
    logger.info(f"Home section created: {section.id} ({section.type})")
    return HomeSectionOut.model_validate(section)


@router.put("/home-sections/{section_id}", response_model=HomeSectionOut, dependencies=ADMIN)
async def update_section(section_id: int, body: HomeSectionUpdate, db: AsyncSession = Depends(get_session)):
    section = await _get_section(db, section_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is None and key != "description":
            continue
        setattr(section, key, value)
    await db.flush()
    return HomeSectionOut.model_validate(section)


@router.delete("/home-sections/{section_id}", response_model=MessageOut, dependencies=ADMIN)
async def delete_section(section_id: int, db: AsyncSession = Depends(get_session)):
    section = await _get_section(db, section_id)
    await db.delete(section)
    logger.info(f"Home section deleted: {section_id}")
    return MessageOut(message="Home section deleted successfully")
