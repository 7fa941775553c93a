# shop_admin/routers/customers.py
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shop_admin.database import get_session
from shop_admin.db_models import Customer, Order
from shop_admin.exceptions import ConflictError, NotFoundError
from shop_admin.models import (
    CustomerDetail, CustomerIn, CustomerList, CustomerListItem, CustomerOrderRef,
    CustomerOut, CustomerUpdate, MessageOut, Pagination,
)
from shop_admin.security import admin_only
from shop_admin.utils import page_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"], dependencies=[Depends(admin_only)])


def _search_clause(term: str):
    like = f"%{term.strip()}%"
    return or_(
        Customer.first_name.ilike(like),
        Customer.last_name.ilike(like),
        Customer.email.ilike(like),
        Customer.phone.ilike(like),
    )


async def _get_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


@router.get("", response_model=CustomerList)
async def list_customers(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
):
    filters = [_search_clause(search)] if search else []

    total = (await db.execute(select(func.count(Customer.id)).where(*filters))).scalar_one()

    order_count = (
        select(func.count(Order.id)).where(Order.customer_id == Customer.id).scalar_subquery()
    )
    stmt = (
        select(Customer, order_count)
        .where(*filters)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset(page_window(page, limit))
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    customers = [
        CustomerListItem.model_validate(c).model_copy(update={"order_count": n})
        for c, n in rows
    ]
    return CustomerList(customers=customers, pagination=Pagination.build(page, limit, total))


@router.get("/search", response_model=List[CustomerOut])
async def search_customers(q: str = Query(""), db: AsyncSession = Depends(get_session)):
    """Quick lookup for the order form (max 10 hits)."""
    if not q.strip():
        return []
    stmt = select(Customer).where(_search_clause(q)).order_by(Customer.last_name, Customer.first_name).limit(10)
    return [CustomerOut.model_validate(c) for c in (await db.execute(stmt)).scalars().all()]


@router.get("/{customer_id}", response_model=CustomerDetail)
async def get_customer(customer_id: int, db: AsyncSession = Depends(get_session)):
    customer = await _get_customer(db, customer_id)
    orders = (await db.execute(
        select(Order).where(Order.customer_id == customer_id).order_by(Order.created_at.desc(), Order.id.desc())
    )).scalars().all()
    return CustomerDetail.model_validate(
        {**CustomerOut.model_validate(customer).model_dump(),
         "orders": [CustomerOrderRef.model_validate(o) for o in orders]}
    )


@router.post("", response_model=CustomerOut, status_code=201)
async def create_customer(body: CustomerIn, db: AsyncSession = Depends(get_session)):
    customer = Customer(**body.model_dump())
    db.add(customer)
    await db.flush()
    logger.info(f"Customer created: {customer.id}")
    return CustomerOut.model_validate(customer)


@router.put("/{customer_id}", response_model=CustomerOut)
async def update_customer(customer_id: int, body: CustomerUpdate, db: AsyncSession = Depends(get_session)):
    customer = await _get_customer(db, customer_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if key in ("first_name", "last_name", "phone") and value is None:
            continue
        setattr(customer, key, value)
    await db.flush()
    return CustomerOut.model_validate(customer)


@router.delete("/{customer_id}", response_model=MessageOut)
async def delete_customer(customer_id: int, db: AsyncSession = Depends(get_session)):
    customer = await _get_customer(db, customer_id)
    orders = (await db.execute(
        select(func.count(Order.id)).where(Order.customer_id == customer_id)
    )).scalar_one()
    if orders > 0:
        raise ConflictError("Cannot delete customer with existing orders")

    await db.delete(customer)
    logger.info(f"Customer deleted: {customer_id}")
    return MessageOut(message="Customer deleted successfully")
