# shop_admin/models.py
"""
Request / response schemas. Wire format is camelCase, Python side is snake_case.
"""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shop_admin.db_models import (
    MovementType, OrderStatus, PaymentMethod, PaymentStatus, ProductStatus, UserRole,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)


class MessageOut(CamelModel):
    message: str


# ============================================================================
# Auth
# ============================================================================

class LoginIn(CamelModel):
    email: str
    password: str


class RegisterIn(CamelModel):
    email: str
    password: str = Field(min_length=6)
    name: Optional[str] = None
    role: UserRole = UserRole.ADMIN


class UserOut(CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime


class TokenOut(CamelModel):
    token: str
    user: UserOut


# ============================================================================
# Categories
# ============================================================================

class CategoryIn(CamelModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    is_active: bool = True


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryRef(CamelModel):
    id: int
    name: str


class CategoryOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    is_active: bool
    product_count: int = 0
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Products
# ============================================================================

class VariantIn(CamelModel):
    name: str = Field(min_length=1)
    sku: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    options: Dict[str, Any] = Field(default_factory=dict)


class ProductIn(CamelModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    price: Decimal = Field(ge=0)
    compare_price: Optional[Decimal] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    low_stock: int = Field(default=5, ge=0)
    status: ProductStatus = ProductStatus.DRAFT
    is_active: bool = True
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    category_id: Optional[int] = None
    has_variants: bool = False
    variants: List[VariantIn] = Field(default_factory=list)


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    compare_price: Optional[Decimal] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    low_stock: Optional[int] = Field(default=None, ge=0)
    status: Optional[ProductStatus] = None
    is_active: Optional[bool] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    category_id: Optional[int] = None
    has_variants: Optional[bool] = None
    variants: Optional[List[VariantIn]] = None


class VariantOut(CamelModel):
    id: int
    name: str
    sku: Optional[str] = None
    price: Optional[float] = None
    stock: int
    options: Dict[str, Any] = Field(default_factory=dict)


class ProductOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    sku: Optional[str] = None
    price: float
    compare_price: Optional[float] = None
    stock: int
    low_stock: int
    status: ProductStatus
    is_active: bool
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    category_id: Optional[int] = None
    category: Optional[CategoryRef] = None
    has_variants: bool
    variants: List[VariantOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ProductSearchOut(CamelModel):
    id: int
    name: str
    sku: Optional[str] = None
    price: float
    images: List[str] = Field(default_factory=list)


class ProductList(CamelModel):
    products: List[ProductOut]
    pagination: Pagination


# ============================================================================
# Collections
# ============================================================================

class CollectionIn(CamelModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    is_active: bool = True
    product_ids: List[int] = Field(default_factory=list)


class CollectionUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None
    # replaces the membership when sent
    product_ids: Optional[List[int]] = None


class CollectionProductOut(CamelModel):
    id: int
    name: str
    price: float
    images: List[str] = Field(default_factory=list)


class CollectionOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    category_id: Optional[int] = None
    category: Optional[CategoryRef] = None
    is_active: bool
    product_count: int = 0
    created_at: datetime
    updated_at: datetime


class CollectionListItem(CollectionOut):
    products: Optional[List[CollectionProductOut]] = None


class CollectionDetail(CollectionOut):
    products: List[ProductOut] = Field(default_factory=list)


# ============================================================================
# Inventory / stock
# ============================================================================

class StockUpdateIn(CamelModel):
    product_id: int
    variant_id: Optional[int] = None
    # range is checked by the adjuster so the error carries the ledger wording
    new_stock: int
    reason: Optional[str] = None


class BulkStockItem(CamelModel):
    product_id: int
    variant_id: Optional[int] = None
    new_stock: int


class BulkStockUpdateIn(CamelModel):
    updates: List[BulkStockItem] = Field(min_length=1)
    reason: Optional[str] = None


class BulkFailure(CamelModel):
    index: int
    product_id: int
    variant_id: Optional[int] = None
    error: str


class BulkStockResult(CamelModel):
    message: str
    updated_count: int
    failed_count: int
    failures: List[BulkFailure] = Field(default_factory=list)


class StockUpdateOut(CamelModel):
    message: str
    movement_id: int
    previous_stock: int
    new_stock: int


class InventoryOverview(CamelModel):
    total_products: int
    low_stock_products: int
    out_of_stock_products: int
    total_categories: int


class InventoryProductOut(ProductOut):
    total_stock: int
    is_low_stock: bool


class InventoryProductList(CamelModel):
    products: List[InventoryProductOut]
    pagination: Pagination


class StockProductOut(ProductOut):
    effective_stock: int
    is_low_stock: bool


class ProductRef(CamelModel):
    id: int
    name: str
    sku: Optional[str] = None


class MovementOut(CamelModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reason: str
    reference: Optional[str] = None
    created_at: datetime
    product: Optional[ProductRef] = None
    variant: Optional[ProductRef] = None


class MovementList(CamelModel):
    movements: List[MovementOut]
    pagination: Pagination


class StockAlert(CamelModel):
    type: str
    product_id: int
    product_name: str
    variant_id: Optional[int] = None
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    current_stock: int
    low_stock_threshold: int
    severity: str


class SyncStockOut(CamelModel):
    message: str
    synced_count: int


# ============================================================================
# Customers
# ============================================================================

class CustomerIn(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: str = Field(min_length=1)
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None


class CustomerUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, min_length=1)
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None


class CustomerOut(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: str
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CustomerListItem(CustomerOut):
    order_count: int = 0


class CustomerList(CamelModel):
    customers: List[CustomerListItem]
    pagination: Pagination


class CustomerOrderRef(CamelModel):
    id: int
    order_number: str
    status: OrderStatus
    total: float
    created_at: datetime


class CustomerDetail(CustomerOut):
    orders: List[CustomerOrderRef] = Field(default_factory=list)


# ============================================================================
# Orders
# ============================================================================

class OrderItemIn(CamelModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(gt=0)
    # accepted for compatibility, the catalog price is always used
    unit_price: Optional[Decimal] = None


class OrderCreateIn(CamelModel):
    customer_id: int
    items: List[OrderItemIn] = Field(min_length=1)
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.COD
    shipping_method: str = "standard"
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class OrderUpdateIn(CamelModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class OrderItemOut(CamelModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    quantity: int
    unit_price: float
    total_price: float
    product_name: str
    product_sku: str
    variant_options: Optional[Dict[str, Any]] = None


class OrderOut(CamelModel):
    id: int
    order_number: str
    customer_id: int
    customer: Optional[CustomerOut] = None
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    shipping_method: str
    subtotal: float
    shipping_cost: float
    total: float
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = Field(default_factory=list)


class OrderList(CamelModel):
    orders: List[OrderOut]
    pagination: Pagination


# ============================================================================
# Home page content
# ============================================================================

class HomeSectionIn(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    type: str = Field(min_length=1)
    content: Dict[str, Any] = Field(default_factory=dict)
    is_visible: bool = True
    order: int = 0


class HomeSectionUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[str] = Field(default=None, min_length=1)
    content: Optional[Dict[str, Any]] = None
    is_visible: Optional[bool] = None
    order: Optional[int] = None


class HomeSectionOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    type: str
    content: Dict[str, Any] = Field(default_factory=dict)
    is_visible: bool
    order: int
    created_at: datetime
    updated_at: datetime


class ReorderIn(CamelModel):
    section_ids: List[int] = Field(min_length=1)


# ============================================================================
# Dashboard
# ============================================================================

class DashboardOrderRef(CamelModel):
    id: int
    order_number: str
    status: OrderStatus
    total: float
    customer_name: str
    created_at: datetime


class DashboardLowStock(CamelModel):
    id: int
    name: str
    sku: Optional[str] = None
    total_stock: int
    has_variants: bool


class TopProduct(CamelModel):
    product_id: int
    product_name: str
    sold_quantity: int
    revenue: float


class RevenuePoint(CamelModel):
    date: str
    total: float


class DashboardStats(CamelModel):
    period_days: int
    total_products: int
    total_customers: int
    total_orders: int
    # lowercase status -> count, every status present
    orders_by_status: Dict[str, int]
    total_revenue: float
    recent_orders: List[DashboardOrderRef]
    low_stock_products: List[DashboardLowStock]
    top_products: List[TopProduct]
    revenue_chart: List[RevenuePoint]
