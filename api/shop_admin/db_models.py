# shop_admin/db_models.py
"""
SQLAlchemy ORM models for Shop Admin.

Structured sub-objects (images, tags, variant options) are plain lists/dicts
on the models; ``JSONText`` serializes them to text at the column boundary.
"""
from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Any
import enum
import json

from sqlalchemy import (
    String, Integer, Boolean, Text, DateTime,
    Numeric, ForeignKey, Index, CheckConstraint, Table, Column,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from shop_admin.database import Base, BigIntPK


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ids of deleted rows must not come back: ledger references point at them
SQLITE_AUTOINCREMENT = {"sqlite_autoincrement": True}


class JSONText(TypeDecorator):
    """JSON document stored as TEXT, exposed as list / dict."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value: Optional[str], dialect) -> Any:
        if value is None or value == "":
            return None
        return json.loads(value)


# ============================================================================
# ENUMS
# ============================================================================

class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    STAFF = "STAFF"


class ProductStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    COD = "COD"
    BANK_TRANSFER = "BANK_TRANSFER"
    CCP = "CCP"
    EDAHABIA = "EDAHABIA"


# ============================================================================
# MIXIN for updated_at
# ============================================================================

class TimestampMixin:
    """Mixin for created_at and updated_at columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


# ============================================================================
# 1. USERS
# ============================================================================

class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role"),
        default=UserRole.ADMIN,
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (SQLITE_AUTOINCREMENT,)

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)


# ============================================================================
# 2. CATEGORIES
# ============================================================================

class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(Text)
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id", ondelete="RESTRICT"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    parent: Mapped[Optional["Category"]] = relationship(remote_side="Category.id", back_populates="children")
    children: Mapped[List["Category"]] = relationship(back_populates="parent")
    products: Mapped[List["Product"]] = relationship(back_populates="category")
    collections: Mapped[List["Collection"]] = relationship(back_populates="category")

    __table_args__ = (
        Index("idx_categories_parent", "parent_id"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 3. COLLECTIONS
# ============================================================================

collection_products = Table(
    "collection_products",
    Base.metadata,
    Column("collection_id", ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_collection_products_product", "product_id"),
)


class Collection(TimestampMixin, Base):
    """Curated product group (season, campaign...), optionally filed under a category."""
    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    category: Mapped[Optional["Category"]] = relationship(back_populates="collections")
    products: Mapped[List["Product"]] = relationship(
        secondary=collection_products,
        back_populates="collections",
        order_by="Product.id",
    )

    __table_args__ = (
        Index("idx_collections_category", "category_id"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 4. PRODUCTS
# ============================================================================

class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    sku: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    compare_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    # denormalized: sum of variant stocks when the product has variants
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    low_stock: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    status: Mapped[ProductStatus] = mapped_column(
        SQLEnum(ProductStatus, name="product_status"),
        default=ProductStatus.DRAFT,
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    images: Mapped[list] = mapped_column(JSONText, default=list, nullable=False)
    tags: Mapped[list] = mapped_column(JSONText, default=list, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id", ondelete="SET NULL"))

    # Relationships
    category: Mapped[Optional["Category"]] = relationship(back_populates="products")
    variants: Mapped[List["ProductVariant"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductVariant.id",
    )
    collections: Mapped[List["Collection"]] = relationship(
        secondary=collection_products,
        back_populates="products",
    )

    __table_args__ = (
        CheckConstraint("low_stock >= 0", name="chk_products_low_stock_non_negative"),
        Index("idx_products_category", "category_id"),
        Index("idx_products_active", "is_active"),
        SQLITE_AUTOINCREMENT,
    )

    @property
    def has_variants(self) -> bool:
        return len(self.variants) > 0

    @property
    def total_stock(self) -> int:
        """Stock derived from variants when present, else the product counter."""
        if self.variants:
            return sum(v.stock for v in self.variants)
        return self.stock


# ============================================================================
# 5. PRODUCT VARIANTS
# ============================================================================

class ProductVariant(TimestampMixin, Base):
    __tablename__ = "product_variants"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    options: Mapped[dict] = mapped_column(JSONText, default=dict, nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="variants")

    __table_args__ = (
        Index("idx_product_variants_product", "product_id"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 6. STOCK MOVEMENTS (IMMUTABLE LEDGER)
# ============================================================================

class StockMovement(Base):
    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    variant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("product_variants.id", ondelete="SET NULL"))
    type: Mapped[MovementType] = mapped_column(
        SQLEnum(MovementType, name="movement_type"),
        nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(viewonly=True)
    variant: Mapped[Optional["ProductVariant"]] = relationship(viewonly=True)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="chk_movement_quantity_non_negative"),
        Index("idx_movements_product", "product_id"),
        Index("idx_movements_type", "type"),
        Index("idx_movements_created", "created_at"),
        Index("idx_movements_reference", "reference"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 7. CUSTOMERS
# ============================================================================

class Customer(TimestampMixin, Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    wilaya: Mapped[Optional[str]] = mapped_column(String(100))
    commune: Mapped[Optional[str]] = mapped_column(String(100))
    address: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships
    orders: Mapped[List["Order"]] = relationship(back_populates="customer")

    __table_args__ = (
        Index("idx_customers_phone", "phone"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 8. ORDERS
# ============================================================================

class Order(TimestampMixin, Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method"),
        default=PaymentMethod.COD,
        nullable=False
    )
    shipping_method: Mapped[str] = mapped_column(String(100), default="standard", nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Relationships
    customer: Mapped["Customer"] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    __table_args__ = (
        Index("idx_orders_status", "status"),
        Index("idx_orders_customer", "customer_id"),
        Index("idx_orders_created", "created_at"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 9. ORDER ITEMS
# ============================================================================

class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    variant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("product_variants.id", ondelete="SET NULL"))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # snapshot at order time
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    product_sku: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    variant_options: Mapped[Optional[dict]] = mapped_column(JSONText)

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship()
    variant: Mapped[Optional["ProductVariant"]] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_qty_positive"),
        Index("idx_order_items_order", "order_id"),
        Index("idx_order_items_product", "product_id"),
        SQLITE_AUTOINCREMENT,
    )


# ============================================================================
# 10. HOME PAGE CONTENT
# ============================================================================

class HomeSection(TimestampMixin, Base):
    """
    One block of the storefront home page (hero, categories, collection
    carousel...). ``content`` is a free-form document interpreted by the
    storefront according to ``type``.
    """
    __tablename__ = "home_sections"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[dict] = mapped_column(JSONText, default=dict, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order: Mapped[int] = mapped_column("sort_order", Integer, default=0, nullable=False)

    __table_args__ = (
        Index("idx_home_sections_order", "sort_order"),
        SQLITE_AUTOINCREMENT,
    )
