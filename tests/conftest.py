"""Pytest configuration and fixtures."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from shop_admin.create_admin import create_admin
from shop_admin.database import Database
from shop_admin.db_models import (
    Category, Customer, Product, ProductStatus, ProductVariant, StockMovement,
)
from shop_admin.main import create_app
from shop_admin.security import create_access_token
from shop_admin.settings import Settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    """Settings for an in-memory SQLite database."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        DATA_ROOT=tmp_path,
        JWT_SECRET="test-secret-0123456789abcdef0123456789abcdef",
        ALLOWED_ORIGINS="http://testserver",
        ORDER_NUMBER_PREFIX="BRK-",
        VARIANT_LOW_STOCK_THRESHOLD=5,
        ALLOW_OVERSELL=True,
    )


@pytest.fixture
async def database(settings):
    """Fresh schema per test."""
    db = Database.from_settings(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def admin_user(database):
    return await create_admin(database, "admin@shop.test", "secret123", "Admin")


@pytest.fixture
async def catalog(database):
    """
    One category, one customer and three products:
    - helmet: simple, stock 5, low_stock 2
    - gloves: simple, stock 10
    - jersey: variants M (stock 3, own price) and L (stock 8), aggregate 11
    """
    async with database.unit_of_work() as session:
        category = Category(name="Cycling", slug="cycling")
        customer = Customer(
            first_name="Amine",
            last_name="Belkacem",
            email="amine@example.com",
            phone="0550123456",
            wilaya="Alger",
            commune="Bab Ezzouar",
            address="12 rue des Fleurs",
        )
        helmet = Product(
            name="Helmet", slug="helmet", sku="HLM-1", price=Decimal("2500.00"),
            stock=5, low_stock=2, status=ProductStatus.ACTIVE, category=category,
            images=["helmet-front.jpg"], tags=["safety"],
        )
        gloves = Product(
            name="Gloves", slug="gloves", sku="GLV-1", price=Decimal("900.00"),
            stock=10, low_stock=5, status=ProductStatus.ACTIVE, category=category,
        )
        jersey = Product(
            name="Jersey", slug="jersey", sku="JRS", price=Decimal("3000.00"),
            stock=11, low_stock=5, status=ProductStatus.ACTIVE, category=category,
            variants=[
                ProductVariant(name="M", sku="JRS-M", price=Decimal("3200.00"), stock=3, options={"size": "M"}),
                ProductVariant(name="L", sku="JRS-L", stock=8, options={"size": "L"}),
            ],
        )
        session.add_all([category, customer, helmet, gloves, jersey])
        await session.flush()

        ids = SimpleNamespace(
            category=category.id,
            customer=customer.id,
            helmet=helmet.id,
            gloves=gloves.id,
            jersey=jersey.id,
            jersey_m=jersey.variants[0].id,
            jersey_l=jersey.variants[1].id,
        )
    return ids


@pytest.fixture
def reload(database):
    """Read one row in a fresh session."""
    async def _reload(model, pk):
        async with database.session_factory() as session:
            return await session.get(model, pk)
    return _reload


@pytest.fixture
def movements_for(database):
    """All ledger rows of a product, oldest first."""
    async def _movements(product_id):
        async with database.session_factory() as session:
            rows = await session.execute(
                select(StockMovement)
                .where(StockMovement.product_id == product_id)
                .order_by(StockMovement.id)
            )
            return list(rows.scalars().all())
    return _movements


@pytest.fixture
def app(settings, database):
    return create_app(settings, database)


@pytest.fixture
def auth_headers(settings, admin_user):
    token = create_access_token(admin_user.id, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(app, auth_headers):
    """HTTP client authenticated as admin."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver", headers=auth_headers) as c:
        yield c


@pytest.fixture
async def anon_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
