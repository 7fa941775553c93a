"""Tests for stock aggregation."""

import pytest

from shop_admin.db_models import Product, ProductVariant
from shop_admin.services import StockAggregator
from shop_admin.services.stock_aggregator import recompute_product_stock

pytestmark = pytest.mark.anyio


async def _desync(database, product_id, stock):
    async with database.unit_of_work() as session:
        product = await session.get(Product, product_id)
        product.stock = stock


class TestSyncAll:

    async def test_fixes_drifted_products(self, database, catalog, reload):
        """Products with variants get stock == sum of variant stocks."""
        await _desync(database, catalog.jersey, 0)

        synced = await StockAggregator(database).sync_all()

        assert synced == 1
        assert (await reload(Product, catalog.jersey)).stock == 11

    async def test_idempotent(self, database, catalog):
        await _desync(database, catalog.jersey, 40)
        aggregator = StockAggregator(database)

        assert await aggregator.sync_all() == 1
        assert await aggregator.sync_all() == 0

    async def test_simple_products_untouched(self, database, catalog, reload):
        """Without variants the product's own stock is authoritative."""
        await _desync(database, catalog.helmet, 42)

        assert await StockAggregator(database).sync_all() == 0
        assert (await reload(Product, catalog.helmet)).stock == 42


class TestRecompute:

    async def test_returns_none_without_variants(self, database, catalog):
        async with database.unit_of_work() as session:
            assert await recompute_product_stock(session, catalog.helmet) is None

    async def test_sees_pending_variant_changes(self, database, catalog, reload):
        """Unflushed variant edits in the same session are included in the total."""
        async with database.unit_of_work() as session:
            variant = await session.get(ProductVariant, catalog.jersey_l)
            variant.stock = 1
            assert await recompute_product_stock(session, catalog.jersey) == 4

        assert (await reload(Product, catalog.jersey)).stock == 4
