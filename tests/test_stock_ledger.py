"""Tests for the stock ledger."""

import pytest

from shop_admin.db_models import MovementType
from shop_admin.exceptions import ValidationError
from shop_admin.services import StockAdjuster, stock_ledger

pytestmark = pytest.mark.anyio


class TestRecord:

    async def test_negative_quantity_rejected(self, database, catalog, movements_for):
        """Quantities are magnitudes; negatives are refused."""
        with pytest.raises(ValidationError):
            async with database.unit_of_work() as session:
                await stock_ledger.record(
                    session, catalog.helmet, None, MovementType.OUT,
                    quantity=-2, previous_stock=5, new_stock=3, reason="Order",
                )

        assert await movements_for(catalog.helmet) == []

    async def test_record_adds_row_to_unit_of_work(self, database, catalog, movements_for):
        async with database.unit_of_work() as session:
            movement = await stock_ledger.record(
                session, catalog.helmet, None, MovementType.IN,
                quantity=3, previous_stock=5, new_stock=8, reason="Supplier delivery", reference="PO-7",
            )
            assert movement.id is not None

        [row] = await movements_for(catalog.helmet)
        assert row.reference == "PO-7"
        assert row.created_at is not None

    def test_movement_type_for(self):
        assert stock_ledger.movement_type_for(2, 5) == MovementType.IN
        assert stock_ledger.movement_type_for(5, 2) == MovementType.OUT
        assert stock_ledger.movement_type_for(5, 5) == MovementType.OUT


class TestQuery:

    async def test_newest_first_with_pagination(self, database, catalog):
        """Pages are ordered newest first and the total covers all rows."""
        adjuster = StockAdjuster(database)
        for level in (6, 7, 8):
            await adjuster.set_stock(catalog.helmet, None, level)

        async with database.session_factory() as session:
            first, total = await stock_ledger.query(session, product_id=catalog.helmet, page=1, limit=2)
            second, _ = await stock_ledger.query(session, product_id=catalog.helmet, page=2, limit=2)

        assert total == 3
        assert [m.new_stock for m in first] == [8, 7]
        assert [m.new_stock for m in second] == [6]
        assert first[0].product.name == "Helmet"

    async def test_filter_by_type(self, database, catalog):
        adjuster = StockAdjuster(database)
        await adjuster.set_stock(catalog.helmet, None, 9)
        await adjuster.set_stock(catalog.gloves, None, 2)

        async with database.session_factory() as session:
            rows, total = await stock_ledger.query(session, type=MovementType.OUT)

        assert total == 1
        assert rows[0].product_id == catalog.gloves
