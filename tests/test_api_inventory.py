"""HTTP tests for /api/inventory and /api/stock."""

import logging

import pytest

from shop_admin.db_models import Product, ProductVariant

pytestmark = pytest.mark.anyio


class TestStockEndpoints:

    async def test_patch_stock(self, client, catalog, reload):
        resp = await client.patch("/api/inventory/stock", json={
            "productId": catalog.helmet, "newStock": 9, "reason": "Inventory count",
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["previousStock"] == 5
        assert body["newStock"] == 9
        assert body["movementId"] > 0
        assert (await reload(Product, catalog.helmet)).stock == 9

    async def test_patch_variant_stock(self, client, catalog, reload):
        resp = await client.patch("/api/inventory/stock", json={
            "productId": catalog.jersey, "variantId": catalog.jersey_m, "newStock": 0,
        })

        assert resp.status_code == 200
        assert (await reload(ProductVariant, catalog.jersey_m)).stock == 0
        assert (await reload(Product, catalog.jersey)).stock == 8

    async def test_negative_stock_is_400(self, client, catalog, reload):
        resp = await client.patch("/api/inventory/stock", json={"productId": catalog.helmet, "newStock": -3})

        assert resp.status_code == 400
        assert "negative" in resp.json()["error"]
        assert (await reload(Product, catalog.helmet)).stock == 5

    async def test_unknown_product_is_404(self, client, catalog):
        resp = await client.patch("/api/inventory/stock", json={"productId": 5555, "newStock": 1})

        assert resp.status_code == 404
        assert resp.json()["error"].startswith("Product not found")

    async def test_malformed_body_is_400(self, client, catalog):
        resp = await client.patch("/api/inventory/stock", json={"newStock": 1})

        assert resp.status_code == 400
        assert "error" in resp.json()

    async def test_bulk_partial_failure(self, client, catalog, reload):
        resp = await client.patch("/api/inventory/stock/bulk", json={
            "updates": [
                {"productId": catalog.helmet, "newStock": 0},
                {"productId": catalog.gloves, "newStock": -1},
            ],
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["updatedCount"] == 1
        assert body["failedCount"] == 1
        assert body["failures"][0]["index"] == 1
        assert body["failures"][0]["productId"] == catalog.gloves
        assert (await reload(Product, catalog.helmet)).stock == 0
        assert (await reload(Product, catalog.gloves)).stock == 10

    async def test_bulk_request_is_logged(self, client, catalog, caplog):
        caplog.set_level(logging.INFO, logger="shop_admin")

        await client.patch("/api/inventory/stock/bulk", json={
            "updates": [{"productId": catalog.helmet, "newStock": 3}],
            "reason": "Recount",
        })

        assert "Bulk stock request: 1 item(s), reason='Recount'" in caplog.text


class TestInventoryViews:

    async def test_overview(self, client, catalog):
        resp = await client.get("/api/inventory/overview")

        assert resp.status_code == 200
        assert resp.json() == {
            "totalProducts": 3,
            "lowStockProducts": 1,   # jersey M at 3
            "outOfStockProducts": 0,
            "totalCategories": 1,
        }

    async def test_overview_out_of_stock(self, client, catalog):
        await client.patch("/api/inventory/stock", json={"productId": catalog.helmet, "newStock": 0})
        await client.patch("/api/inventory/stock/bulk", json={"updates": [
            {"productId": catalog.jersey, "variantId": catalog.jersey_m, "newStock": 0},
            {"productId": catalog.jersey, "variantId": catalog.jersey_l, "newStock": 0},
        ]})

        body = (await client.get("/api/inventory/overview")).json()

        assert body["outOfStockProducts"] == 2
        assert body["lowStockProducts"] == 2

    async def test_one_empty_variant_is_not_out_of_stock(self, client, catalog):
        await client.patch("/api/inventory/stock", json={
            "productId": catalog.jersey, "variantId": catalog.jersey_m, "newStock": 0,
        })

        body = (await client.get("/api/inventory/overview")).json()

        assert body["outOfStockProducts"] == 0

    async def test_products_with_totals(self, client, catalog):
        resp = await client.get("/api/inventory/products", params={"limit": 10})

        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 3, "pages": 1}
        jersey = next(p for p in body["products"] if p["id"] == catalog.jersey)
        assert jersey["totalStock"] == 11
        assert jersey["isLowStock"] is True
        assert jersey["hasVariants"] is True
        assert {v["options"]["size"] for v in jersey["variants"]} == {"M", "L"}

    async def test_products_low_stock_filter(self, client, catalog):
        body = (await client.get("/api/inventory/products", params={"status": "low_stock"})).json()

        assert [p["id"] for p in body["products"]] == [catalog.jersey]

    async def test_stock_products_effective_stock(self, client, catalog):
        resp = await client.get("/api/stock/products", params={"lowStock": "true"})

        assert resp.status_code == 200
        [jersey] = resp.json()
        assert jersey["effectiveStock"] == 11
        assert jersey["isLowStock"] is True


class TestLedgerViews:

    async def test_movements_paginated(self, client, catalog):
        for level in (1, 2, 3):
            await client.patch("/api/inventory/stock", json={"productId": catalog.helmet, "newStock": level})

        resp = await client.get("/api/stock/movements", params={"productId": catalog.helmet, "limit": 2})

        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["pages"] == 2
        first = body["movements"][0]
        assert first["newStock"] == 3
        assert first["type"] == "IN"
        assert first["product"]["name"] == "Helmet"

    async def test_movements_type_filter(self, client, catalog):
        await client.patch("/api/inventory/stock", json={"productId": catalog.helmet, "newStock": 1})
        await client.patch("/api/inventory/stock", json={"productId": catalog.gloves, "newStock": 20})

        body = (await client.get("/api/stock/movements", params={"type": "IN"})).json()

        assert [m["productId"] for m in body["movements"]] == [catalog.gloves]

    async def test_alerts(self, client, catalog):
        await client.patch("/api/inventory/stock", json={"productId": catalog.helmet, "newStock": 0})

        alerts = (await client.get("/api/stock/alerts")).json()

        by_type = {(a["type"], a["productId"]): a for a in alerts}
        helmet = by_type[("product", catalog.helmet)]
        assert helmet["severity"] == "critical"
        assert helmet["lowStockThreshold"] == 2
        jersey = by_type[("variant", catalog.jersey)]
        assert jersey["variantId"] == catalog.jersey_m
        assert jersey["severity"] == "warning"
        assert jersey["lowStockThreshold"] == 5
        assert len(alerts) == 2

    async def test_sync_stock(self, client, catalog, database, reload):
        async with database.unit_of_work() as session:
            (await session.get(Product, catalog.jersey)).stock = 99

        resp = await client.post("/api/stock/sync-stock")

        assert resp.status_code == 200
        assert resp.json() == {"message": "Stock synchronization completed", "syncedCount": 1}
        assert (await reload(Product, catalog.jersey)).stock == 11

    async def test_sync_stock_is_logged(self, client, catalog, caplog):
        caplog.set_level(logging.INFO, logger="shop_admin")

        await client.post("/api/stock/sync-stock")

        assert "Stock synchronization requested" in caplog.text
