"""HTTP tests for /api/content home page sections."""

import pytest

pytestmark = pytest.mark.anyio


async def _section(client, title, **extra):
    payload = {"title": title, "type": "hero", "content": {"image": f"{title.lower()}.jpg"}}
    payload.update(extra)
    resp = await client.post("/api/content/home-sections", json=payload)
    assert resp.status_code == 201
    return resp.json()


class TestHomeSections:

    async def test_create(self, client):
        body = await _section(client, "Welcome", order=3, content={"image": "hero.jpg", "cta": {"label": "Shop"}})

        assert body["type"] == "hero"
        assert body["order"] == 3
        assert body["isVisible"] is True
        assert body["content"] == {"image": "hero.jpg", "cta": {"label": "Shop"}}

    async def test_storefront_sees_visible_sections_in_order(self, client, anon_client):
        late = await _section(client, "Late", order=2)
        await _section(client, "Hidden", order=0, isVisible=False)
        early = await _section(client, "Early", order=1)

        resp = await anon_client.get("/api/content/home-sections")

        assert resp.status_code == 200
        assert [s["id"] for s in resp.json()] == [early["id"], late["id"]]

    async def test_admin_sees_all(self, client, anon_client):
        await _section(client, "Shown")
        await _section(client, "Hidden", isVisible=False)

        assert (await anon_client.get("/api/content/home-sections/all")).status_code == 401
        body = (await client.get("/api/content/home-sections/all")).json()
        assert {s["title"] for s in body} == {"Shown", "Hidden"}

    async def test_update(self, client):
        section = await _section(client, "Promo", type="collection")

        resp = await client.put(f"/api/content/home-sections/{section['id']}", json={
            "content": {"items": [1, 2]}, "isVisible": False,
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["content"] == {"items": [1, 2]}
        assert body["isVisible"] is False
        assert body["title"] == "Promo"
        assert body["type"] == "collection"

    async def test_get_and_delete(self, client):
        section = await _section(client, "Temporary")

        assert (await client.get(f"/api/content/home-sections/{section['id']}")).json()["title"] == "Temporary"
        assert (await client.delete(f"/api/content/home-sections/{section['id']}")).status_code == 200
        resp = await client.get(f"/api/content/home-sections/{section['id']}")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Home section not found"}

    async def test_reorder(self, client):
        a = await _section(client, "A", order=0)
        b = await _section(client, "B", order=1)
        c = await _section(client, "C", order=2)

        resp = await client.patch("/api/content/home-sections/reorder", json={"sectionIds": [c["id"], a["id"], b["id"]]})

        assert resp.status_code == 200
        body = (await client.get("/api/content/home-sections/all")).json()
        assert [(s["title"], s["order"]) for s in body] == [("C", 0), ("A", 1), ("B", 2)]

    async def test_reorder_unknown_section_changes_nothing(self, client):
        a = await _section(client, "A", order=0)
        b = await _section(client, "B", order=1)

        resp = await client.patch("/api/content/home-sections/reorder", json={"sectionIds": [b["id"], 999, a["id"]]})

        assert resp.status_code == 404
        body = (await client.get("/api/content/home-sections/all")).json()
        assert [(s["title"], s["order"]) for s in body] == [("A", 0), ("B", 1)]

    async def test_reorder_duplicates_rejected(self, client):
        a = await _section(client, "A")

        resp = await client.patch("/api/content/home-sections/reorder", json={"sectionIds": [a["id"], a["id"]]})

        assert resp.status_code == 400

    async def test_title_required(self, client):
        resp = await client.post("/api/content/home-sections", json={"type": "hero"})

        assert resp.status_code == 400
