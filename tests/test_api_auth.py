"""HTTP tests for authentication, authorization and health."""

import pytest

from shop_admin.db_models import User, UserRole
from shop_admin.security import create_access_token, decode_access_token, hash_password
from shop_admin.exceptions import AuthenticationError

pytestmark = pytest.mark.anyio


class TestLogin:

    async def test_login_returns_token(self, anon_client, admin_user, settings):
        resp = await anon_client.post("/api/auth/login", json={"email": "Admin@Shop.test", "password": "secret123"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["email"] == "admin@shop.test"
        assert body["user"]["role"] == "ADMIN"
        assert decode_access_token(body["token"], settings) == admin_user.id

    async def test_wrong_password(self, anon_client, admin_user):
        resp = await anon_client.post("/api/auth/login", json={"email": "admin@shop.test", "password": "nope"})

        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid credentials"}

    async def test_me(self, client, admin_user):
        resp = await client.get("/api/auth/me")

        assert resp.status_code == 200
        assert resp.json()["id"] == admin_user.id


class TestAccessControl:

    async def test_missing_token(self, anon_client, admin_user):
        resp = await anon_client.get("/api/inventory/overview")

        assert resp.status_code == 401
        assert resp.json() == {"error": "No token provided"}

    async def test_garbage_token(self, anon_client, admin_user):
        resp = await anon_client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})

        assert resp.status_code == 401

    async def test_token_with_other_secret(self, anon_client, admin_user, settings):
        forged = create_access_token(admin_user.id, settings.model_copy(update={"JWT_SECRET": "another-secret-0123456789abcdef0123456789"}))

        with pytest.raises(AuthenticationError):
            decode_access_token(forged, settings)
        resp = await anon_client.get("/api/orders", headers={"Authorization": f"Bearer {forged}"})
        assert resp.status_code == 401

    async def test_staff_is_forbidden(self, anon_client, database, settings):
        async with database.unit_of_work() as session:
            staff = User(email="staff@shop.test", password_hash=hash_password("secret123"), role=UserRole.STAFF)
            session.add(staff)
            await session.flush()
            staff_id = staff.id

        token = create_access_token(staff_id, settings)
        resp = await anon_client.get("/api/stock/alerts", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 403
        assert resp.json() == {"error": "Admin access required"}

    async def test_inactive_user_rejected(self, anon_client, database, settings, admin_user):
        async with database.unit_of_work() as session:
            (await session.get(User, admin_user.id)).is_active = False

        token = create_access_token(admin_user.id, settings)
        resp = await anon_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401


class TestRegister:

    async def test_admin_registers_user(self, client, anon_client):
        resp = await client.post("/api/auth/register", json={
            "email": "second@shop.test", "password": "hunter22", "name": "Second",
        })

        assert resp.status_code == 201
        assert resp.json()["email"] == "second@shop.test"

        login = await anon_client.post("/api/auth/login", json={"email": "second@shop.test", "password": "hunter22"})
        assert login.status_code == 200

    async def test_duplicate_email(self, client):
        resp = await client.post("/api/auth/register", json={"email": "admin@shop.test", "password": "whatever"})

        assert resp.status_code == 409

    async def test_short_password(self, client):
        resp = await client.post("/api/auth/register", json={"email": "x@shop.test", "password": "123"})

        assert resp.status_code == 400


class TestHealth:

    async def test_health(self, anon_client):
        resp = await anon_client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["database"]["database"] == "connected"
