# shop_admin/main.py
# Shop Admin API - catalog, customers, orders, inventory, site content
#
# Run with:  uvicorn --factory shop_admin.main:create_app
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shop_admin.database import Database
from shop_admin.exceptions import AppError
from shop_admin.logging_setup import setup_logging
from shop_admin.settings import Settings, get_settings

from shop_admin.routers.auth import router as auth_router
from shop_admin.routers.categories import router as categories_router
from shop_admin.routers.collections import router as collections_router
from shop_admin.routers.customers import router as customers_router
from shop_admin.routers.products import router as products_router
from shop_admin.routers.inventory import router as inventory_router
from shop_admin.routers.stock import router as stock_router
from shop_admin.routers.orders import router as orders_router
from shop_admin.routers.content import router as content_router
from shop_admin.routers.dashboard import router as dashboard_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


# ---------------------------------------------------------
# Error handlers
# ---------------------------------------------------------
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": errors})


# ---------------------------------------------------------
# App factory
# ---------------------------------------------------------
def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    db = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        if settings.DB_CREATE_TABLES:
            await db.create_all()
        logger.info(f"Shop Admin API started ({settings.ENVIRONMENT})")
        yield
        await db.dispose()
        logger.info("Database connections closed")

    app = FastAPI(
        title="Shop Admin API",
        version="1.0.0",
        description="E-commerce back office: catalog, customers, orders and inventory",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    for router in (
        auth_router,
        categories_router,
        collections_router,
        customers_router,
        products_router,
        inventory_router,
        stock_router,
        orders_router,
        content_router,
        dashboard_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health")
    async def health(request: Request):
        db_health = await request.app.state.db.check_health()
        return {
            "status": "ok" if db_health["status"] == "healthy" else "degraded",
            "environment": settings.ENVIRONMENT,
            "database": db_health,
        }

    return app
