# shop_admin/settings.py
"""
Shop Admin settings - environment / .env driven.
"""
from __future__ import annotations
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices


class Settings(BaseSettings):
    ENVIRONMENT: str = Field(default="development")

    # =========================================================================
    # Storage (logs live under DATA_ROOT/logs)
    # =========================================================================
    DATA_ROOT: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "shop-data"),
        validation_alias=AliasChoices("DATA_ROOT", "SHOP_DATA_ROOT"),
    )
    LOG_LEVEL: str = Field(default="INFO")

    # =========================================================================
    # Database
    # =========================================================================
    # Full async URL wins over the DB_* parts (e.g. sqlite+aiosqlite:///./shop.db)
    DATABASE_URL: Optional[str] = Field(default=None)

    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_NAME: str = Field(default="shop_admin")
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="postgres")

    # Connection pool settings (ignored for sqlite)
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_ECHO: bool = Field(default=False)
    DB_CREATE_TABLES: bool = Field(
        default=False,
        description="Run metadata.create_all on startup (dev / tests)",
    )

    # =========================================================================
    # Auth
    # =========================================================================
    JWT_SECRET: str = Field(default="change-me")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRES_MINUTES: int = Field(default=7 * 24 * 60)

    # Comma separated list
    ALLOWED_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:3001,http://127.0.0.1:3000,http://127.0.0.1:3001"
    )

    # =========================================================================
    # Inventory / orders
    # =========================================================================
    ORDER_NUMBER_PREFIX: str = Field(default="BRK-")
    VARIANT_LOW_STOCK_THRESHOLD: int = Field(default=5, ge=0)
    ALLOW_OVERSELL: bool = Field(
        default=True,
        description="Allow orders to push stock below zero",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL (postgresql+asyncpg unless DATABASE_URL is set)."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://"
            f"{self.DB_USER}:{self.DB_PASSWORD}@"
            f"{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


def get_settings() -> Settings:
    return Settings()
