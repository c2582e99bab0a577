"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. The control-plane
tables are created from the ORM metadata; the document target is the same
database, addressed by URL like any store target.

Override the connection with environment variables:
    TENANTGATE_DB_HOST, TENANTGATE_DB_PORT, etc.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import build_async_url, create_control_engine
from infrastructure.database.models import Base
from infrastructure.settings import DatabaseSettings
from tenancy.infrastructure import SqlStoreDriverFactory

import tenancy.infrastructure.models  # noqa: F401  (registers tables)

_TABLES = ("tenant_documents", "frozen_tenants", "tenant_migrations", "tenant_tiers")


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests."""
    return DatabaseSettings(
        host=os.getenv("TENANTGATE_DB_HOST", "localhost"),
        port=int(os.getenv("TENANTGATE_DB_PORT", "5432")),
        database=os.getenv("TENANTGATE_DB_DATABASE", "tenantgate"),
        username=os.getenv("TENANTGATE_DB_USERNAME", "tenantgate"),
        password=SecretStr(
            os.getenv("TENANTGATE_DB_PASSWORD", "tenantgate_dev_password")
        ),
        pool_max_connections=5,
    )


@pytest.fixture
def target_address(integration_db_settings: DatabaseSettings) -> str:
    """Store target address pointing at the integration database."""
    return build_async_url(integration_db_settings)


@pytest_asyncio.fixture
async def control_engine(
    integration_db_settings: DatabaseSettings,
) -> AsyncGenerator[AsyncEngine, None]:
    """Engine with the tenancy tables created and emptied around each test."""
    engine = create_control_engine(integration_db_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(f"TRUNCATE {', '.join(_TABLES)}"))

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE {', '.join(_TABLES)}"))
    await engine.dispose()


@pytest.fixture
def session_factory(control_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(control_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def sql_drivers(control_engine) -> AsyncGenerator[SqlStoreDriverFactory, None]:
    """Driver factory whose engines are disposed after the test."""
    drivers = SqlStoreDriverFactory(pool_size=2)
    yield drivers
    await drivers.close()
