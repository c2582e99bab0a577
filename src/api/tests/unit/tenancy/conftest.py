"""Fixtures wiring the tenancy components over in-memory adapters."""

from __future__ import annotations

from datetime import timedelta

import pytest

from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application import (
    MigrationService,
    QueryGuard,
    RetryPolicy,
    ShardRouter,
    TenantWriteGate,
)
from tenancy.infrastructure import (
    InMemoryMigrationRepository,
    InMemoryStoreDriverFactory,
    InMemoryTenantTierRegistry,
    StaticTargetProvisioner,
)

SHARED_POOL = "memory://shared-pool"
SHARDS = ["memory://shard-0", "memory://shard-1"]
DEDICATED_TEMPLATE = "memory://dedicated-{tenant_id}"
ARCHIVE = "memory://archive"


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Retry policy without delays."""
    return RetryPolicy(attempts=3, base_delay_ms=0, max_delay_ms=0, jitter_ms=0)


@pytest.fixture
def registry() -> InMemoryTenantTierRegistry:
    return InMemoryTenantTierRegistry()


@pytest.fixture
def drivers() -> InMemoryStoreDriverFactory:
    return InMemoryStoreDriverFactory()


@pytest.fixture
def write_gate() -> TenantWriteGate:
    return TenantWriteGate(hold_timeout_seconds=0.2)


@pytest.fixture
def router(registry, retry_policy) -> ShardRouter:
    return ShardRouter(
        registry=registry,
        shared_pool_address=SHARED_POOL,
        retry_policy=retry_policy,
    )


@pytest.fixture
def guard(router, drivers, write_gate, retry_policy) -> QueryGuard:
    return QueryGuard(
        router=router,
        drivers=drivers,
        write_gate=write_gate,
        read_retry_policy=retry_policy,
    )


@pytest.fixture
def migration_repository() -> InMemoryMigrationRepository:
    return InMemoryMigrationRepository()


@pytest.fixture
def provisioner(drivers) -> StaticTargetProvisioner:
    return StaticTargetProvisioner(
        drivers=drivers,
        shared_pool_address=SHARED_POOL,
        shard_addresses=SHARDS,
        dedicated_address_template=DEDICATED_TEMPLATE,
        archive_address=ARCHIVE,
    )


@pytest.fixture
def migration_service(
    registry, migration_repository, provisioner, drivers, router, write_gate
) -> MigrationService:
    return MigrationService(
        registry=registry,
        migration_repository=migration_repository,
        provisioner=provisioner,
        drivers=drivers,
        router=router,
        write_gate=write_gate,
        retention=timedelta(hours=72),
    )


@pytest.fixture
def acme() -> TenantContext:
    return TenantContext(tenant_id="acme", source="token")


@pytest.fixture
def globex() -> TenantContext:
    return TenantContext(tenant_id="globex", source="token")
