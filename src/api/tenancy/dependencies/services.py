"""Service wiring for the tenancy bounded context.

Components that hold process-wide state (the write gate, in-memory stores,
engines) are singletons: every request and background task must share the
same instances.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from infrastructure.database.dependencies import get_control_sessionmaker
from infrastructure.settings import (
    get_database_settings,
    get_migration_settings,
    get_routing_settings,
    get_store_settings,
)
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
    RetentionSweeper,
    SqlMigrationRepository,
    SqlStoreDriverFactory,
    SqlTenantTierRegistry,
    StaticTargetProvisioner,
)
from tenancy.ports import (
    IMigrationRepository,
    IStoreDriverFactory,
    ITargetProvisioner,
    ITenantTierRegistry,
)


def _uses_postgres() -> bool:
    return get_store_settings().backend == "postgres"


@lru_cache
def get_retry_policy() -> RetryPolicy:
    """Retry budget for registry and store calls."""
    settings = get_routing_settings()
    return RetryPolicy(
        attempts=settings.retry_attempts,
        base_delay_ms=settings.retry_base_delay_ms,
        max_delay_ms=settings.retry_max_delay_ms,
        jitter_ms=settings.retry_jitter_ms,
    )


@lru_cache
def get_tier_registry() -> ITenantTierRegistry:
    """Get the tenant tier registry for the configured backend."""
    if _uses_postgres():
        return SqlTenantTierRegistry(get_control_sessionmaker())
    return InMemoryTenantTierRegistry()


@lru_cache
def get_migration_repository() -> IMigrationRepository:
    """Get the migration repository for the configured backend."""
    if _uses_postgres():
        return SqlMigrationRepository(get_control_sessionmaker())
    return InMemoryMigrationRepository()


@lru_cache
def get_store_drivers() -> IStoreDriverFactory:
    """Get the store driver factory for the configured backend."""
    if _uses_postgres():
        return SqlStoreDriverFactory(pool_size=get_database_settings().pool_max_connections)
    return InMemoryStoreDriverFactory()


@lru_cache
def get_write_gate() -> TenantWriteGate:
    """Get the process-wide tenant write gate."""
    return TenantWriteGate(
        hold_timeout_seconds=get_migration_settings().cutover_hold_timeout_seconds
    )


@lru_cache
def get_shard_router() -> ShardRouter:
    """Get the shard router."""
    settings = get_routing_settings()
    return ShardRouter(
        registry=get_tier_registry(),
        shared_pool_address=settings.shared_pool_address,
        retry_policy=get_retry_policy(),
    )


@lru_cache
def get_provisioner() -> ITargetProvisioner:
    """Get the target provisioner."""
    settings = get_routing_settings()
    return StaticTargetProvisioner(
        drivers=get_store_drivers(),
        shared_pool_address=settings.shared_pool_address,
        shard_addresses=settings.shard_addresses,
        dedicated_address_template=settings.dedicated_address_template,
        archive_address=settings.archive_address,
    )


@lru_cache
def get_query_guard() -> QueryGuard:
    """Get the query guard."""
    return QueryGuard(
        router=get_shard_router(),
        drivers=get_store_drivers(),
        write_gate=get_write_gate(),
        read_retry_policy=get_retry_policy(),
    )


@lru_cache
def get_migration_service() -> MigrationService:
    """Get the migration service."""
    return MigrationService(
        registry=get_tier_registry(),
        migration_repository=get_migration_repository(),
        provisioner=get_provisioner(),
        drivers=get_store_drivers(),
        router=get_shard_router(),
        write_gate=get_write_gate(),
        retention=timedelta(hours=get_migration_settings().retention_hours),
    )


@lru_cache
def get_retention_sweeper() -> RetentionSweeper:
    """Get the retention sweeper background task."""
    return RetentionSweeper(
        archive_retired=get_migration_service().archive_retired,
        interval_seconds=get_migration_settings().sweep_interval_seconds,
    )
