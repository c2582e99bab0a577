"""Infrastructure adapters for the tenancy bounded context."""

from tenancy.infrastructure.in_memory_document_store import (
    InMemoryDocumentStore,
    InMemoryStoreDriverFactory,
)
from tenancy.infrastructure.in_memory_migration_repository import (
    InMemoryMigrationRepository,
)
from tenancy.infrastructure.in_memory_registry import InMemoryTenantTierRegistry
from tenancy.infrastructure.migration_repository import SqlMigrationRepository
from tenancy.infrastructure.provisioner import StaticTargetProvisioner
from tenancy.infrastructure.retention_sweeper import RetentionSweeper
from tenancy.infrastructure.sql_document_store import (
    SqlDocumentStore,
    SqlStoreDriverFactory,
)
from tenancy.infrastructure.tier_registry import SqlTenantTierRegistry

__all__ = [
    "InMemoryDocumentStore",
    "InMemoryMigrationRepository",
    "InMemoryStoreDriverFactory",
    "InMemoryTenantTierRegistry",
    "RetentionSweeper",
    "SqlDocumentStore",
    "SqlMigrationRepository",
    "SqlStoreDriverFactory",
    "SqlTenantTierRegistry",
    "StaticTargetProvisioner",
]
