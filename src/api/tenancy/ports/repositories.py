"""Repository protocols (ports) for the tenancy bounded context."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from tenancy.domain.aggregates import Migration
from tenancy.domain.value_objects import MigrationId, TenantId


@runtime_checkable
class IMigrationRepository(Protocol):
    """Durable storage of migration handles."""

    async def add(self, migration: Migration) -> None:
        """Persist a new migration handle.

        Raises:
            MigrationInProgressError: If the tenant already has an active
                migration. The check and the insert are atomic.
        """
        ...

    async def save(self, migration: Migration) -> None:
        """Persist a migration (create or update)."""
        ...

    async def get_by_id(self, migration_id: MigrationId) -> Migration | None:
        """Retrieve a migration by its handle, or None if unknown."""
        ...

    async def get_active_for_tenant(self, tenant_id: TenantId) -> Migration | None:
        """Return the tenant's running migration, if any."""
        ...

    async def get_halted_for_tenant(self, tenant_id: TenantId) -> Migration | None:
        """Return the tenant's unresolved failed cutover, if any."""
        ...

    async def list_for_tenant(self, tenant_id: TenantId) -> list[Migration]:
        """List the tenant's migrations, oldest first."""
        ...

    async def list_due_for_archival(self, now: datetime) -> list[Migration]:
        """List completed migrations whose source retention has elapsed."""
        ...
