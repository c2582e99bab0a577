"""In-memory implementation of IMigrationRepository."""

from __future__ import annotations

import copy
from datetime import datetime

from tenancy.domain.aggregates import Migration
from tenancy.domain.exceptions import MigrationInProgressError
from tenancy.domain.value_objects import MigrationId, MigrationState, TenantId
from tenancy.infrastructure.observability import (
    DefaultMigrationRepositoryProbe,
    MigrationRepositoryProbe,
)
from tenancy.ports.repositories import IMigrationRepository


class InMemoryMigrationRepository(IMigrationRepository):
    """Keeps migration handles in process memory.

    Stored aggregates are copies, so a caller mutating its instance does not
    change the stored handle until it saves again.
    """

    def __init__(self, probe: MigrationRepositoryProbe | None = None) -> None:
        self._migrations: dict[str, Migration] = {}
        self._probe = probe or DefaultMigrationRepositoryProbe()

    async def add(self, migration: Migration) -> None:
        """Persist a new migration handle.

        Runs without awaiting, so no other coroutine can add an active
        migration for the tenant between the check and the insert.
        """
        if migration.is_active:
            active = self._first(migration.tenant_id, lambda m: m.is_active)
            if active is not None:
                raise MigrationInProgressError(
                    f"Tenant {migration.tenant_id} is already migrating",
                    tenant_id=migration.tenant_id.value,
                    migration_id=active.id.value,
                )
        await self.save(migration)

    async def save(self, migration: Migration) -> None:
        """Persist a migration (create or update)."""
        self._migrations[migration.id.value] = copy.deepcopy(migration)
        self._probe.migration_saved(
            migration_id=migration.id.value,
            tenant_id=migration.tenant_id.value,
            state=migration.state.value,
        )

    async def get_by_id(self, migration_id: MigrationId) -> Migration | None:
        """Retrieve a migration by its handle."""
        migration = self._migrations.get(migration_id.value)
        if migration is None:
            self._probe.migration_not_found(migration_id=migration_id.value)
            return None
        return copy.deepcopy(migration)

    async def get_active_for_tenant(self, tenant_id: TenantId) -> Migration | None:
        """Return the tenant's running migration, if any."""
        return self._first(tenant_id, lambda m: m.is_active)

    async def get_halted_for_tenant(self, tenant_id: TenantId) -> Migration | None:
        """Return the tenant's unresolved failed cutover, if any."""
        return self._first(tenant_id, lambda m: m.state == MigrationState.CUTOVER_FAILED)

    async def list_for_tenant(self, tenant_id: TenantId) -> list[Migration]:
        """List the tenant's migrations, oldest first."""
        return [
            copy.deepcopy(m)
            for m in sorted(self._migrations.values(), key=lambda m: m.created_at)
            if m.tenant_id == tenant_id
        ]

    async def list_due_for_archival(self, now: datetime) -> list[Migration]:
        """List completed migrations whose source retention has elapsed."""
        return [
            copy.deepcopy(m)
            for m in sorted(self._migrations.values(), key=lambda m: m.created_at)
            if m.retention_elapsed(now)
        ]

    def _first(self, tenant_id: TenantId, predicate) -> Migration | None:
        for migration in self._migrations.values():
            if migration.tenant_id == tenant_id and predicate(migration):
                return copy.deepcopy(migration)
        return None
