"""Integration tests for the PostgreSQL tenancy adapters.

Requires a running PostgreSQL instance (see conftest).
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from tenancy.domain.aggregates import Migration
from tenancy.domain.exceptions import (
    DuplicateDocumentError,
    MigrationInProgressError,
    StoreReadOnlyError,
)
from tenancy.domain.value_objects import (
    MigrationState,
    PhysicalTarget,
    TenantId,
    TenantTierRecord,
    Tier,
)
from tenancy.infrastructure import SqlMigrationRepository, SqlTenantTierRegistry

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

ACME = TenantId(value="acme")
SHARED = PhysicalTarget(tier=Tier.SHARED, address="pg://shared")
DEDICATED = PhysicalTarget(tier=Tier.DEDICATED, address="pg://dedicated-acme")


class TestSqlTenantTierRegistry:
    """Compare-and-swap semantics against a real database."""

    async def test_create_then_read(self, session_factory):
        registry = SqlTenantTierRegistry(session_factory)
        record = TenantTierRecord.onboard(ACME, SHARED)

        assert await registry.compare_and_swap(ACME, None, record) is True

        assert await registry.get(ACME) == record

    async def test_concurrent_creators_only_one_wins(self, session_factory):
        registry = SqlTenantTierRegistry(session_factory)
        record = TenantTierRecord.onboard(ACME, SHARED)

        results = await asyncio.gather(
            *(registry.compare_and_swap(ACME, None, record) for _ in range(4))
        )

        assert sorted(results) == [False, False, False, True]

    async def test_stale_snapshot_is_rejected(self, session_factory):
        registry = SqlTenantTierRegistry(session_factory)
        onboarded = TenantTierRecord.onboard(ACME, SHARED)
        await registry.compare_and_swap(ACME, None, onboarded)
        migrating = onboarded.begin_migration(DEDICATED)
        await registry.compare_and_swap(ACME, onboarded, migrating)

        swapped = await registry.compare_and_swap(
            ACME, onboarded, onboarded.begin_migration(DEDICATED)
        )

        assert swapped is False
        assert (await registry.get(ACME)).version == migrating.version


class TestSqlMigrationRepository:
    """Persistence of migration handles."""

    async def test_round_trip_with_history(self, session_factory):
        repository = SqlMigrationRepository(session_factory)
        migration = Migration.request(ACME, SHARED, Tier.DEDICATED)
        migration.provisioned(DEDICATED)
        await repository.save(migration)

        loaded = await repository.get_by_id(migration.id)

        assert loaded.state == MigrationState.BACKFILLING
        assert loaded.target == DEDICATED
        assert [h.state for h in loaded.history] == [
            MigrationState.PROVISIONING,
            MigrationState.BACKFILLING,
        ]
        assert (await repository.get_active_for_tenant(ACME)).id == migration.id

    async def test_due_for_archival(self, session_factory):
        repository = SqlMigrationRepository(session_factory)
        migration = Migration.request(ACME, SHARED, Tier.DEDICATED)
        migration.provisioned(DEDICATED)
        migration.confirm_backfill(copied_records=0)
        migration.begin_cutover()
        now = datetime.now(UTC)
        migration.complete(replayed_writes=0, retain_until=now - timedelta(minutes=1))
        await repository.save(migration)

        due = await repository.list_due_for_archival(now)

        assert [m.id for m in due] == [migration.id]
        assert await repository.get_active_for_tenant(ACME) is None

    async def test_concurrent_adds_only_one_active(self, session_factory):
        repository = SqlMigrationRepository(session_factory)
        migrations = [Migration.request(ACME, SHARED, Tier.DEDICATED) for _ in range(3)]

        results = await asyncio.gather(
            *(repository.add(m) for m in migrations), return_exceptions=True
        )

        rejected = [r for r in results if isinstance(r, MigrationInProgressError)]
        assert len(rejected) == 2
        assert len(await repository.list_for_tenant(ACME)) == 1

    async def test_add_allowed_once_previous_ended(self, session_factory):
        repository = SqlMigrationRepository(session_factory)
        first = Migration.request(ACME, SHARED, Tier.DEDICATED)
        await repository.add(first)
        first.abort("quota")
        await repository.save(first)

        second = Migration.request(ACME, SHARED, Tier.DEDICATED)
        await repository.add(second)

        assert (await repository.get_active_for_tenant(ACME)).id == second.id


class TestSqlDocumentStore:
    """Document store behaviour on a PostgreSQL target."""

    async def test_create_find_update_delete(self, sql_drivers, target_address):
        await sql_drivers.prepare(target_address)
        store = sql_drivers.driver(target_address)

        await store.create({"tenant_id": "acme", "id": "d1", "status": "open"})
        await store.create({"tenant_id": "globex", "id": "d1", "status": "open"})

        found = await store.find({"tenant_id": "acme", "status": "open"})
        assert found == [{"tenant_id": "acme", "id": "d1", "status": "open"}]

        updated = await store.update({"tenant_id": "acme", "id": "d1"}, {"status": "closed"})
        assert updated[0]["status"] == "closed"

        assert await store.delete({"tenant_id": "acme", "id": "d1"}) == ["d1"]
        assert len(await store.find({"tenant_id": "globex"})) == 1

    async def test_duplicate_create_is_rejected(self, sql_drivers, target_address):
        await sql_drivers.prepare(target_address)
        store = sql_drivers.driver(target_address)
        await store.create({"tenant_id": "acme", "id": "d1"})

        with pytest.raises(DuplicateDocumentError):
            await store.create({"tenant_id": "acme", "id": "d1"})

    async def test_frozen_tenant_rejects_writes_until_purged(
        self, sql_drivers, target_address
    ):
        await sql_drivers.prepare(target_address)
        store = sql_drivers.driver(target_address)
        await store.create({"tenant_id": "acme", "id": "d1"})
        await store.freeze_tenant("acme")

        with pytest.raises(StoreReadOnlyError):
            await store.create({"tenant_id": "acme", "id": "d2"})
        assert len(await store.find({"tenant_id": "acme"})) == 1

        assert await store.purge_tenant("acme") == 1
        await store.create({"tenant_id": "acme", "id": "d2"})
