"""Tier migration application service.

Drives a tenant through provisioning, backfilling and cutover. The registry
swap at the end of cutover is the single point of no return: any failure
before it aborts the migration and leaves the tenant on its old target,
any failure after it halts the tenant's migrations until an operator
resolves them.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import NoReturn

from tenancy.application.observability import (
    DefaultMigrationServiceProbe,
    MigrationServiceProbe,
)
from tenancy.application.shard_router import ShardRouter
from tenancy.application.write_gate import TenantWriteGate
from tenancy.domain.aggregates import Migration
from tenancy.domain.exceptions import (
    MigrationAbortedError,
    MigrationCutoverFailedError,
    MigrationError,
    MigrationInProgressError,
    MigrationNotFoundError,
    TenantMigrationsHaltedError,
)
from tenancy.domain.operations import ID_FIELD, TENANT_FIELD
from tenancy.domain.value_objects import (
    MigrationId,
    MigrationState,
    PhysicalTarget,
    TenantId,
    Tier,
)
from tenancy.ports.provisioning import ITargetProvisioner
from tenancy.ports.registry import ITenantTierRegistry
from tenancy.ports.repositories import IMigrationRepository
from tenancy.ports.stores import IStoreDriverFactory


class MigrationService:
    """Application service for operator-triggered tier migrations."""

    def __init__(
        self,
        registry: ITenantTierRegistry,
        migration_repository: IMigrationRepository,
        provisioner: ITargetProvisioner,
        drivers: IStoreDriverFactory,
        router: ShardRouter,
        write_gate: TenantWriteGate,
        retention: timedelta = timedelta(hours=72),
        probe: MigrationServiceProbe | None = None,
    ):
        """Initialize MigrationService with dependencies.

        Args:
            registry: Tenant tier registry (compare-and-swap writes)
            migration_repository: Durable storage of migration handles
            provisioner: Allocates destinations and archives retired sources
            drivers: Store drivers by target address
            router: Used to read (and lazily create) tier records
            write_gate: Journals and holds the tenant's writes
            retention: How long a retired source is kept before archival
            probe: Optional domain probe for observability
        """
        self._registry = registry
        self._migrations = migration_repository
        self._provisioner = provisioner
        self._drivers = drivers
        self._router = router
        self._write_gate = write_gate
        self._retention = retention
        self._probe = probe or DefaultMigrationServiceProbe()

    async def trigger_migration(self, tenant_id: TenantId, target_tier: Tier) -> Migration:
        """Register a migration of a tenant to another tier.

        Only the handle is created here; ``execute`` performs the steps.

        Returns:
            The new Migration in the provisioning state

        Raises:
            TenantMigrationsHaltedError: If a failed cutover is unresolved
            MigrationInProgressError: If the tenant is already migrating
            InvalidMigrationTransitionError: If the tenant is already on the tier
        """
        halted = await self._migrations.get_halted_for_tenant(tenant_id)
        if halted is not None:
            self._probe.migration_rejected(
                tenant_id=tenant_id.value, reason="migrations halted"
            )
            raise TenantMigrationsHaltedError(
                f"Migrations of tenant {tenant_id} are halted by failed "
                f"cutover {halted.id}",
                tenant_id=tenant_id.value,
                migration_id=halted.id.value,
            )

        active = await self._migrations.get_active_for_tenant(tenant_id)
        record = await self._router.resolve_record(tenant_id)
        if active is not None or record.is_migrating:
            self._probe.migration_rejected(
                tenant_id=tenant_id.value, reason="migration in progress"
            )
            raise MigrationInProgressError(
                f"Tenant {tenant_id} is already migrating",
                tenant_id=tenant_id.value,
                migration_id=active.id.value if active else None,
            )

        migration = Migration.request(tenant_id, record.target, target_tier)
        try:
            await self._migrations.add(migration)
        except MigrationInProgressError:
            self._probe.migration_rejected(
                tenant_id=tenant_id.value, reason="migration in progress"
            )
            raise

        self._probe.migration_requested(
            migration_id=migration.id.value,
            tenant_id=tenant_id.value,
            source=str(record.target),
            target_tier=target_tier.value,
        )
        return migration

    async def get_status(self, migration_id: MigrationId) -> Migration:
        """Return a migration handle.

        Raises:
            MigrationNotFoundError: If the handle is unknown
        """
        migration = await self._migrations.get_by_id(migration_id)
        if migration is None:
            raise MigrationNotFoundError(
                f"Migration {migration_id} not found",
                migration_id=migration_id.value,
            )
        return migration

    async def list_for_tenant(self, tenant_id: TenantId) -> list[Migration]:
        """List a tenant's migrations, oldest first."""
        return await self._migrations.list_for_tenant(tenant_id)

    async def execute(self, migration_id: MigrationId) -> Migration:
        """Run the remaining steps of a migration.

        Raises:
            MigrationAbortedError: A step failed before the registry swap
            MigrationCutoverFailedError: A step failed after the swap
        """
        migration = await self.get_status(migration_id)
        if migration.state == MigrationState.PROVISIONING:
            await self.provision(migration)
        if migration.state == MigrationState.BACKFILLING:
            await self.backfill(migration)
        if migration.state == MigrationState.BACKFILLING and migration.backfill_confirmed:
            await self.cutover(migration)
        return migration

    async def run(self, migration_id: MigrationId) -> None:
        """Execute a migration as a background task.

        Aborts and failed cutovers are already recorded on the handle and
        reported through the probe; other errors propagate.
        """
        try:
            await self.execute(migration_id)
        except (MigrationAbortedError, MigrationCutoverFailedError):
            return

    async def provision(self, migration: Migration) -> None:
        """Allocate the destination and claim the tenant in the registry."""
        tenant_id = migration.tenant_id
        allocated: PhysicalTarget | None = None
        claimed = False
        try:
            allocated = await self._provisioner.allocate(tenant_id, migration.target_tier)
            if allocated.address == migration.source.address:
                await self._abort(
                    migration,
                    "provisioning",
                    f"Destination {allocated} is the current target",
                    owns_claim=False,
                )

            record = await self._router.resolve_record(tenant_id)
            if record.is_migrating or record.target != migration.source:
                await self._abort(
                    migration,
                    "provisioning",
                    f"Tier record of tenant {tenant_id} changed since the trigger",
                    owns_claim=False,
                )
            claimed = await self._registry.compare_and_swap(
                tenant_id, record, record.begin_migration(allocated)
            )
            if not claimed:
                await self._abort(
                    migration,
                    "provisioning",
                    "Lost the registry claim to a concurrent change",
                    owns_claim=False,
                )

            # The destination is ours from here on. Drop any copy left behind
            # by an earlier migration off this target.
            await self._drivers.driver(allocated.address).purge_tenant(tenant_id.value)

            migration.provisioned(allocated)
            await self._migrations.save(migration)
        except (MigrationAbortedError, MigrationCutoverFailedError):
            raise
        except Exception as e:
            await self._abort(
                migration,
                "provisioning",
                str(e),
                allocated=allocated,
                owns_claim=claimed,
            )

        self._probe.target_provisioned(
            migration_id=migration.id.value,
            tenant_id=tenant_id.value,
            target=str(allocated),
        )

    async def backfill(self, migration: Migration) -> None:
        """Copy the tenant's documents to the destination and confirm them.

        The source stays authoritative; writes admitted from now on are
        journaled for replay at cutover.
        """
        tenant = migration.tenant_id.value
        target = self._require_target(migration)
        self._write_gate.begin_journal(tenant)
        try:
            source_store = self._drivers.driver(migration.source.address)
            target_store = self._drivers.driver(target.address)

            documents = await source_store.find({TENANT_FIELD: tenant})
            for document in documents:
                await target_store.upsert(document)

            copied = {doc[ID_FIELD] for doc in await target_store.find({TENANT_FIELD: tenant})}
            missing = [doc[ID_FIELD] for doc in documents if doc[ID_FIELD] not in copied]
            if missing:
                await self._abort(
                    migration,
                    "backfilling",
                    f"{len(missing)} of {len(documents)} documents missing after copy",
                )

            migration.confirm_backfill(len(documents))
            await self._migrations.save(migration)
        except (MigrationAbortedError, MigrationCutoverFailedError):
            raise
        except Exception as e:
            await self._abort(migration, "backfilling", str(e))

        self._probe.backfill_confirmed(
            migration_id=migration.id.value,
            tenant_id=tenant,
            copied=migration.copied_records,
        )

    async def cutover(self, migration: Migration) -> None:
        """Hold writes, replay the journal and swap the registry record."""
        tenant_id = migration.tenant_id
        tenant = tenant_id.value
        target = self._require_target(migration)

        migration.begin_cutover()
        await self._migrations.save(migration)
        self._probe.cutover_started(migration_id=migration.id.value, tenant_id=tenant)

        swap_attempted = False
        swapped = False
        try:
            await self._write_gate.hold(tenant)
            touched = self._write_gate.end_journal(tenant)
            replayed = await self._replay(migration, target, touched)

            record = await self._registry.get(tenant_id)
            if record is None or record.migrating_to != target:
                await self._abort(
                    migration,
                    "cutover",
                    f"Tier record of tenant {tenant_id} no longer claims {target}",
                    owns_claim=False,
                )
            swap_attempted = True
            swapped = await self._registry.compare_and_swap(
                tenant_id, record, record.complete_migration()
            )
            if not swapped:
                await self._abort(
                    migration, "cutover", "Registry swap lost to a concurrent change"
                )

            await self._drivers.driver(migration.source.address).freeze_tenant(tenant)
            migration.complete(
                replayed_writes=replayed,
                retain_until=datetime.now(UTC) + self._retention,
            )
            await self._migrations.save(migration)
        except (MigrationAbortedError, MigrationCutoverFailedError):
            raise
        except Exception as e:
            if swap_attempted and not swapped:
                swapped = await self._swap_applied(tenant_id, target)
            if swapped:
                await self._fail_cutover(migration, str(e))
            await self._abort(migration, "cutover", str(e))
        finally:
            self._write_gate.release(tenant)

        self._probe.migration_completed(
            migration_id=migration.id.value,
            tenant_id=tenant,
            target=str(target),
            replayed=migration.replayed_writes,
        )

    async def resolve(self, migration_id: MigrationId, note: str) -> Migration:
        """Clear a failed cutover once an operator has repaired the registry.

        Raises:
            MigrationNotFoundError: If the handle is unknown
            InvalidMigrationTransitionError: If the migration is not halted
        """
        migration = await self.get_status(migration_id)
        migration.resolve(note)
        await self._migrations.save(migration)
        self._probe.migration_resolved(
            migration_id=migration.id.value, tenant_id=migration.tenant_id.value
        )
        return migration

    async def archive_retired(self, now: datetime | None = None) -> int:
        """Archive retired sources whose retention window has elapsed.

        A source that became the tenant's target again is kept as is.

        Returns:
            Number of migrations whose source was archived
        """
        now = now or datetime.now(UTC)
        archived_count = 0
        for migration in await self._migrations.list_due_for_archival(now):
            try:
                record = await self._registry.get(migration.tenant_id)
                reused = record is not None and migration.source in (
                    record.target,
                    record.migrating_to,
                )
                archived = 0
                if not reused:
                    archived = await self._provisioner.archive(
                        migration.tenant_id, migration.source
                    )
                migration.mark_source_archived()
                await self._migrations.save(migration)
            except Exception as e:
                # Left due; the next sweep retries it.
                self._probe.archival_failed(
                    migration_id=migration.id.value,
                    tenant_id=migration.tenant_id.value,
                    error=e,
                )
                continue

            archived_count += 1
            self._probe.source_archived(
                migration_id=migration.id.value,
                tenant_id=migration.tenant_id.value,
                archived=archived,
            )
        return archived_count

    async def _replay(
        self, migration: Migration, target: PhysicalTarget, touched: set[str]
    ) -> int:
        """Bring every journaled document on the destination up to date.

        Writes are held, so the source state read here is final.
        """
        tenant = migration.tenant_id.value
        source_store = self._drivers.driver(migration.source.address)
        target_store = self._drivers.driver(target.address)
        for document_id in sorted(touched):
            key = {TENANT_FIELD: tenant, ID_FIELD: document_id}
            current = await source_store.find(key)
            if current:
                await target_store.upsert(current[0])
            else:
                await target_store.delete(key)
        return len(touched)

    def _require_target(self, migration: Migration) -> PhysicalTarget:
        if migration.target is None:
            raise MigrationError(
                f"Migration {migration.id} has no provisioned target",
                tenant_id=migration.tenant_id.value,
                migration_id=migration.id.value,
            )
        return migration.target

    async def _abort(
        self,
        migration: Migration,
        stage: str,
        reason: str,
        allocated: PhysicalTarget | None = None,
        owns_claim: bool = True,
    ) -> NoReturn:
        """Return the tenant to its old target and raise MigrationAbortedError.

        The journal, the destination's data and the registry claim are only
        cleaned up when this migration holds the claim. Otherwise they belong
        to whichever change won it.
        """
        tenant_id = migration.tenant_id
        destination = allocated or migration.target
        cleanup_errors: list[str] = []

        if owns_claim:
            self._write_gate.end_journal(tenant_id.value)

        if (
            owns_claim
            and destination is not None
            and destination.address != migration.source.address
        ):
            try:
                await self._drivers.driver(destination.address).purge_tenant(
                    tenant_id.value
                )
            except Exception as e:
                cleanup_errors.append(f"purge of {destination} failed: {e}")

        if owns_claim and destination is not None:
            try:
                await self._cancel_claim(tenant_id, destination)
            except Exception as e:
                cleanup_errors.append(f"registry claim release failed: {e}")

        if cleanup_errors:
            reason = f"{reason} ({'; '.join(cleanup_errors)})"
        migration.abort(reason)
        await self._migrations.save(migration)

        self._probe.migration_aborted(
            migration_id=migration.id.value,
            tenant_id=tenant_id.value,
            stage=stage,
            reason=reason,
        )
        raise MigrationAbortedError(
            f"Migration {migration.id} aborted during {stage}: {reason}",
            tenant_id=tenant_id.value,
            migration_id=migration.id.value,
            stage=stage,
        )

    async def _cancel_claim(self, tenant_id: TenantId, destination: PhysicalTarget) -> None:
        for _ in range(3):
            record = await self._registry.get(tenant_id)
            if record is None or record.migrating_to != destination:
                return
            if await self._registry.compare_and_swap(
                tenant_id, record, record.cancel_migration()
            ):
                return
        raise MigrationError(
            f"Could not release the registry claim of tenant {tenant_id}",
            tenant_id=tenant_id.value,
        )

    async def _swap_applied(self, tenant_id: TenantId, target: PhysicalTarget) -> bool:
        """Whether the registry already points at the destination."""
        try:
            record = await self._registry.get(tenant_id)
        except Exception:
            # Outcome unknown: treat as swapped so the destination is kept.
            return True
        return record is not None and record.target == target

    async def _fail_cutover(self, migration: Migration, reason: str) -> NoReturn:
        """Halt the tenant after a failure past the registry swap."""
        migration.fail_cutover(reason)
        await self._migrations.save(migration)
        self._probe.cutover_failed(
            migration_id=migration.id.value,
            tenant_id=migration.tenant_id.value,
            reason=reason,
        )
        raise MigrationCutoverFailedError(
            f"Migration {migration.id} failed after the registry swap: {reason}",
            tenant_id=migration.tenant_id.value,
            migration_id=migration.id.value,
        )
