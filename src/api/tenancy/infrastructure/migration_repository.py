"""PostgreSQL implementation of IMigrationRepository."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenancy.domain.aggregates import Migration, MigrationTransition
from tenancy.domain.exceptions import MigrationInProgressError
from tenancy.domain.value_objects import (
    MigrationId,
    MigrationState,
    PhysicalTarget,
    TenantId,
    Tier,
)
from tenancy.infrastructure.models import ACTIVE_MIGRATION_INDEX, MigrationModel
from tenancy.infrastructure.observability import (
    DefaultMigrationRepositoryProbe,
    MigrationRepositoryProbe,
)
from tenancy.ports.repositories import IMigrationRepository

_ACTIVE_STATES = [
    MigrationState.PROVISIONING.value,
    MigrationState.BACKFILLING.value,
    MigrationState.CUTOVER.value,
]


class SqlMigrationRepository(IMigrationRepository):
    """Repository managing PostgreSQL storage for Migration aggregates.

    Like the tier registry, each call opens its own short transaction:
    migrations are driven from background tasks, outside any request.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        probe: MigrationRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory for control-plane sessions
            probe: Optional domain probe for observability
        """
        self._session_factory = session_factory
        self._probe = probe or DefaultMigrationRepositoryProbe()

    async def add(self, migration: Migration) -> None:
        """Insert a new migration handle.

        The partial unique index on active migrations rejects a second
        active handle for the tenant, even from another process.

        Raises:
            MigrationInProgressError: If the tenant already has an active
                migration
        """
        try:
            async with self._session_factory.begin() as session:
                session.add(
                    MigrationModel(id=migration.id.value, **self._columns(migration))
                )
        except IntegrityError as e:
            if ACTIVE_MIGRATION_INDEX not in str(e.orig):
                raise
            raise MigrationInProgressError(
                f"Tenant {migration.tenant_id} is already migrating",
                tenant_id=migration.tenant_id.value,
            ) from e

        self._probe.migration_saved(
            migration_id=migration.id.value,
            tenant_id=migration.tenant_id.value,
            state=migration.state.value,
        )

    async def save(self, migration: Migration) -> None:
        """Persist a migration (create or update).

        Args:
            migration: The Migration aggregate to persist
        """
        async with self._session_factory.begin() as session:
            model = await session.get(MigrationModel, migration.id.value)
            columns = self._columns(migration)
            if model is None:
                session.add(MigrationModel(id=migration.id.value, **columns))
            else:
                for name, value in columns.items():
                    setattr(model, name, value)

        self._probe.migration_saved(
            migration_id=migration.id.value,
            tenant_id=migration.tenant_id.value,
            state=migration.state.value,
        )

    async def get_by_id(self, migration_id: MigrationId) -> Migration | None:
        """Fetch a migration by its handle.

        Returns:
            The Migration aggregate, or None if not found
        """
        async with self._session_factory() as session:
            model = await session.get(MigrationModel, migration_id.value)
            if model is None:
                self._probe.migration_not_found(migration_id=migration_id.value)
                return None
            return self._to_domain(model)

    async def get_active_for_tenant(self, tenant_id: TenantId) -> Migration | None:
        """Return the tenant's running migration, if any."""
        stmt = (
            select(MigrationModel)
            .where(MigrationModel.tenant_id == tenant_id.value)
            .where(MigrationModel.state.in_(_ACTIVE_STATES))
            .limit(1)
        )
        return await self._first(stmt)

    async def get_halted_for_tenant(self, tenant_id: TenantId) -> Migration | None:
        """Return the tenant's unresolved failed cutover, if any."""
        stmt = (
            select(MigrationModel)
            .where(MigrationModel.tenant_id == tenant_id.value)
            .where(MigrationModel.state == MigrationState.CUTOVER_FAILED.value)
            .limit(1)
        )
        return await self._first(stmt)

    async def list_for_tenant(self, tenant_id: TenantId) -> list[Migration]:
        """List the tenant's migrations, oldest first."""
        stmt = (
            select(MigrationModel)
            .where(MigrationModel.tenant_id == tenant_id.value)
            .order_by(MigrationModel.created_at)
        )
        return await self._all(stmt)

    async def list_due_for_archival(self, now: datetime) -> list[Migration]:
        """List completed migrations whose source retention has elapsed."""
        stmt = (
            select(MigrationModel)
            .where(MigrationModel.state == MigrationState.COMPLETED.value)
            .where(MigrationModel.source_archived.is_(False))
            .where(MigrationModel.retain_until <= now)
            .order_by(MigrationModel.created_at)
        )
        return await self._all(stmt)

    async def _first(self, stmt) -> Migration | None:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            return None if model is None else self._to_domain(model)

    async def _all(self, stmt) -> list[Migration]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _columns(migration: Migration) -> dict[str, Any]:
        return {
            "tenant_id": migration.tenant_id.value,
            "source_tier": migration.source.tier.value,
            "source_address": migration.source.address,
            "target_tier": migration.target_tier.value,
            "target_address": migration.target.address if migration.target else None,
            "state": migration.state.value,
            "error": migration.error,
            "copied_records": migration.copied_records,
            "replayed_writes": migration.replayed_writes,
            "backfill_confirmed": migration.backfill_confirmed,
            "retain_until": migration.retain_until,
            "source_archived": migration.source_archived,
            "history": [
                {
                    "state": entry.state.value,
                    "occurred_at": entry.occurred_at.isoformat(),
                    "detail": entry.detail,
                }
                for entry in migration.history
            ],
            "created_at": migration.created_at,
            "updated_at": migration.updated_at,
        }

    @staticmethod
    def _to_domain(model: MigrationModel) -> Migration:
        target_tier = Tier(model.target_tier)
        return Migration(
            id=MigrationId(value=model.id),
            tenant_id=TenantId(value=model.tenant_id),
            source=PhysicalTarget(
                tier=Tier(model.source_tier), address=model.source_address
            ),
            target_tier=target_tier,
            state=MigrationState(model.state),
            target=(
                PhysicalTarget(tier=target_tier, address=model.target_address)
                if model.target_address is not None
                else None
            ),
            error=model.error,
            copied_records=model.copied_records,
            replayed_writes=model.replayed_writes,
            backfill_confirmed=model.backfill_confirmed,
            retain_until=model.retain_until,
            source_archived=model.source_archived,
            created_at=model.created_at,
            updated_at=model.updated_at,
            history=[
                MigrationTransition(
                    state=MigrationState(entry["state"]),
                    occurred_at=datetime.fromisoformat(entry["occurred_at"]),
                    detail=entry.get("detail"),
                )
                for entry in model.history
            ],
        )
