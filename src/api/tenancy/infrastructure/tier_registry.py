"""PostgreSQL implementation of ITenantTierRegistry.

Compare-and-swap is a version-checked ``UPDATE``: the row changes only if
its version still equals the version of the snapshot the caller read.
Creating a record relies on the primary key, so two concurrent creators
cannot both win.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenancy.domain.value_objects import (
    PhysicalTarget,
    TenantId,
    TenantTierRecord,
    Tier,
)
from tenancy.infrastructure.models import TenantTierModel
from tenancy.infrastructure.observability import (
    DefaultTierRegistryProbe,
    TierRegistryProbe,
)
from tenancy.ports.registry import ITenantTierRegistry


class SqlTenantTierRegistry(ITenantTierRegistry):
    """Tier registry stored in the tenant_tiers table.

    Every call runs in a short transaction of its own, so the registry can
    be used from background migrations as well as from requests.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        probe: TierRegistryProbe | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            session_factory: Factory for control-plane sessions
            probe: Optional domain probe for observability
        """
        self._session_factory = session_factory
        self._probe = probe or DefaultTierRegistryProbe()

    async def get(self, tenant_id: TenantId) -> TenantTierRecord | None:
        """Return the tenant's current record, or None."""
        async with self._session_factory() as session:
            model = await session.get(TenantTierModel, tenant_id.value)
            if model is None:
                return None
            return self._to_domain(model)

    async def compare_and_swap(
        self,
        tenant_id: TenantId,
        expected: TenantTierRecord | None,
        new: TenantTierRecord,
    ) -> bool:
        """Replace ``expected`` with ``new`` if it is still current."""
        if expected is None:
            return await self._create(tenant_id, new)

        async with self._session_factory.begin() as session:
            stmt = (
                update(TenantTierModel)
                .where(TenantTierModel.tenant_id == tenant_id.value)
                .where(TenantTierModel.version == expected.version)
                .values(**self._columns(new))
            )
            result = await session.execute(stmt)

        if result.rowcount != 1:
            self._probe.swap_rejected(
                tenant_id=tenant_id.value, expected_version=expected.version
            )
            return False

        self._probe.record_swapped(
            tenant_id=tenant_id.value, version=new.version, target=str(new.target)
        )
        return True

    async def _create(self, tenant_id: TenantId, new: TenantTierRecord) -> bool:
        try:
            async with self._session_factory.begin() as session:
                session.add(TenantTierModel(tenant_id=tenant_id.value, **self._columns(new)))
        except IntegrityError:
            self._probe.swap_rejected(tenant_id=tenant_id.value, expected_version=None)
            return False

        self._probe.record_created(tenant_id=tenant_id.value, target=str(new.target))
        return True

    @staticmethod
    def _columns(record: TenantTierRecord) -> dict[str, object]:
        return {
            "tier": record.target.tier.value,
            "target_address": record.target.address,
            "migrating_tier": (
                record.migrating_to.tier.value if record.migrating_to else None
            ),
            "migrating_address": (
                record.migrating_to.address if record.migrating_to else None
            ),
            "version": record.version,
        }

    @staticmethod
    def _to_domain(model: TenantTierModel) -> TenantTierRecord:
        migrating_to = None
        if model.migrating_tier is not None and model.migrating_address is not None:
            migrating_to = PhysicalTarget(
                tier=Tier(model.migrating_tier), address=model.migrating_address
            )
        return TenantTierRecord(
            tenant_id=TenantId(value=model.tenant_id),
            target=PhysicalTarget(tier=Tier(model.tier), address=model.target_address),
            migrating_to=migrating_to,
            version=model.version,
        )
