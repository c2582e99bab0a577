"""Target provisioner backed by configured addresses.

Shared and sharded targets come from the routing settings; a dedicated
target is derived per tenant from the dedicated address template. Retired
sources are archived by copying the tenant's documents to the archive
address and purging them from the source.
"""

from __future__ import annotations

from tenancy.domain.operations import TENANT_FIELD
from tenancy.domain.sharding import select_shard
from tenancy.domain.value_objects import PhysicalTarget, TenantId, Tier
from tenancy.infrastructure.observability import (
    DefaultProvisionerProbe,
    ProvisionerProbe,
)
from tenancy.ports.provisioning import ITargetProvisioner
from tenancy.ports.stores import IStoreDriverFactory


class StaticTargetProvisioner(ITargetProvisioner):
    """Allocates targets from a static address layout."""

    def __init__(
        self,
        drivers: IStoreDriverFactory,
        shared_pool_address: str,
        shard_addresses: list[str],
        dedicated_address_template: str,
        archive_address: str,
        probe: ProvisionerProbe | None = None,
    ) -> None:
        """Initialize the provisioner.

        Args:
            drivers: Store drivers, used to prepare and archive targets
            shared_pool_address: Address of the shared pool
            shard_addresses: Addresses of the shards, indexed by shard key
            dedicated_address_template: Format string with a ``{tenant_id}``
                placeholder for dedicated clusters
            archive_address: Where retired tenant data is moved
            probe: Optional domain probe for observability
        """
        self._drivers = drivers
        self._shared_pool_address = shared_pool_address
        self._shard_addresses = list(shard_addresses)
        self._dedicated_address_template = dedicated_address_template
        self._archive_address = archive_address
        self._probe = probe or DefaultProvisionerProbe()

    async def allocate(self, tenant_id: TenantId, tier: Tier) -> PhysicalTarget:
        """Select the tenant's target on a tier and make it ready."""
        if tier == Tier.SHARED:
            address = self._shared_pool_address
        elif tier == Tier.SHARDED:
            address = select_shard(tenant_id, self._shard_addresses)
        else:
            address = self._dedicated_address_template.format(tenant_id=tenant_id.value)

        await self._drivers.prepare(address)
        self._probe.target_allocated(
            tenant_id=tenant_id.value, tier=tier.value, address=address
        )
        return PhysicalTarget(tier=tier, address=address)

    async def archive(self, tenant_id: TenantId, target: PhysicalTarget) -> int:
        """Move the tenant's documents from a retired target to the archive."""
        source = self._drivers.driver(target.address)
        await self._drivers.prepare(self._archive_address)
        archive = self._drivers.driver(self._archive_address)

        documents = await source.find({TENANT_FIELD: tenant_id.value})
        for document in documents:
            await archive.upsert(document)
        await source.purge_tenant(tenant_id.value)

        self._probe.target_archived(
            tenant_id=tenant_id.value,
            address=target.address,
            archive_address=self._archive_address,
            archived=len(documents),
        )
        return len(documents)
