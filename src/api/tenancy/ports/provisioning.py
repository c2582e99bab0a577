"""Target provisioning port."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenancy.domain.value_objects import PhysicalTarget, TenantId, Tier


@runtime_checkable
class ITargetProvisioner(Protocol):
    """Allocates and archives the physical targets of tenants."""

    async def allocate(self, tenant_id: TenantId, tier: Tier) -> PhysicalTarget:
        """Allocate (or select) the target a tenant should have on a tier.

        The returned target is ready to receive documents.
        """
        ...

    async def archive(self, tenant_id: TenantId, target: PhysicalTarget) -> int:
        """Move the tenant's retained documents off a retired target.

        Returns:
            Number of documents archived
        """
        ...
