"""In-memory implementation of ITenantTierRegistry.

Holds immutable TenantTierRecord snapshots in a dict. Compare-and-swap runs
under one registry-wide lock; the critical section is a dict lookup and an
assignment, so tenants barely contend.
"""

from __future__ import annotations

import threading

from tenancy.domain.value_objects import TenantId, TenantTierRecord
from tenancy.infrastructure.observability import (
    DefaultTierRegistryProbe,
    TierRegistryProbe,
)
from tenancy.ports.registry import ITenantTierRegistry


class InMemoryTenantTierRegistry(ITenantTierRegistry):
    """Process-local tier registry for development and tests."""

    def __init__(self, probe: TierRegistryProbe | None = None) -> None:
        self._records: dict[str, TenantTierRecord] = {}
        self._lock = threading.Lock()
        self._probe = probe or DefaultTierRegistryProbe()

    async def get(self, tenant_id: TenantId) -> TenantTierRecord | None:
        """Return the tenant's current snapshot, or None."""
        return self._records.get(tenant_id.value)

    async def compare_and_swap(
        self,
        tenant_id: TenantId,
        expected: TenantTierRecord | None,
        new: TenantTierRecord,
    ) -> bool:
        """Replace ``expected`` with ``new`` if it is still current."""
        with self._lock:
            current = self._records.get(tenant_id.value)
            if current != expected:
                self._probe.swap_rejected(
                    tenant_id=tenant_id.value,
                    expected_version=expected.version if expected else None,
                )
                return False
            self._records[tenant_id.value] = new

        if expected is None:
            self._probe.record_created(tenant_id=tenant_id.value, target=str(new.target))
        else:
            self._probe.record_swapped(
                tenant_id=tenant_id.value, version=new.version, target=str(new.target)
            )
        return True
