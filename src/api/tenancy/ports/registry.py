"""Tenant tier registry port.

The registry is externally owned shared state: a small durable key-value
store reachable only through ``get`` and ``compare_and_swap``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenancy.domain.value_objects import TenantId, TenantTierRecord


@runtime_checkable
class ITenantTierRegistry(Protocol):
    """Durable mapping from tenant to tier record.

    Readers always receive a complete, immutable snapshot. Writers replace a
    snapshot atomically, per tenant, and only if it is still current.
    """

    async def get(self, tenant_id: TenantId) -> TenantTierRecord | None:
        """Return the tenant's current record, or None if it has none."""
        ...

    async def compare_and_swap(
        self,
        tenant_id: TenantId,
        expected: TenantTierRecord | None,
        new: TenantTierRecord,
    ) -> bool:
        """Replace ``expected`` with ``new`` atomically.

        Args:
            tenant_id: Tenant whose record changes
            expected: The snapshot the caller read, or None to create the
                record only if the tenant has none
            new: The replacement record

        Returns:
            True if the swap happened, False if the current record differed
        """
        ...
