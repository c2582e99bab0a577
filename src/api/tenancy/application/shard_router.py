"""Shard Router.

Maps a tenant to the physical target that currently holds its data. The
router is stateless: every call reads a fresh registry snapshot.
"""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from tenancy.application.observability import (
    DefaultShardRouterProbe,
    ShardRouterProbe,
)
from tenancy.application.retry import RetryExhaustedError, RetryPolicy, retry
from tenancy.domain.exceptions import RoutingUnavailableError
from tenancy.domain.value_objects import (
    PhysicalTarget,
    TenantId,
    TenantTierRecord,
    Tier,
)
from tenancy.ports.registry import ITenantTierRegistry

T = TypeVar("T")


class ShardRouter:
    """Routes tenants to physical targets through the tier registry.

    Routing rules:
    - Known tenant: its record's authoritative target
    - Tenant mid-migration: still the old target, until the swap
    - Unknown tenant: the shared pool, recorded lazily with a
      compare-and-swap from "absent"
    """

    def __init__(
        self,
        registry: ITenantTierRegistry,
        shared_pool_address: str,
        retry_policy: RetryPolicy | None = None,
        probe: ShardRouterProbe | None = None,
    ) -> None:
        self._registry = registry
        self._shared_pool_address = shared_pool_address
        self._retry_policy = retry_policy or RetryPolicy()
        self._probe = probe or DefaultShardRouterProbe()

    async def route(self, tenant_id: TenantId) -> PhysicalTarget:
        """Return the target reads and writes of the tenant go to.

        Raises:
            RoutingUnavailableError: If the registry stays unreachable
        """
        record = await self.resolve_record(tenant_id)
        if record.migrating_to is not None:
            self._probe.routed_during_migration(
                tenant_id=tenant_id.value,
                target=str(record.target),
                migrating_to=str(record.migrating_to),
            )
        else:
            self._probe.tenant_routed(
                tenant_id=tenant_id.value, target=str(record.target)
            )
        return record.target

    async def resolve_record(self, tenant_id: TenantId) -> TenantTierRecord:
        """Return the tenant's record, onboarding it to the shared pool if absent.

        Raises:
            RoutingUnavailableError: If the registry stays unreachable
        """
        record = await self._call_registry(
            tenant_id, lambda: self._registry.get(tenant_id)
        )
        if record is not None:
            return record

        onboarded = TenantTierRecord.onboard(tenant_id, self.shared_target())
        created = await self._call_registry(
            tenant_id,
            lambda: self._registry.compare_and_swap(tenant_id, None, onboarded),
        )
        if created:
            self._probe.tenant_onboarded(
                tenant_id=tenant_id.value, target=str(onboarded.target)
            )
            return onboarded

        self._probe.onboarding_race_lost(tenant_id=tenant_id.value)
        winner = await self._call_registry(
            tenant_id, lambda: self._registry.get(tenant_id)
        )
        if winner is None:
            raise RoutingUnavailableError(
                f"Registry lost the record of tenant {tenant_id}",
                tenant_id=tenant_id.value,
            )
        return winner

    def shared_target(self) -> PhysicalTarget:
        """The shared pool every new tenant starts on."""
        return PhysicalTarget(tier=Tier.SHARED, address=self._shared_pool_address)

    async def _call_registry(
        self, tenant_id: TenantId, call: Callable[[], Awaitable[T]]
    ) -> T:
        def on_retry(attempt: int, error: Exception) -> None:
            self._probe.registry_retry(
                tenant_id=tenant_id.value, attempt=attempt, error=error
            )

        try:
            return await retry(call, self._retry_policy, on_retry=on_retry)
        except RetryExhaustedError as e:
            self._probe.routing_unavailable(
                tenant_id=tenant_id.value,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            raise RoutingUnavailableError(
                f"Tier registry unavailable for tenant {tenant_id}",
                tenant_id=tenant_id.value,
            ) from e.last_error
