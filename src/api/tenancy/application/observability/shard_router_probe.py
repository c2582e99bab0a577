"""Domain probe for Shard Router operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ShardRouterProbe(Protocol):
    """Domain probe for tenant routing."""

    def tenant_routed(self, tenant_id: str, target: str) -> None:
        """Record the target a tenant was routed to."""
        ...

    def routed_during_migration(
        self, tenant_id: str, target: str, migrating_to: str
    ) -> None:
        """Record that a migrating tenant was routed to its old target."""
        ...

    def tenant_onboarded(self, tenant_id: str, target: str) -> None:
        """Record that an unknown tenant received its first tier record."""
        ...

    def onboarding_race_lost(self, tenant_id: str) -> None:
        """Record that another router created the tenant's record first."""
        ...

    def registry_retry(self, tenant_id: str, attempt: int, error: Exception) -> None:
        """Record a transient registry failure that will be retried."""
        ...

    def routing_unavailable(self, tenant_id: str, attempts: int, error: str) -> None:
        """Record that routing gave up after its retry budget."""
        ...

    def with_context(self, context: ObservationContext) -> ShardRouterProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultShardRouterProbe:
    """Default implementation of ShardRouterProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultShardRouterProbe:
        """Create a new probe with observation context bound."""
        return DefaultShardRouterProbe(logger=self._logger, context=context)

    def tenant_routed(self, tenant_id: str, target: str) -> None:
        """Record the target a tenant was routed to."""
        self._logger.debug(
            "shard_router_tenant_routed",
            tenant_id=tenant_id,
            target=target,
            **self._get_context_kwargs(),
        )

    def routed_during_migration(
        self, tenant_id: str, target: str, migrating_to: str
    ) -> None:
        """Record that a migrating tenant was routed to its old target."""
        self._logger.debug(
            "shard_router_routed_during_migration",
            tenant_id=tenant_id,
            target=target,
            migrating_to=migrating_to,
            **self._get_context_kwargs(),
        )

    def tenant_onboarded(self, tenant_id: str, target: str) -> None:
        """Record that an unknown tenant received its first tier record."""
        self._logger.info(
            "shard_router_tenant_onboarded",
            tenant_id=tenant_id,
            target=target,
            **self._get_context_kwargs(),
        )

    def onboarding_race_lost(self, tenant_id: str) -> None:
        """Record that another router created the tenant's record first."""
        self._logger.debug(
            "shard_router_onboarding_race_lost",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def registry_retry(self, tenant_id: str, attempt: int, error: Exception) -> None:
        """Record a transient registry failure that will be retried."""
        self._logger.warning(
            "shard_router_registry_retry",
            tenant_id=tenant_id,
            attempt=attempt,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def routing_unavailable(self, tenant_id: str, attempts: int, error: str) -> None:
        """Record that routing gave up after its retry budget."""
        self._logger.error(
            "shard_router_routing_unavailable",
            tenant_id=tenant_id,
            attempts=attempts,
            error=error,
            **self._get_context_kwargs(),
        )
