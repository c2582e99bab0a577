"""Domain probes for target provisioning and the retention sweeper."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ProvisionerProbe(Protocol):
    """Domain probe for physical target allocation."""

    def target_allocated(self, tenant_id: str, tier: str, address: str) -> None:
        """Record that a target was allocated for a tenant."""
        ...

    def target_archived(
        self, tenant_id: str, address: str, archive_address: str, archived: int
    ) -> None:
        """Record that a tenant's documents were moved to the archive."""
        ...

    def with_context(self, context: ObservationContext) -> ProvisionerProbe:
        """Create a new probe with observation context bound."""
        ...


class RetentionSweeperProbe(Protocol):
    """Domain probe for the retention sweeper background task."""

    def sweeper_started(self, interval_seconds: float) -> None:
        """Record that the sweeper loop started."""
        ...

    def sweeper_stopped(self) -> None:
        """Record that the sweeper loop stopped."""
        ...

    def sweep_completed(self, archived: int) -> None:
        """Record a finished sweep."""
        ...

    def sweep_failed(self, error: Exception) -> None:
        """Record a sweep that raised; the loop keeps running."""
        ...


class DefaultProvisionerProbe:
    """Default implementation of ProvisionerProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultProvisionerProbe:
        """Create a new probe with observation context bound."""
        return DefaultProvisionerProbe(logger=self._logger, context=context)

    def target_allocated(self, tenant_id: str, tier: str, address: str) -> None:
        """Record that a target was allocated for a tenant."""
        self._logger.info(
            "target_allocated",
            tenant_id=tenant_id,
            tier=tier,
            address=address,
            **self._get_context_kwargs(),
        )

    def target_archived(
        self, tenant_id: str, address: str, archive_address: str, archived: int
    ) -> None:
        """Record that a tenant's documents were moved to the archive."""
        self._logger.info(
            "target_archived",
            tenant_id=tenant_id,
            address=address,
            archive_address=archive_address,
            archived=archived,
            **self._get_context_kwargs(),
        )


class DefaultRetentionSweeperProbe:
    """Default implementation of RetentionSweeperProbe using structlog."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self._logger = logger or structlog.get_logger()

    def sweeper_started(self, interval_seconds: float) -> None:
        """Record that the sweeper loop started."""
        self._logger.info(
            "retention_sweeper_started", interval_seconds=interval_seconds
        )

    def sweeper_stopped(self) -> None:
        """Record that the sweeper loop stopped."""
        self._logger.info("retention_sweeper_stopped")

    def sweep_completed(self, archived: int) -> None:
        """Record a finished sweep."""
        self._logger.debug("retention_sweep_completed", archived=archived)

    def sweep_failed(self, error: Exception) -> None:
        """Record a sweep that raised; the loop keeps running."""
        self._logger.error(
            "retention_sweep_failed",
            error=str(error),
            error_type=type(error).__name__,
        )
