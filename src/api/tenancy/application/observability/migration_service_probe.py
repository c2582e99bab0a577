"""Protocol for migration service observability.

Aborted migrations and failed cutovers are operator notifications: they are
logged at error level with the migration handle so they can be paged on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class MigrationServiceProbe(Protocol):
    """Domain probe for tier migration operations."""

    def migration_requested(
        self, migration_id: str, tenant_id: str, source: str, target_tier: str
    ) -> None:
        """Record that an operator triggered a migration."""
        ...

    def target_provisioned(self, migration_id: str, tenant_id: str, target: str) -> None:
        """Record that the destination target was allocated."""
        ...

    def backfill_confirmed(self, migration_id: str, tenant_id: str, copied: int) -> None:
        """Record that the destination holds every source record."""
        ...

    def cutover_started(self, migration_id: str, tenant_id: str) -> None:
        """Record that cutover began."""
        ...

    def migration_completed(
        self, migration_id: str, tenant_id: str, target: str, replayed: int
    ) -> None:
        """Record that the registry now points at the new target."""
        ...

    def migration_aborted(
        self, migration_id: str, tenant_id: str, stage: str, reason: str
    ) -> None:
        """Record that a migration aborted; the tenant stays on its old target."""
        ...

    def cutover_failed(self, migration_id: str, tenant_id: str, reason: str) -> None:
        """Record a fatal failure after the registry swap."""
        ...

    def migration_rejected(self, tenant_id: str, reason: str) -> None:
        """Record that a trigger was refused."""
        ...

    def migration_resolved(self, migration_id: str, tenant_id: str) -> None:
        """Record that an operator resolved a failed cutover."""
        ...

    def source_archived(self, migration_id: str, tenant_id: str, archived: int) -> None:
        """Record that a retired source was archived."""
        ...

    def archival_failed(self, migration_id: str, tenant_id: str, error: Exception) -> None:
        """Record that archiving a retired source failed (retried next sweep)."""
        ...

    def with_context(self, context: ObservationContext) -> MigrationServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultMigrationServiceProbe:
    """Default implementation of MigrationServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultMigrationServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultMigrationServiceProbe(logger=self._logger, context=context)

    def migration_requested(
        self, migration_id: str, tenant_id: str, source: str, target_tier: str
    ) -> None:
        """Record that an operator triggered a migration."""
        self._logger.info(
            "migration_requested",
            migration_id=migration_id,
            tenant_id=tenant_id,
            source=source,
            target_tier=target_tier,
            **self._get_context_kwargs(),
        )

    def target_provisioned(self, migration_id: str, tenant_id: str, target: str) -> None:
        """Record that the destination target was allocated."""
        self._logger.info(
            "migration_target_provisioned",
            migration_id=migration_id,
            tenant_id=tenant_id,
            target=target,
            **self._get_context_kwargs(),
        )

    def backfill_confirmed(self, migration_id: str, tenant_id: str, copied: int) -> None:
        """Record that the destination holds every source record."""
        self._logger.info(
            "migration_backfill_confirmed",
            migration_id=migration_id,
            tenant_id=tenant_id,
            copied=copied,
            **self._get_context_kwargs(),
        )

    def cutover_started(self, migration_id: str, tenant_id: str) -> None:
        """Record that cutover began."""
        self._logger.info(
            "migration_cutover_started",
            migration_id=migration_id,
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def migration_completed(
        self, migration_id: str, tenant_id: str, target: str, replayed: int
    ) -> None:
        """Record that the registry now points at the new target."""
        self._logger.info(
            "migration_completed",
            migration_id=migration_id,
            tenant_id=tenant_id,
            target=target,
            replayed=replayed,
            **self._get_context_kwargs(),
        )

    def migration_aborted(
        self, migration_id: str, tenant_id: str, stage: str, reason: str
    ) -> None:
        """Record that a migration aborted; the tenant stays on its old target."""
        self._logger.error(
            "migration_aborted",
            migration_id=migration_id,
            tenant_id=tenant_id,
            stage=stage,
            reason=reason,
            operator_notification=True,
            **self._get_context_kwargs(),
        )

    def cutover_failed(self, migration_id: str, tenant_id: str, reason: str) -> None:
        """Record a fatal failure after the registry swap."""
        self._logger.critical(
            "migration_cutover_failed",
            migration_id=migration_id,
            tenant_id=tenant_id,
            reason=reason,
            operator_notification=True,
            message="Manual registry repair required; migrations halted for tenant",
            **self._get_context_kwargs(),
        )

    def migration_rejected(self, tenant_id: str, reason: str) -> None:
        """Record that a trigger was refused."""
        self._logger.warning(
            "migration_rejected",
            tenant_id=tenant_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def migration_resolved(self, migration_id: str, tenant_id: str) -> None:
        """Record that an operator resolved a failed cutover."""
        self._logger.info(
            "migration_resolved",
            migration_id=migration_id,
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def source_archived(self, migration_id: str, tenant_id: str, archived: int) -> None:
        """Record that a retired source was archived."""
        self._logger.info(
            "migration_source_archived",
            migration_id=migration_id,
            tenant_id=tenant_id,
            archived=archived,
            **self._get_context_kwargs(),
        )

    def archival_failed(self, migration_id: str, tenant_id: str, error: Exception) -> None:
        """Record that archiving a retired source failed (retried next sweep)."""
        self._logger.error(
            "migration_archival_failed",
            migration_id=migration_id,
            tenant_id=tenant_id,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
