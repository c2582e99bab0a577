"""Domain probes for tenancy persistence adapters.

Following Domain-Oriented Observability patterns, these probes capture
domain-significant events of the tier registry, the migration repository
and the document store drivers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TierRegistryProbe(Protocol):
    """Domain probe for tier registry operations."""

    def record_created(self, tenant_id: str, target: str) -> None:
        """Record that a tenant received its first tier record."""
        ...

    def record_swapped(self, tenant_id: str, version: int, target: str) -> None:
        """Record that a compare-and-swap replaced a tier record."""
        ...

    def swap_rejected(self, tenant_id: str, expected_version: int | None) -> None:
        """Record that a compare-and-swap found a different record."""
        ...

    def with_context(self, context: ObservationContext) -> TierRegistryProbe:
        """Create a new probe with observation context bound."""
        ...


class MigrationRepositoryProbe(Protocol):
    """Domain probe for migration repository operations."""

    def migration_saved(self, migration_id: str, tenant_id: str, state: str) -> None:
        """Record that a migration handle was persisted."""
        ...

    def migration_not_found(self, migration_id: str) -> None:
        """Record that a migration handle was not found."""
        ...

    def with_context(self, context: ObservationContext) -> MigrationRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DocumentStoreProbe(Protocol):
    """Domain probe for document store drivers."""

    def tenant_frozen(self, address: str, tenant_id: str) -> None:
        """Record that a tenant became read-only on a target."""
        ...

    def tenant_purged(self, address: str, tenant_id: str, removed: int) -> None:
        """Record that a tenant's documents were removed from a target."""
        ...

    def frozen_write_rejected(self, address: str, tenant_id: str) -> None:
        """Record a write rejected because the tenant is frozen on the target."""
        ...

    def with_context(self, context: ObservationContext) -> DocumentStoreProbe:
        """Create a new probe with observation context bound."""
        ...


class _ContextualProbe:
    """Shared constructor and context handling of the default probes."""

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

    def with_context(self, context: ObservationContext) -> Any:
        """Create a new probe with observation context bound."""
        return type(self)(logger=self._logger, context=context)


class DefaultTierRegistryProbe(_ContextualProbe):
    """Default implementation of TierRegistryProbe using structlog."""

    def record_created(self, tenant_id: str, target: str) -> None:
        """Record that a tenant received its first tier record."""
        self._logger.info(
            "tier_record_created",
            tenant_id=tenant_id,
            target=target,
            **self._get_context_kwargs(),
        )

    def record_swapped(self, tenant_id: str, version: int, target: str) -> None:
        """Record that a compare-and-swap replaced a tier record."""
        self._logger.info(
            "tier_record_swapped",
            tenant_id=tenant_id,
            version=version,
            target=target,
            **self._get_context_kwargs(),
        )

    def swap_rejected(self, tenant_id: str, expected_version: int | None) -> None:
        """Record that a compare-and-swap found a different record."""
        self._logger.debug(
            "tier_record_swap_rejected",
            tenant_id=tenant_id,
            expected_version=expected_version,
            **self._get_context_kwargs(),
        )


class DefaultMigrationRepositoryProbe(_ContextualProbe):
    """Default implementation of MigrationRepositoryProbe using structlog."""

    def migration_saved(self, migration_id: str, tenant_id: str, state: str) -> None:
        """Record that a migration handle was persisted."""
        self._logger.debug(
            "migration_saved",
            migration_id=migration_id,
            tenant_id=tenant_id,
            state=state,
            **self._get_context_kwargs(),
        )

    def migration_not_found(self, migration_id: str) -> None:
        """Record that a migration handle was not found."""
        self._logger.debug(
            "migration_not_found",
            migration_id=migration_id,
            **self._get_context_kwargs(),
        )


class DefaultDocumentStoreProbe(_ContextualProbe):
    """Default implementation of DocumentStoreProbe using structlog."""

    def tenant_frozen(self, address: str, tenant_id: str) -> None:
        """Record that a tenant became read-only on a target."""
        self._logger.info(
            "document_store_tenant_frozen",
            address=address,
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def tenant_purged(self, address: str, tenant_id: str, removed: int) -> None:
        """Record that a tenant's documents were removed from a target."""
        self._logger.info(
            "document_store_tenant_purged",
            address=address,
            tenant_id=tenant_id,
            removed=removed,
            **self._get_context_kwargs(),
        )

    def frozen_write_rejected(self, address: str, tenant_id: str) -> None:
        """Record a write rejected because the tenant is frozen on the target."""
        self._logger.warning(
            "document_store_frozen_write_rejected",
            address=address,
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )
