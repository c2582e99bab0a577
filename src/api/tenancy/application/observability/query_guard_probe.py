"""Domain probe for Query Guard operations.

Tenant mismatches are security events: they are logged at warning level
with both the resolved and the supplied tenant so they can be alerted on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class QueryGuardProbe(Protocol):
    """Domain probe for tenant-guarded store operations."""

    def tenant_predicate_injected(self, tenant_id: str, kind: str) -> None:
        """Record that the guard added the tenant predicate to a filter."""
        ...

    def operation_forwarded(
        self, tenant_id: str, kind: str, target: str, affected: int
    ) -> None:
        """Record that a guarded operation reached its store."""
        ...

    def tenant_mismatch(
        self, tenant_id: str, supplied_tenant_id: str, kind: str
    ) -> None:
        """Record a caller-supplied tenant that conflicts with the resolved one."""
        ...

    def foreign_record_returned(
        self, tenant_id: str, record_tenant_id: str | None, target: str
    ) -> None:
        """Record that a store returned a record of another tenant."""
        ...

    def tenant_context_missing(self, kind: str) -> None:
        """Record that an operation arrived without a tenant context."""
        ...

    def with_context(self, context: ObservationContext) -> QueryGuardProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultQueryGuardProbe:
    """Default implementation of QueryGuardProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultQueryGuardProbe:
        """Create a new probe with observation context bound."""
        return DefaultQueryGuardProbe(logger=self._logger, context=context)

    def tenant_predicate_injected(self, tenant_id: str, kind: str) -> None:
        """Record that the guard added the tenant predicate to a filter."""
        self._logger.debug(
            "query_guard_tenant_predicate_injected",
            tenant_id=tenant_id,
            kind=kind,
            **self._get_context_kwargs(),
        )

    def operation_forwarded(
        self, tenant_id: str, kind: str, target: str, affected: int
    ) -> None:
        """Record that a guarded operation reached its store."""
        self._logger.debug(
            "query_guard_operation_forwarded",
            tenant_id=tenant_id,
            kind=kind,
            target=target,
            affected=affected,
            **self._get_context_kwargs(),
        )

    def tenant_mismatch(
        self, tenant_id: str, supplied_tenant_id: str, kind: str
    ) -> None:
        """Record a caller-supplied tenant that conflicts with the resolved one."""
        self._logger.warning(
            "query_guard_tenant_mismatch",
            tenant_id=tenant_id,
            supplied_tenant_id=supplied_tenant_id,
            kind=kind,
            security_event=True,
            **self._get_context_kwargs(),
        )

    def foreign_record_returned(
        self, tenant_id: str, record_tenant_id: str | None, target: str
    ) -> None:
        """Record that a store returned a record of another tenant."""
        self._logger.error(
            "query_guard_foreign_record_returned",
            tenant_id=tenant_id,
            record_tenant_id=record_tenant_id,
            target=target,
            security_event=True,
            **self._get_context_kwargs(),
        )

    def tenant_context_missing(self, kind: str) -> None:
        """Record that an operation arrived without a tenant context."""
        self._logger.warning(
            "query_guard_tenant_context_missing",
            kind=kind,
            **self._get_context_kwargs(),
        )
