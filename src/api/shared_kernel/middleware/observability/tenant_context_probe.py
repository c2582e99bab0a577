"""Domain probe for tenant context resolution.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events related to resolving the caller's tenant from
validated token claims.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantContextProbe(Protocol):
    """Domain probe for tenant context resolution operations."""

    def tenant_resolved(self, tenant_id: str, user_id: str, source: str) -> None:
        """Record that tenant context was resolved."""
        ...

    def tenant_claim_missing(self, user_id: str) -> None:
        """Record that the credential carried no tenant claim."""
        ...

    def tenant_ambiguous(self, user_id: str, candidate_count: int) -> None:
        """Record that several tenants were possible and none was selected."""
        ...

    def tenant_selector_rejected(self, requested: str, user_id: str) -> None:
        """Record that X-Tenant-ID named a tenant outside the credential."""
        ...

    def with_context(self, context: ObservationContext) -> TenantContextProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantContextProbe:
    """Default implementation of TenantContextProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultTenantContextProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantContextProbe(logger=self._logger, context=context)

    def tenant_resolved(self, tenant_id: str, user_id: str, source: str) -> None:
        """Record that tenant context was resolved."""
        self._logger.debug(
            "tenant_context_resolved",
            tenant_id=tenant_id,
            user_id=user_id,
            source=source,
            **self._get_context_kwargs(),
        )

    def tenant_claim_missing(self, user_id: str) -> None:
        """Record that the credential carried no tenant claim."""
        self._logger.warning(
            "tenant_context_claim_missing",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def tenant_ambiguous(self, user_id: str, candidate_count: int) -> None:
        """Record that several tenants were possible and none was selected."""
        self._logger.warning(
            "tenant_context_ambiguous",
            user_id=user_id,
            candidate_count=candidate_count,
            message="X-Tenant-ID header is required when the credential carries several tenants",
            **self._get_context_kwargs(),
        )

    def tenant_selector_rejected(self, requested: str, user_id: str) -> None:
        """Record that X-Tenant-ID named a tenant outside the credential."""
        self._logger.warning(
            "tenant_context_selector_rejected",
            requested=requested,
            user_id=user_id,
            **self._get_context_kwargs(),
        )
