"""Tenant Context Resolver.

Derives exactly one tenant per request from validated credentials. Tenant
identity is never taken from request data alone: the optional X-Tenant-ID
selector may only pick among the tenants the token already carries.
"""

from __future__ import annotations

from shared_kernel.auth import TokenClaims
from shared_kernel.middleware.observability import (
    DefaultTenantContextProbe,
    TenantContextProbe,
)
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.domain.exceptions import MissingTenantContextError
from tenancy.domain.value_objects import TenantId


class TenantContextResolver:
    """Resolves the tenant a request acts for.

    Resolution rules:
    - No tenant claim: missing context
    - One tenant claim: that tenant; a selector must name it
    - Several tenant claims: the selector must name one of them, otherwise
      the context is ambiguous
    """

    def __init__(self, probe: TenantContextProbe | None = None) -> None:
        self._probe = probe or DefaultTenantContextProbe()

    def resolve(self, claims: TokenClaims, selector: str | None = None) -> TenantContext:
        """Resolve the tenant context for validated claims.

        Args:
            claims: Claims of a validated bearer token
            selector: Raw X-Tenant-ID header value, if the caller sent one

        Returns:
            TenantContext for exactly one tenant

        Raises:
            MissingTenantContextError: If no single tenant can be resolved
        """
        candidates = claims.tenant_ids
        if not candidates:
            self._probe.tenant_claim_missing(user_id=claims.sub)
            raise MissingTenantContextError("Credential carries no tenant")

        requested = selector.strip() if selector is not None else ""
        if requested:
            try:
                tenant_id = TenantId.from_string(requested)
            except ValueError as e:
                self._probe.tenant_selector_rejected(
                    requested=requested, user_id=claims.sub
                )
                raise MissingTenantContextError(str(e)) from e

            if tenant_id.value not in candidates:
                self._probe.tenant_selector_rejected(
                    requested=requested, user_id=claims.sub
                )
                raise MissingTenantContextError(
                    f"Tenant {tenant_id} is not granted to this credential"
                )

            source = "token" if len(candidates) == 1 else "header"
            self._probe.tenant_resolved(
                tenant_id=tenant_id.value, user_id=claims.sub, source=source
            )
            return TenantContext(tenant_id=tenant_id.value, source=source)

        if len(candidates) > 1:
            self._probe.tenant_ambiguous(
                user_id=claims.sub, candidate_count=len(candidates)
            )
            raise MissingTenantContextError(
                "Credential carries several tenants; select one with X-Tenant-ID",
                ambiguous=True,
            )

        tenant_id = TenantId.from_string(candidates[0])
        self._probe.tenant_resolved(
            tenant_id=tenant_id.value, user_id=claims.sub, source="token"
        )
        return TenantContext(tenant_id=tenant_id.value, source="token")
