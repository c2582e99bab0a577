"""Tenant context FastAPI dependency.

Resolves the tenant of a request from its validated token claims and the
optional X-Tenant-ID selector.

Usage in FastAPI routes:
    @router.get("/example")
    async def example(
        tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    ):
        # tenant.tenant_id is the resolved tenant
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from shared_kernel.auth import TokenClaims
from shared_kernel.middleware.observability import DefaultTenantContextProbe
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application.tenant_context_resolver import TenantContextResolver
from tenancy.dependencies.authentication import get_token_claims
from tenancy.domain.exceptions import MissingTenantContextError


@lru_cache
def get_tenant_context_resolver() -> TenantContextResolver:
    """Get the tenant context resolver (stateless, shared)."""
    return TenantContextResolver(probe=DefaultTenantContextProbe())


async def get_tenant_context(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    resolver: Annotated[TenantContextResolver, Depends(get_tenant_context_resolver)],
    x_tenant_id: Annotated[str | None, Header(alias="X-Tenant-ID")] = None,
) -> TenantContext:
    """Resolve the tenant context of the request.

    Raises:
        HTTPException 400: If several tenants are possible and none was selected
        HTTPException 401: If no tenant granted to the credential applies
    """
    try:
        return resolver.resolve(claims, x_tenant_id)
    except MissingTenantContextError as e:
        if e.ambiguous:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            ) from e
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        ) from e
