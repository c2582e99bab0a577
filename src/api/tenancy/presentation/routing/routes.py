"""HTTP routes for tenant routing information."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application import ShardRouter
from tenancy.dependencies import get_shard_router, get_tenant_context
from tenancy.domain.exceptions import TenancyError
from tenancy.domain.value_objects import TenantId
from tenancy.presentation.errors import to_http_exception
from tenancy.presentation.routing.models import TierRecordResponse

router = APIRouter(
    prefix="/tenancy",
    tags=["tenancy"],
)


@router.get("/route")
async def get_route(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    shard_router: Annotated[ShardRouter, Depends(get_shard_router)],
) -> TierRecordResponse:
    """Return the caller's tier record.

    Unknown tenants are onboarded to the shared pool on first lookup.

    Raises:
        HTTPException: 503 if the registry is unavailable
    """
    try:
        record = await shard_router.resolve_record(TenantId.from_string(tenant.tenant_id))
    except TenancyError as e:
        raise to_http_exception(e) from e
    return TierRecordResponse.from_domain(record)
