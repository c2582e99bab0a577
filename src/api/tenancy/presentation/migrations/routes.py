"""HTTP routes for tier migrations.

All endpoints require the operator role. Triggering returns the durable
migration handle immediately; the steps run as a background task and their
progress is read back through the handle.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from shared_kernel.auth import TokenClaims
from tenancy.application import MigrationService
from tenancy.dependencies import get_migration_service, require_operator
from tenancy.domain.exceptions import TenancyError
from tenancy.domain.value_objects import MigrationId, TenantId
from tenancy.presentation.errors import to_http_exception
from tenancy.presentation.migrations.models import (
    MigrationResponse,
    ResolveMigrationRequest,
    TriggerMigrationRequest,
)

router = APIRouter(
    prefix="/migrations",
    tags=["migrations"],
)


def _parse_migration_id(migration_id: str) -> MigrationId:
    try:
        return MigrationId.from_string(migration_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid migration ID format: {e}",
        ) from e


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def trigger_migration(
    request: TriggerMigrationRequest,
    background_tasks: BackgroundTasks,
    _: Annotated[TokenClaims, Depends(require_operator)],
    service: Annotated[MigrationService, Depends(get_migration_service)],
) -> MigrationResponse:
    """Trigger a tier migration for a tenant.

    Raises:
        HTTPException: 400 if the tenant ID is invalid
        HTTPException: 409 if the tenant is migrating, halted or already
            on the tier
    """
    try:
        tenant_id = TenantId.from_string(request.tenant_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tenant ID: {e}",
        ) from e

    try:
        migration = await service.trigger_migration(
            tenant_id, request.to_domain_tier()
        )
    except TenancyError as e:
        raise to_http_exception(e) from e

    background_tasks.add_task(service.run, migration.id)
    return MigrationResponse.from_domain(migration)


@router.get("")
async def list_migrations(
    tenant_id: str,
    _: Annotated[TokenClaims, Depends(require_operator)],
    service: Annotated[MigrationService, Depends(get_migration_service)],
) -> list[MigrationResponse]:
    """List a tenant's migrations, oldest first."""
    try:
        tenant_id_obj = TenantId.from_string(tenant_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tenant ID: {e}",
        ) from e

    migrations = await service.list_for_tenant(tenant_id_obj)
    return [MigrationResponse.from_domain(m) for m in migrations]


@router.get("/{migration_id}")
async def get_migration(
    migration_id: str,
    _: Annotated[TokenClaims, Depends(require_operator)],
    service: Annotated[MigrationService, Depends(get_migration_service)],
) -> MigrationResponse:
    """Get the status of a migration.

    Raises:
        HTTPException: 400 if the migration ID is invalid
        HTTPException: 404 if the migration does not exist
    """
    migration_id_obj = _parse_migration_id(migration_id)
    try:
        migration = await service.get_status(migration_id_obj)
    except TenancyError as e:
        raise to_http_exception(e) from e
    return MigrationResponse.from_domain(migration)


@router.post("/{migration_id}/resolve")
async def resolve_migration(
    migration_id: str,
    request: ResolveMigrationRequest,
    _: Annotated[TokenClaims, Depends(require_operator)],
    service: Annotated[MigrationService, Depends(get_migration_service)],
) -> MigrationResponse:
    """Clear a failed cutover after the registry has been repaired.

    Raises:
        HTTPException: 404 if the migration does not exist
        HTTPException: 409 if the migration is not halted
    """
    migration_id_obj = _parse_migration_id(migration_id)
    try:
        migration = await service.resolve(migration_id_obj, request.note)
    except TenancyError as e:
        raise to_http_exception(e) from e
    return MigrationResponse.from_domain(migration)
