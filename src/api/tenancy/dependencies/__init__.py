"""FastAPI dependencies for the tenancy bounded context."""

from tenancy.dependencies.authentication import (
    get_jwt_validator,
    get_token_claims,
    require_operator,
)
from tenancy.dependencies.services import (
    get_migration_service,
    get_query_guard,
    get_retention_sweeper,
    get_shard_router,
    get_store_drivers,
    get_tier_registry,
    get_write_gate,
)
from tenancy.dependencies.tenant_context import (
    get_tenant_context,
    get_tenant_context_resolver,
)

__all__ = [
    "get_jwt_validator",
    "get_migration_service",
    "get_query_guard",
    "get_retention_sweeper",
    "get_shard_router",
    "get_store_drivers",
    "get_tenant_context",
    "get_tenant_context_resolver",
    "get_tier_registry",
    "get_token_claims",
    "get_write_gate",
    "require_operator",
]
