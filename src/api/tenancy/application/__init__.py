"""Application services for the tenancy bounded context."""

from tenancy.application.migration_service import MigrationService
from tenancy.application.query_guard import QueryGuard
from tenancy.application.retry import RetryPolicy
from tenancy.application.shard_router import ShardRouter
from tenancy.application.tenant_context_resolver import TenantContextResolver
from tenancy.application.write_gate import TenantWriteGate

__all__ = [
    "MigrationService",
    "QueryGuard",
    "RetryPolicy",
    "ShardRouter",
    "TenantContextResolver",
    "TenantWriteGate",
]
