"""SQLAlchemy ORM models for the tenancy bounded context."""

from tenancy.infrastructure.models.document import DocumentModel, FrozenTenantModel
from tenancy.infrastructure.models.migration import (
    ACTIVE_MIGRATION_INDEX,
    MigrationModel,
)
from tenancy.infrastructure.models.tier_record import TenantTierModel

__all__ = [
    "ACTIVE_MIGRATION_INDEX",
    "DocumentModel",
    "FrozenTenantModel",
    "MigrationModel",
    "TenantTierModel",
]
