"""Pydantic models for migration API requests and responses."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from tenancy.domain.aggregates import Migration
from tenancy.domain.value_objects import Tier


class TierEnum(StrEnum):
    """API-level enum for tiers.

    Maps to domain Tier values for validation.
    """

    SHARED = "shared"
    SHARDED = "sharded"
    DEDICATED = "dedicated"


class TriggerMigrationRequest(BaseModel):
    """Request model for triggering a migration."""

    tenant_id: str = Field(..., description="Tenant to migrate", min_length=1, max_length=255)
    target_tier: TierEnum = Field(..., description="Tier to move the tenant to")

    def to_domain_tier(self) -> Tier:
        """Convert API tier to domain Tier."""
        return Tier(self.target_tier.value)


class ResolveMigrationRequest(BaseModel):
    """Request model for resolving a failed cutover."""

    note: str = Field(
        ..., description="What the operator repaired", min_length=1, max_length=1000
    )


class MigrationTransitionResponse(BaseModel):
    """Response model for one migration state change."""

    state: str
    occurred_at: datetime
    detail: str | None = None


class MigrationResponse(BaseModel):
    """Response model for a migration handle."""

    id: str = Field(..., description="Migration ID (ULID format)")
    tenant_id: str = Field(..., description="Tenant being migrated")
    state: str = Field(..., description="Current state")
    source_tier: str
    source_address: str
    target_tier: str
    target_address: str | None = None
    error: str | None = None
    copied_records: int = 0
    replayed_writes: int = 0
    retain_until: datetime | None = None
    source_archived: bool = False
    created_at: datetime
    updated_at: datetime
    history: list[MigrationTransitionResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, migration: Migration) -> MigrationResponse:
        """Convert domain Migration aggregate to API response.

        Args:
            migration: Migration domain aggregate

        Returns:
            MigrationResponse
        """
        return cls(
            id=migration.id.value,
            tenant_id=migration.tenant_id.value,
            state=migration.state.value,
            source_tier=migration.source.tier.value,
            source_address=migration.source.address,
            target_tier=migration.target_tier.value,
            target_address=migration.target.address if migration.target else None,
            error=migration.error,
            copied_records=migration.copied_records,
            replayed_writes=migration.replayed_writes,
            retain_until=migration.retain_until,
            source_archived=migration.source_archived,
            created_at=migration.created_at,
            updated_at=migration.updated_at,
            history=[
                MigrationTransitionResponse(
                    state=entry.state.value,
                    occurred_at=entry.occurred_at,
                    detail=entry.detail,
                )
                for entry in migration.history
            ],
        )
