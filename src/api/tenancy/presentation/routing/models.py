"""Pydantic models for routing API responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tenancy.domain.value_objects import TenantTierRecord


class TierRecordResponse(BaseModel):
    """Response model for a tenant's tier record."""

    tenant_id: str = Field(..., description="Tenant ID")
    tier: str = Field(..., description="Current tier (shared, sharded, dedicated)")
    target: str = Field(..., description="Address of the authoritative target")
    migrating_to: str | None = Field(
        None, description="Address being populated by a running migration"
    )
    version: int = Field(..., description="Registry record version")

    @classmethod
    def from_domain(cls, record: TenantTierRecord) -> TierRecordResponse:
        """Convert a domain tier record to API response."""
        return cls(
            tenant_id=record.tenant_id.value,
            tier=record.tier.value,
            target=record.target.address,
            migrating_to=record.migrating_to.address if record.migrating_to else None,
            version=record.version,
        )
