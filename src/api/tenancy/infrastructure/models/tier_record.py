"""SQLAlchemy ORM model for the tenant_tiers table.

One row per tenant. The version column is the compare-and-swap token of
the tier registry.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class TenantTierModel(Base, TimestampMixin):
    """ORM model for tenant_tiers table."""

    __tablename__ = "tenant_tiers"

    tenant_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    target_address: Mapped[str] = mapped_column(String(1024), nullable=False)
    migrating_tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    migrating_address: Mapped[str | None] = mapped_column(
        String(1024), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<TenantTierModel(tenant_id={self.tenant_id}, tier={self.tier}, "
            f"version={self.version})>"
        )
