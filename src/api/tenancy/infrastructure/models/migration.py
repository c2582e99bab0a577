"""SQLAlchemy ORM model for the tenant_migrations table."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base

ACTIVE_MIGRATION_INDEX = "uq_tenant_migrations_active"


class MigrationModel(Base):
    """ORM model for tenant_migrations table.

    Timestamps come from the aggregate rather than TimestampMixin: the
    aggregate records them as its transitions happen.
    """

    __tablename__ = "tenant_migrations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    source_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    source_address: Mapped[str] = mapped_column(String(1024), nullable=False)
    target_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    target_address: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    copied_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    replayed_writes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    backfill_confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    retain_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    source_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    history: Mapped[list[dict[str, Any]]] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("ix_tenant_migrations_tenant_state", "tenant_id", "state"),
        # At most one provisioning, backfilling or cutover handle per tenant.
        Index(
            ACTIVE_MIGRATION_INDEX,
            "tenant_id",
            unique=True,
            postgresql_where=text(
                "state IN ('provisioning', 'backfilling', 'cutover')"
            ),
        ),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<MigrationModel(id={self.id}, tenant_id={self.tenant_id}, "
            f"state={self.state})>"
        )
