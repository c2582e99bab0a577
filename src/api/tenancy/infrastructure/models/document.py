"""SQLAlchemy ORM models for documents held by a physical target.

These tables live on every target database (shared pool, shards and
dedicated clusters), not only on the control-plane database.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin, utc_now


class DocumentModel(Base, TimestampMixin):
    """ORM model for tenant_documents table.

    The document body is stored as JSONB, including its tenant_id and id
    fields; the key columns duplicate them for indexing.
    """

    __tablename__ = "tenant_documents"

    tenant_id: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    body: Mapped[dict[str, Any]] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<DocumentModel(tenant_id={self.tenant_id}, id={self.id})>"


class FrozenTenantModel(Base):
    """ORM model for frozen_tenants table.

    A row marks the tenant read-only on this target after a migration.
    """

    __tablename__ = "frozen_tenants"

    tenant_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    frozen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), insert_default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<FrozenTenantModel(tenant_id={self.tenant_id})>"
