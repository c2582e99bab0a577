"""create_tenancy_tables

Create the control-plane tables for tenant tier routing and migration
handles, plus the document tables used when the control-plane database
also serves as the shared pool.

Revision ID: 3c1e7a9d4b20
Revises:
Create Date: 2026-10-18 09:12:41.503117

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3c1e7a9d4b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tenant_tiers",
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("tier", sa.String(length=20), nullable=False),
        sa.Column("target_address", sa.String(length=1024), nullable=False),
        sa.Column("migrating_tier", sa.String(length=20), nullable=True),
        sa.Column("migrating_address", sa.String(length=1024), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),  # CAS token
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("tenant_id"),
    )

    op.create_table(
        "tenant_migrations",
        sa.Column("id", sa.String(length=26), nullable=False),  # ULID
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("source_tier", sa.String(length=20), nullable=False),
        sa.Column("source_address", sa.String(length=1024), nullable=False),
        sa.Column("target_tier", sa.String(length=20), nullable=False),
        sa.Column("target_address", sa.String(length=1024), nullable=True),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("copied_records", sa.Integer(), nullable=False),
        sa.Column("replayed_writes", sa.Integer(), nullable=False),
        sa.Column("backfill_confirmed", sa.Boolean(), nullable=False),
        sa.Column("retain_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source_archived", sa.Boolean(), nullable=False),
        sa.Column("history", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_tenant_migrations_tenant_id",
        "tenant_migrations",
        ["tenant_id"],
        unique=False,
    )
    op.create_index(
        "ix_tenant_migrations_tenant_state",
        "tenant_migrations",
        ["tenant_id", "state"],
        unique=False,
    )
    op.create_index(
        "uq_tenant_migrations_active",
        "tenant_migrations",
        ["tenant_id"],
        unique=True,
        postgresql_where=sa.text(
            "state IN ('provisioning', 'backfilling', 'cutover')"
        ),
    )

    op.create_table(
        "tenant_documents",
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("body", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("tenant_id", "id"),
    )
    op.create_index(
        "ix_tenant_documents_tenant_id",
        "tenant_documents",
        ["tenant_id"],
        unique=False,
    )

    op.create_table(
        "frozen_tenants",
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("frozen_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("tenant_id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("frozen_tenants")
    op.drop_index("ix_tenant_documents_tenant_id", table_name="tenant_documents")
    op.drop_table("tenant_documents")
    op.drop_index("uq_tenant_migrations_active", table_name="tenant_migrations")
    op.drop_index("ix_tenant_migrations_tenant_state", table_name="tenant_migrations")
    op.drop_index("ix_tenant_migrations_tenant_id", table_name="tenant_migrations")
    op.drop_table("tenant_migrations")
    op.drop_table("tenant_tiers")
