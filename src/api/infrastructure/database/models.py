"""SQLAlchemy declarative base and shared model utilities.

Provides the declarative base for all ORM models and the timestamp mixin.
JSON-shaped attributes map to PostgreSQL JSONB.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Generate a timezone-aware UTC timestamp.

    A named function rather than a lambda so SQLAlchemy evaluates it at
    INSERT/UPDATE time.
    """
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    type_annotation_map: dict[Any, Any] = {
        dict[str, Any]: JSONB,
        list[dict[str, Any]]: JSONB,
    }


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
