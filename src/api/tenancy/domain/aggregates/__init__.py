"""Aggregates for the tenancy context."""

from tenancy.domain.aggregates.migration import Migration, MigrationTransition

__all__ = [
    "Migration",
    "MigrationTransition",
]
