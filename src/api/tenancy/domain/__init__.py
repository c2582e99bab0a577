"""Tenancy domain layer: tiers, targets, the tier record and migrations."""
