"""Tenancy bounded context.

Tenant-scoped access gate: resolves the caller's tenant, guards every store
operation with a tenant predicate, routes tenants to their physical targets
through the tier registry, and migrates tenants between tiers.
"""
