"""Ports for the tenancy bounded context."""

from tenancy.ports.provisioning import ITargetProvisioner
from tenancy.ports.registry import ITenantTierRegistry
from tenancy.ports.repositories import IMigrationRepository
from tenancy.ports.stores import IDocumentStore, IStoreDriverFactory

__all__ = [
    "IDocumentStore",
    "IMigrationRepository",
    "IStoreDriverFactory",
    "ITargetProvisioner",
    "ITenantTierRegistry",
]
