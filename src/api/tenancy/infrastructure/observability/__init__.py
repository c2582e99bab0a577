"""Observability for tenancy infrastructure adapters."""

from tenancy.infrastructure.observability.provisioning_probe import (
    DefaultProvisionerProbe,
    DefaultRetentionSweeperProbe,
    ProvisionerProbe,
    RetentionSweeperProbe,
)
from tenancy.infrastructure.observability.repository_probe import (
    DefaultDocumentStoreProbe,
    DefaultMigrationRepositoryProbe,
    DefaultTierRegistryProbe,
    DocumentStoreProbe,
    MigrationRepositoryProbe,
    TierRegistryProbe,
)

__all__ = [
    "DefaultDocumentStoreProbe",
    "DefaultMigrationRepositoryProbe",
    "DefaultProvisionerProbe",
    "DefaultRetentionSweeperProbe",
    "DefaultTierRegistryProbe",
    "DocumentStoreProbe",
    "MigrationRepositoryProbe",
    "ProvisionerProbe",
    "RetentionSweeperProbe",
    "TierRegistryProbe",
]
