"""Domain probes for tenancy application services."""

from tenancy.application.observability.migration_service_probe import (
    DefaultMigrationServiceProbe,
    MigrationServiceProbe,
)
from tenancy.application.observability.query_guard_probe import (
    DefaultQueryGuardProbe,
    QueryGuardProbe,
)
from tenancy.application.observability.shard_router_probe import (
    DefaultShardRouterProbe,
    ShardRouterProbe,
)
from tenancy.application.observability.write_gate_probe import (
    DefaultWriteGateProbe,
    WriteGateProbe,
)

__all__ = [
    "DefaultMigrationServiceProbe",
    "DefaultQueryGuardProbe",
    "DefaultShardRouterProbe",
    "DefaultWriteGateProbe",
    "MigrationServiceProbe",
    "QueryGuardProbe",
    "ShardRouterProbe",
    "WriteGateProbe",
]
