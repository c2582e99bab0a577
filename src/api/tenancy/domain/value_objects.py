"""Value objects for the tenancy domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers, tiers and physical locations.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from ulid import ULID

MAX_TENANT_ID_LENGTH = 255


@dataclass(frozen=True)
class TenantId:
    """Opaque identifier of a tenant.

    Tenant ids are assigned by the identity provider and are never parsed;
    only emptiness and length are validated.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> TenantId:
        """Create a TenantId from a raw string.

        Raises:
            ValueError: If the value is empty or longer than 255 characters
        """
        value = value.strip()
        if not value:
            raise ValueError("TenantId must not be empty")
        if len(value) > MAX_TENANT_ID_LENGTH:
            raise ValueError(
                f"TenantId must be at most {MAX_TENANT_ID_LENGTH} characters"
            )
        return cls(value=value)


@dataclass(frozen=True)
class MigrationId:
    """Identifier for a Migration aggregate (ULID)."""

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> MigrationId:
        """Generate a new MigrationId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> MigrationId:
        """Create MigrationId from string value.

        Raises:
            ValueError: If value is not a valid ULID
        """
        try:
            parsed = ULID.from_str(value.upper())
        except ValueError as e:
            raise ValueError(f"Invalid MigrationId: {value}") from e
        return cls(value=str(parsed))


class Tier(StrEnum):
    """Isolation level at which a tenant's data is stored."""

    SHARED = "shared"
    SHARDED = "sharded"
    DEDICATED = "dedicated"


@dataclass(frozen=True)
class PhysicalTarget:
    """Physical location of tenant data: a pool, shard or cluster address."""

    tier: Tier
    address: str

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.tier.value}:{self.address}"


@dataclass(frozen=True)
class TenantTierRecord:
    """Registry entry mapping a tenant to its tier and physical target.

    Records are immutable snapshots. Every change produces a new record with
    the version incremented, and the registry applies it with a
    compare-and-swap against the previous snapshot.

    Attributes:
        tenant_id: Tenant the record belongs to
        target: Authoritative physical target (reads and writes go here)
        migrating_to: Target being populated while a migration runs
        version: Compare-and-swap token
    """

    tenant_id: TenantId
    target: PhysicalTarget
    migrating_to: PhysicalTarget | None = None
    version: int = 1

    @property
    def tier(self) -> Tier:
        """Current tier of the tenant."""
        return self.target.tier

    @property
    def is_migrating(self) -> bool:
        """Whether a migration has claimed this tenant."""
        return self.migrating_to is not None

    @classmethod
    def onboard(cls, tenant_id: TenantId, target: PhysicalTarget) -> TenantTierRecord:
        """Create the first record for a tenant."""
        return cls(tenant_id=tenant_id, target=target)

    def begin_migration(self, destination: PhysicalTarget) -> TenantTierRecord:
        """Mark the tenant as migrating; the current target stays authoritative.

        Raises:
            ValueError: If the tenant is already migrating
        """
        if self.is_migrating:
            raise ValueError(f"Tenant {self.tenant_id} is already migrating")
        return replace(self, migrating_to=destination, version=self.version + 1)

    def complete_migration(self) -> TenantTierRecord:
        """Make the migration destination the authoritative target.

        Raises:
            ValueError: If the tenant is not migrating
        """
        if self.migrating_to is None:
            raise ValueError(f"Tenant {self.tenant_id} is not migrating")
        return replace(
            self,
            target=self.migrating_to,
            migrating_to=None,
            version=self.version + 1,
        )

    def cancel_migration(self) -> TenantTierRecord:
        """Drop the migration claim, keeping the current target.

        Raises:
            ValueError: If the tenant is not migrating
        """
        if self.migrating_to is None:
            raise ValueError(f"Tenant {self.tenant_id} is not migrating")
        return replace(self, migrating_to=None, version=self.version + 1)


class MigrationState(StrEnum):
    """States of a tier migration.

    ``completed``, ``aborted`` and ``resolved`` are the idle states: the
    tenant is served from a single target and no migration is running.
    """

    PROVISIONING = "provisioning"
    BACKFILLING = "backfilling"
    CUTOVER = "cutover"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CUTOVER_FAILED = "cutover_failed"
    RESOLVED = "resolved"

    @property
    def is_active(self) -> bool:
        """Whether the migration still owns the tenant."""
        return self in _ACTIVE_STATES

    @property
    def is_idle(self) -> bool:
        """Whether the tenant is idle on a single tier."""
        return self in _IDLE_STATES


_ACTIVE_STATES = frozenset(
    {MigrationState.PROVISIONING, MigrationState.BACKFILLING, MigrationState.CUTOVER}
)
_IDLE_STATES = frozenset(
    {MigrationState.COMPLETED, MigrationState.ABORTED, MigrationState.RESOLVED}
)
