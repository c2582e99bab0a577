"""Migration aggregate for the tenancy context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from tenancy.domain.exceptions import InvalidMigrationTransitionError
from tenancy.domain.value_objects import (
    MigrationId,
    MigrationState,
    PhysicalTarget,
    TenantId,
    Tier,
)


@dataclass(frozen=True)
class MigrationTransition:
    """One entry of a migration's state history."""

    state: MigrationState
    occurred_at: datetime
    detail: str | None = None


@dataclass
class Migration:
    """Durable handle for moving a tenant between tiers.

    The migration is an explicit state machine::

        provisioning -> backfilling -> cutover -> completed
              \\              \\           \\-> aborted (before the swap)
               \\-> aborted    \\-> aborted  \\-> cutover_failed -> resolved

    Business rules:
    - The destination tier must differ from the source tier
    - Cutover may only begin once the backfill has been confirmed
    - Failures before the registry swap abort; the tenant stays on the source
    - A failure after the swap is fatal and halts the tenant's migrations
      until an operator resolves it
    """

    id: MigrationId
    tenant_id: TenantId
    source: PhysicalTarget
    target_tier: Tier
    state: MigrationState
    target: PhysicalTarget | None = None
    error: str | None = None
    copied_records: int = 0
    replayed_writes: int = 0
    backfill_confirmed: bool = False
    retain_until: datetime | None = None
    source_archived: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    history: list[MigrationTransition] = field(default_factory=list)

    @classmethod
    def request(
        cls,
        tenant_id: TenantId,
        source: PhysicalTarget,
        target_tier: Tier,
    ) -> Migration:
        """Factory method for an operator-triggered migration.

        Args:
            tenant_id: Tenant to migrate
            source: The tenant's current authoritative target
            target_tier: Tier to move the tenant to

        Returns:
            A new Migration in the provisioning state

        Raises:
            InvalidMigrationTransitionError: If the tenant is already on the tier
        """
        if source.tier == target_tier:
            raise InvalidMigrationTransitionError(
                f"Tenant {tenant_id} is already on the {target_tier.value} tier",
                tenant_id=tenant_id.value,
            )

        migration = cls(
            id=MigrationId.generate(),
            tenant_id=tenant_id,
            source=source,
            target_tier=target_tier,
            state=MigrationState.PROVISIONING,
        )
        migration._record(MigrationState.PROVISIONING, f"requested {target_tier.value}")
        return migration

    @property
    def is_active(self) -> bool:
        """Whether the migration still owns the tenant."""
        return self.state.is_active

    @property
    def is_halted(self) -> bool:
        """Whether the migration failed after cutover and awaits an operator."""
        return self.state == MigrationState.CUTOVER_FAILED

    def provisioned(self, target: PhysicalTarget) -> None:
        """Record the allocated destination and start backfilling."""
        self._require(MigrationState.PROVISIONING, action="provision")
        if target.tier != self.target_tier:
            raise InvalidMigrationTransitionError(
                f"Provisioned {target.tier.value} target for a "
                f"{self.target_tier.value} migration",
                tenant_id=self.tenant_id.value,
                migration_id=self.id.value,
            )
        self.target = target
        self._transition(MigrationState.BACKFILLING, f"provisioned {target}")

    def confirm_backfill(self, copied_records: int) -> None:
        """Record that the destination holds every source record."""
        self._require(MigrationState.BACKFILLING, action="confirm backfill")
        self.copied_records = copied_records
        self.backfill_confirmed = True
        self.updated_at = datetime.now(UTC)

    def begin_cutover(self) -> None:
        """Enter cutover; only allowed after a confirmed backfill."""
        self._require(MigrationState.BACKFILLING, action="begin cutover")
        if not self.backfill_confirmed:
            raise InvalidMigrationTransitionError(
                "Cutover requires a confirmed backfill",
                tenant_id=self.tenant_id.value,
                migration_id=self.id.value,
            )
        self._transition(MigrationState.CUTOVER)

    def complete(self, replayed_writes: int, retain_until: datetime) -> None:
        """Finish cutover: the destination is authoritative."""
        self._require(MigrationState.CUTOVER, action="complete")
        self.replayed_writes = replayed_writes
        self.retain_until = retain_until
        self._transition(
            MigrationState.COMPLETED,
            f"replayed {replayed_writes} writes",
        )

    def abort(self, reason: str) -> None:
        """Abandon the migration before the registry swap."""
        self._require(
            MigrationState.PROVISIONING,
            MigrationState.BACKFILLING,
            MigrationState.CUTOVER,
            action="abort",
        )
        self.error = reason
        self._transition(MigrationState.ABORTED, reason)

    def fail_cutover(self, reason: str) -> None:
        """Record a failure after the registry swap."""
        self._require(MigrationState.CUTOVER, action="fail cutover")
        self.error = reason
        self._transition(MigrationState.CUTOVER_FAILED, reason)

    def resolve(self, note: str) -> None:
        """Operator acknowledgement that the registry has been repaired."""
        self._require(MigrationState.CUTOVER_FAILED, action="resolve")
        self._transition(MigrationState.RESOLVED, note)

    def mark_source_archived(self) -> None:
        """Record that the retired source target has been archived."""
        self._require(MigrationState.COMPLETED, action="archive source")
        self.source_archived = True
        self.updated_at = datetime.now(UTC)

    def retention_elapsed(self, now: datetime) -> bool:
        """Whether the retired source is due for archival."""
        return (
            self.state == MigrationState.COMPLETED
            and not self.source_archived
            and self.retain_until is not None
            and self.retain_until <= now
        )

    def _require(self, *allowed: MigrationState, action: str) -> None:
        if self.state not in allowed:
            raise InvalidMigrationTransitionError(
                f"Cannot {action} migration {self.id} in state {self.state.value}",
                tenant_id=self.tenant_id.value,
                migration_id=self.id.value,
            )

    def _transition(self, state: MigrationState, detail: str | None = None) -> None:
        self.state = state
        self._record(state, detail)

    def _record(self, state: MigrationState, detail: str | None) -> None:
        now = datetime.now(UTC)
        self.updated_at = now
        self.history.append(
            MigrationTransition(state=state, occurred_at=now, detail=detail)
        )
