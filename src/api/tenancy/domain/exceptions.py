"""Domain exceptions for the tenancy bounded context.

Every error carries the tenant it concerns (when known) so the
presentation layer and probes can report it without re-deriving context.
"""

from __future__ import annotations


class TenancyError(Exception):
    """Base exception for tenant gate errors."""

    def __init__(self, message: str, tenant_id: str | None = None) -> None:
        self.tenant_id = tenant_id
        super().__init__(message)


class MissingTenantContextError(TenancyError):
    """Raised when no single tenant can be resolved for an operation.

    ``ambiguous`` distinguishes "the credential carries several tenants and
    none was selected" from "the credential carries no usable tenant".
    """

    def __init__(self, message: str, ambiguous: bool = False) -> None:
        super().__init__(message)
        self.ambiguous = ambiguous


class TenantMismatchError(TenancyError):
    """Raised when a caller-supplied tenant conflicts with the resolved tenant.

    This is a tenant-safety violation: it is never retried or corrected.
    """

    def __init__(
        self,
        message: str,
        tenant_id: str | None = None,
        supplied_tenant_id: str | None = None,
    ) -> None:
        super().__init__(message, tenant_id)
        self.supplied_tenant_id = supplied_tenant_id


class InvalidOperationError(TenancyError):
    """Raised when an operation descriptor is malformed."""

    pass


class DuplicateDocumentError(TenancyError):
    """Raised when creating a document whose id already exists for the tenant."""

    pass


class StoreReadOnlyError(TenancyError):
    """Raised when writing tenant data on a target retired by a migration."""

    pass


class RoutingUnavailableError(TenancyError):
    """Raised when the registry or a physical target cannot be reached.

    Transient: surfaced after bounded retries, or when a write held for a
    cutover exceeds its timeout.
    """

    pass


class MigrationError(TenancyError):
    """Base exception for tier migration errors."""

    def __init__(
        self,
        message: str,
        tenant_id: str | None = None,
        migration_id: str | None = None,
    ) -> None:
        super().__init__(message, tenant_id)
        self.migration_id = migration_id


class MigrationNotFoundError(MigrationError):
    """Raised when a migration handle does not exist."""

    pass


class MigrationInProgressError(MigrationError):
    """Raised when triggering a migration for a tenant that already has one."""

    pass


class InvalidMigrationTransitionError(MigrationError):
    """Raised when a migration is driven through a transition its state forbids."""

    pass


class MigrationAbortedError(MigrationError):
    """Raised when a migration aborted before cutover completed.

    Recoverable: the tenant is still served from its old target.
    """

    def __init__(
        self,
        message: str,
        tenant_id: str | None = None,
        migration_id: str | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, tenant_id, migration_id)
        self.stage = stage


class MigrationCutoverFailedError(MigrationError):
    """Raised when cutover failed after the registry swap.

    Fatal: further migrations of the tenant are halted until an operator
    repairs the registry and resolves the migration.
    """

    pass


class TenantMigrationsHaltedError(MigrationCutoverFailedError):
    """Raised when triggering a migration for a tenant halted by a failed cutover."""

    pass
