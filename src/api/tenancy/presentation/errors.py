"""Translation of tenancy errors into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from tenancy.domain.exceptions import (
    DuplicateDocumentError,
    InvalidMigrationTransitionError,
    InvalidOperationError,
    MigrationAbortedError,
    MigrationCutoverFailedError,
    MigrationInProgressError,
    MigrationNotFoundError,
    MissingTenantContextError,
    RoutingUnavailableError,
    StoreReadOnlyError,
    TenancyError,
    TenantMismatchError,
)

_STATUS_BY_ERROR: list[tuple[type[TenancyError], int]] = [
    (TenantMismatchError, status.HTTP_403_FORBIDDEN),
    (RoutingUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MigrationNotFoundError, status.HTTP_404_NOT_FOUND),
    (MigrationCutoverFailedError, status.HTTP_409_CONFLICT),
    (MigrationInProgressError, status.HTTP_409_CONFLICT),
    (MigrationAbortedError, status.HTTP_409_CONFLICT),
    (InvalidMigrationTransitionError, status.HTTP_409_CONFLICT),
    (DuplicateDocumentError, status.HTTP_409_CONFLICT),
    (StoreReadOnlyError, status.HTTP_409_CONFLICT),
    (InvalidOperationError, status.HTTP_400_BAD_REQUEST),
]


def to_http_exception(error: TenancyError) -> HTTPException:
    """Map a tenancy error to the HTTP error the API reports.

    Missing tenant context is 401, or 400 when the credential carried
    several tenants and none was selected.
    """
    if isinstance(error, MissingTenantContextError):
        code = (
            status.HTTP_400_BAD_REQUEST
            if error.ambiguous
            else status.HTTP_401_UNAUTHORIZED
        )
        return HTTPException(status_code=code, detail=str(error))

    headers = None
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            if code == status.HTTP_503_SERVICE_UNAVAILABLE:
                headers = {"Retry-After": "1"}
            return HTTPException(status_code=code, detail=str(error), headers=headers)

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Tenancy operation failed",
    )
