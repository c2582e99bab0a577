"""Tenant context value object for resolved tenant identification.

This module contains the pure value object that represents a resolved
tenant context. It is framework-agnostic and contains no business logic,
making it safe for the shared kernel.

The resolution logic (claim inspection, selector validation) lives in the
tenancy bounded context's application layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for the current request.

    Attributes:
        tenant_id: The validated tenant identifier as a string.
        source: How the tenant was resolved - 'token' if the credential
            carried exactly one tenant, 'header' if X-Tenant-ID selected one
            of the tenants the credential carries.
    """

    tenant_id: str
    source: Literal["token", "header"]
