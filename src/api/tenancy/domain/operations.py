"""Store operation descriptors.

An operation is what the Query Guard receives: a kind, an equality filter,
an optional payload and the tenant context it runs under.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping

from shared_kernel.middleware.tenant_context import TenantContext

TENANT_FIELD = "tenant_id"
ID_FIELD = "id"

Document = dict[str, Any]


class OperationKind(StrEnum):
    """Kinds of store operation."""

    FIND = "find"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def is_write(self) -> bool:
        """Whether the operation mutates records."""
        return self is not OperationKind.FIND


@dataclass(frozen=True)
class StoreOperation:
    """A read or write request against the tenant's store.

    Attributes:
        kind: What to do
        filter: Equality predicate on top-level fields (find/update/delete)
        payload: Document to create, or field changes for an update
        tenant_context: Resolved tenant; operations without one are rejected
    """

    kind: OperationKind
    filter: Mapping[str, Any] = field(default_factory=dict)
    payload: Mapping[str, Any] | None = None
    tenant_context: TenantContext | None = None
