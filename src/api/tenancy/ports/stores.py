"""Document store driver ports.

A driver is the generic store behind one physical target. Drivers are
deliberately tenant-agnostic: tenant scoping is the Query Guard's job,
except for the per-tenant maintenance calls used by migrations.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from tenancy.domain.operations import Document


@runtime_checkable
class IDocumentStore(Protocol):
    """Store driver for one physical target.

    Filters are equality predicates on top-level document fields.
    """

    async def find(self, filter: Mapping[str, Any]) -> list[Document]:
        """Return copies of the documents matching the filter."""
        ...

    async def create(self, document: Document) -> Document:
        """Insert a document; it must carry ``tenant_id`` and ``id``.

        Raises:
            DuplicateDocumentError: If the tenant already has the id
            StoreReadOnlyError: If the tenant is frozen on this target
        """
        ...

    async def update(
        self, filter: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> list[Document]:
        """Apply changes to matching documents and return their new state."""
        ...

    async def delete(self, filter: Mapping[str, Any]) -> list[str]:
        """Delete matching documents and return their ids."""
        ...

    async def upsert(self, document: Document) -> None:
        """Insert or replace a document by (tenant_id, id)."""
        ...

    async def freeze_tenant(self, tenant_id: str) -> None:
        """Reject further writes of the tenant's documents on this target."""
        ...

    async def purge_tenant(self, tenant_id: str) -> int:
        """Remove every document of the tenant and lift any freeze."""
        ...


@runtime_checkable
class IStoreDriverFactory(Protocol):
    """Resolves physical target addresses to store drivers."""

    def driver(self, address: str) -> IDocumentStore:
        """Return the driver for an address (cached per address)."""
        ...

    async def prepare(self, address: str) -> None:
        """Make sure the address can hold documents (schema, storage)."""
        ...

    async def close(self) -> None:
        """Release every driver's resources."""
        ...
