"""In-memory document store drivers.

Each physical target address gets its own store. Documents are kept as deep
copies keyed by (tenant_id, id), so callers never share state with the store.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from tenancy.domain.exceptions import (
    DuplicateDocumentError,
    InvalidOperationError,
    StoreReadOnlyError,
)
from tenancy.domain.operations import ID_FIELD, TENANT_FIELD, Document
from tenancy.infrastructure.observability import (
    DefaultDocumentStoreProbe,
    DocumentStoreProbe,
)
from tenancy.ports.stores import IDocumentStore, IStoreDriverFactory


def _matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    return all(
        key in document and document[key] == value for key, value in filter.items()
    )


class InMemoryDocumentStore(IDocumentStore):
    """Document store of one physical target, held in process memory.

    ``upsert`` and ``purge_tenant`` are maintenance calls used by migrations;
    they bypass the read-only freeze that ``create``/``update``/``delete``
    honour.
    """

    def __init__(self, address: str, probe: DocumentStoreProbe | None = None) -> None:
        self._address = address
        self._documents: dict[tuple[str, str], Document] = {}
        self._frozen: set[str] = set()
        self._probe = probe or DefaultDocumentStoreProbe()

    @property
    def address(self) -> str:
        """Address of the target this store serves."""
        return self._address

    async def find(self, filter: Mapping[str, Any]) -> list[Document]:
        """Return copies of the documents matching the filter."""
        return [
            copy.deepcopy(document)
            for document in self._documents.values()
            if _matches(document, filter)
        ]

    async def create(self, document: Document) -> Document:
        """Insert a document keyed by its tenant and id."""
        key = self._key(document)
        self._check_writable(key[0])
        if key in self._documents:
            raise DuplicateDocumentError(
                f"Document {key[1]} already exists", tenant_id=key[0]
            )
        self._documents[key] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def update(
        self, filter: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> list[Document]:
        """Apply changes to every matching document."""
        keys = [key for key, doc in self._documents.items() if _matches(doc, filter)]
        for tenant_id in {key[0] for key in keys}:
            self._check_writable(tenant_id)

        updated: list[Document] = []
        for key in keys:
            document = self._documents[key]
            document.update(copy.deepcopy(dict(changes)))
            updated.append(copy.deepcopy(document))
        return updated

    async def delete(self, filter: Mapping[str, Any]) -> list[str]:
        """Delete every matching document and return their ids."""
        keys = [key for key, doc in self._documents.items() if _matches(doc, filter)]
        for tenant_id in {key[0] for key in keys}:
            self._check_writable(tenant_id)

        for key in keys:
            del self._documents[key]
        return [key[1] for key in keys]

    async def upsert(self, document: Document) -> None:
        """Insert or replace a document by (tenant_id, id)."""
        self._documents[self._key(document)] = copy.deepcopy(document)

    async def freeze_tenant(self, tenant_id: str) -> None:
        """Reject further writes of the tenant on this target."""
        self._frozen.add(tenant_id)
        self._probe.tenant_frozen(address=self._address, tenant_id=tenant_id)

    async def purge_tenant(self, tenant_id: str) -> int:
        """Remove the tenant's documents and lift its freeze."""
        keys = [key for key in self._documents if key[0] == tenant_id]
        for key in keys:
            del self._documents[key]
        self._frozen.discard(tenant_id)
        self._probe.tenant_purged(
            address=self._address, tenant_id=tenant_id, removed=len(keys)
        )
        return len(keys)

    def _key(self, document: Mapping[str, Any]) -> tuple[str, str]:
        tenant_id = document.get(TENANT_FIELD)
        document_id = document.get(ID_FIELD)
        if not isinstance(tenant_id, str) or not isinstance(document_id, str):
            raise InvalidOperationError(
                f"Documents need string {TENANT_FIELD!r} and {ID_FIELD!r} fields"
            )
        return tenant_id, document_id

    def _check_writable(self, tenant_id: str) -> None:
        if tenant_id in self._frozen:
            self._probe.frozen_write_rejected(address=self._address, tenant_id=tenant_id)
            raise StoreReadOnlyError(
                f"Tenant {tenant_id} is read-only on {self._address}",
                tenant_id=tenant_id,
            )


class InMemoryStoreDriverFactory(IStoreDriverFactory):
    """Hands out one InMemoryDocumentStore per address."""

    def __init__(self, probe: DocumentStoreProbe | None = None) -> None:
        self._stores: dict[str, InMemoryDocumentStore] = {}
        self._probe = probe or DefaultDocumentStoreProbe()

    def driver(self, address: str) -> InMemoryDocumentStore:
        """Return the store for an address, creating it on first use."""
        store = self._stores.get(address)
        if store is None:
            store = InMemoryDocumentStore(address, probe=self._probe)
            self._stores[address] = store
        return store

    async def prepare(self, address: str) -> None:
        """Create the store for an address if it does not exist yet."""
        self.driver(address)

    async def close(self) -> None:
        """Drop every store."""
        self._stores.clear()
