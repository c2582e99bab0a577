"""PostgreSQL document store drivers.

Each physical target address is a database URL. Documents are stored as
JSONB bodies in the tenant_documents table of the target; equality filters
become JSONB containment (``@>``) predicates.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_target_engine
from infrastructure.database.models import Base, utc_now
from infrastructure.observability import ConnectionProbe, DefaultConnectionProbe
from tenancy.domain.exceptions import (
    DuplicateDocumentError,
    InvalidOperationError,
    StoreReadOnlyError,
)
from tenancy.domain.operations import ID_FIELD, TENANT_FIELD, Document
from tenancy.infrastructure.models import DocumentModel, FrozenTenantModel
from tenancy.infrastructure.observability import (
    DefaultDocumentStoreProbe,
    DocumentStoreProbe,
)
from tenancy.ports.stores import IDocumentStore, IStoreDriverFactory


def _redact(address: str) -> str:
    return make_url(address).render_as_string(hide_password=True)


class SqlDocumentStore(IDocumentStore):
    """Document store backed by one target database."""

    def __init__(
        self,
        address: str,
        session_factory: async_sessionmaker[AsyncSession],
        probe: DocumentStoreProbe | None = None,
    ) -> None:
        self._address = _redact(address)
        self._session_factory = session_factory
        self._probe = probe or DefaultDocumentStoreProbe()

    async def find(self, filter: Mapping[str, Any]) -> list[Document]:
        """Return the documents matching the filter."""
        async with self._session_factory() as session:
            result = await session.execute(self._select(filter))
            return [dict(model.body) for model in result.scalars().all()]

    async def create(self, document: Document) -> Document:
        """Insert a document keyed by its tenant and id."""
        tenant_id, document_id = self._key(document)
        try:
            async with self._session_factory.begin() as session:
                await self._check_writable(session, [tenant_id])
                session.add(
                    DocumentModel(tenant_id=tenant_id, id=document_id, body=dict(document))
                )
        except IntegrityError as e:
            raise DuplicateDocumentError(
                f"Document {document_id} already exists", tenant_id=tenant_id
            ) from e
        return dict(document)

    async def update(
        self, filter: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> list[Document]:
        """Apply changes to every matching document."""
        async with self._session_factory.begin() as session:
            result = await session.execute(self._select(filter).with_for_update())
            models = list(result.scalars().all())
            await self._check_writable(session, {m.tenant_id for m in models})
            for model in models:
                # Assign a new dict so the JSONB column is flagged dirty.
                model.body = {**model.body, **changes}
            return [dict(model.body) for model in models]

    async def delete(self, filter: Mapping[str, Any]) -> list[str]:
        """Delete every matching document and return their ids."""
        async with self._session_factory.begin() as session:
            result = await session.execute(self._select(filter).with_for_update())
            models = list(result.scalars().all())
            await self._check_writable(session, {m.tenant_id for m in models})
            for model in models:
                await session.delete(model)
            return [model.id for model in models]

    async def upsert(self, document: Document) -> None:
        """Insert or replace a document by (tenant_id, id)."""
        tenant_id, document_id = self._key(document)
        stmt = insert(DocumentModel).values(
            tenant_id=tenant_id, id=document_id, body=dict(document)
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DocumentModel.tenant_id, DocumentModel.id],
            set_={"body": stmt.excluded.body, "updated_at": utc_now()},
        )
        async with self._session_factory.begin() as session:
            await session.execute(stmt)

    async def freeze_tenant(self, tenant_id: str) -> None:
        """Reject further writes of the tenant on this target."""
        stmt = (
            insert(FrozenTenantModel)
            .values(tenant_id=tenant_id)
            .on_conflict_do_nothing(index_elements=[FrozenTenantModel.tenant_id])
        )
        async with self._session_factory.begin() as session:
            await session.execute(stmt)
        self._probe.tenant_frozen(address=self._address, tenant_id=tenant_id)

    async def purge_tenant(self, tenant_id: str) -> int:
        """Remove the tenant's documents and lift its freeze."""
        async with self._session_factory.begin() as session:
            result = await session.execute(
                delete(DocumentModel).where(DocumentModel.tenant_id == tenant_id)
            )
            await session.execute(
                delete(FrozenTenantModel).where(FrozenTenantModel.tenant_id == tenant_id)
            )
        removed = result.rowcount or 0
        self._probe.tenant_purged(
            address=self._address, tenant_id=tenant_id, removed=removed
        )
        return removed

    @staticmethod
    def _select(filter: Mapping[str, Any]):
        stmt = select(DocumentModel)
        if TENANT_FIELD in filter:
            stmt = stmt.where(DocumentModel.tenant_id == filter[TENANT_FIELD])
        if ID_FIELD in filter:
            stmt = stmt.where(DocumentModel.id == filter[ID_FIELD])
        if filter:
            stmt = stmt.where(DocumentModel.body.contains(dict(filter)))
        return stmt.order_by(DocumentModel.tenant_id, DocumentModel.id)

    @staticmethod
    def _key(document: Mapping[str, Any]) -> tuple[str, str]:
        tenant_id = document.get(TENANT_FIELD)
        document_id = document.get(ID_FIELD)
        if not isinstance(tenant_id, str) or not isinstance(document_id, str):
            raise InvalidOperationError(
                f"Documents need string {TENANT_FIELD!r} and {ID_FIELD!r} fields"
            )
        return tenant_id, document_id

    async def _check_writable(self, session: AsyncSession, tenant_ids) -> None:
        tenant_ids = list(tenant_ids)
        if not tenant_ids:
            return
        result = await session.execute(
            select(FrozenTenantModel.tenant_id).where(
                FrozenTenantModel.tenant_id.in_(tenant_ids)
            )
        )
        frozen = result.scalars().first()
        if frozen is not None:
            self._probe.frozen_write_rejected(address=self._address, tenant_id=frozen)
            raise StoreReadOnlyError(
                f"Tenant {frozen} is read-only on {self._address}", tenant_id=frozen
            )


class SqlStoreDriverFactory(IStoreDriverFactory):
    """Creates one engine and store per target database URL."""

    def __init__(
        self,
        pool_size: int = 5,
        connection_probe: ConnectionProbe | None = None,
        store_probe: DocumentStoreProbe | None = None,
    ) -> None:
        self._pool_size = pool_size
        self._connection_probe = connection_probe or DefaultConnectionProbe()
        self._store_probe = store_probe or DefaultDocumentStoreProbe()
        self._engines: dict[str, AsyncEngine] = {}
        self._stores: dict[str, SqlDocumentStore] = {}
        self._lock = threading.Lock()

    def driver(self, address: str) -> SqlDocumentStore:
        """Return the store for a database URL, creating its engine once."""
        store = self._stores.get(address)
        if store is None:
            with self._lock:
                store = self._stores.get(address)
                if store is None:
                    engine = create_target_engine(address, pool_size=self._pool_size)
                    self._engines[address] = engine
                    store = SqlDocumentStore(
                        address,
                        async_sessionmaker(engine, expire_on_commit=False),
                        probe=self._store_probe,
                    )
                    self._stores[address] = store
                    self._connection_probe.engine_created(target=_redact(address))
        return store

    async def prepare(self, address: str) -> None:
        """Create the document tables on the target if they are missing."""
        self.driver(address)
        engine = self._engines[address]
        async with engine.begin() as conn:
            await conn.run_sync(
                Base.metadata.create_all,
                tables=[DocumentModel.__table__, FrozenTenantModel.__table__],
            )
        self._connection_probe.schema_prepared(target=_redact(address))

    async def close(self) -> None:
        """Dispose every target engine."""
        for address, engine in list(self._engines.items()):
            await engine.dispose()
            self._connection_probe.engine_disposed(target=_redact(address))
        self._engines.clear()
        self._stores.clear()
