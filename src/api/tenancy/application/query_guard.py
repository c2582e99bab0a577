"""Query Guard.

The single path from callers to document stores. Every operation is bound
to a resolved tenant before it is routed: the tenant predicate is injected
into filters, stamped onto written documents, and checked again on every
record a store hands back.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, TypeVar

from ulid import ULID

from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application.observability import (
    DefaultQueryGuardProbe,
    QueryGuardProbe,
)
from tenancy.application.retry import RetryExhaustedError, RetryPolicy, retry
from tenancy.application.shard_router import ShardRouter
from tenancy.application.write_gate import TenantWriteGate
from tenancy.domain.exceptions import (
    InvalidOperationError,
    MissingTenantContextError,
    RoutingUnavailableError,
    TenantMismatchError,
)
from tenancy.domain.operations import (
    ID_FIELD,
    TENANT_FIELD,
    Document,
    OperationKind,
    StoreOperation,
)
from tenancy.domain.value_objects import PhysicalTarget, TenantId
from tenancy.ports.stores import IDocumentStore, IStoreDriverFactory

T = TypeVar("T")

_SINGLE_ATTEMPT = RetryPolicy(attempts=1)


class QueryGuard:
    """Tenant-scoped facade over the store drivers.

    Checks run before any store call; when one fails, nothing is routed
    and nothing is written. Reads are retried against their target on
    transient driver failures; writes are attempted once.
    """

    def __init__(
        self,
        router: ShardRouter,
        drivers: IStoreDriverFactory,
        write_gate: TenantWriteGate,
        read_retry_policy: RetryPolicy | None = None,
        probe: QueryGuardProbe | None = None,
    ) -> None:
        self._router = router
        self._drivers = drivers
        self._write_gate = write_gate
        self._read_retry_policy = read_retry_policy or RetryPolicy()
        self._probe = probe or DefaultQueryGuardProbe()

    async def execute(self, operation: StoreOperation) -> Any:
        """Run a generic operation descriptor.

        Returns:
            Matching documents for find/update, the created document for
            create, deleted ids for delete

        Raises:
            InvalidOperationError: If a write lacks its payload
        """
        context = operation.tenant_context
        if operation.kind == OperationKind.FIND:
            return await self.find(context, operation.filter)
        if operation.kind == OperationKind.DELETE:
            return await self.delete(context, operation.filter)
        if operation.payload is None:
            raise InvalidOperationError(
                f"{operation.kind.value} requires a payload",
                tenant_id=context.tenant_id if context else None,
            )
        if operation.kind == OperationKind.CREATE:
            return await self.create(context, operation.payload)
        return await self.update(context, operation.filter, operation.payload)

    async def find(
        self, context: TenantContext | None, filter: Mapping[str, Any]
    ) -> list[Document]:
        """Return the tenant's documents matching an equality filter."""
        tenant_id = self._require_tenant(context, OperationKind.FIND)
        scoped = self._scope_filter(tenant_id, filter, OperationKind.FIND)

        target = await self._router.route(tenant_id)
        store = self._drivers.driver(target.address)
        documents = await self._call_store(
            tenant_id,
            target,
            lambda: store.find(scoped),
            self._read_retry_policy,
        )
        self._verify_owned(tenant_id, documents, target)
        self._probe.operation_forwarded(
            tenant_id=tenant_id.value,
            kind=OperationKind.FIND.value,
            target=str(target),
            affected=len(documents),
        )
        return documents

    async def create(
        self, context: TenantContext | None, document: Mapping[str, Any]
    ) -> Document:
        """Store a new document for the tenant.

        The tenant field is stamped and an id is assigned when absent.
        """
        tenant_id = self._require_tenant(context, OperationKind.CREATE)
        stamped = dict(document)
        self._check_supplied_tenant(tenant_id, stamped, OperationKind.CREATE)
        stamped[TENANT_FIELD] = tenant_id.value

        document_id = stamped.get(ID_FIELD)
        if document_id is None:
            stamped[ID_FIELD] = str(ULID())
        elif not isinstance(document_id, str) or not document_id.strip():
            raise InvalidOperationError(
                "Document id must be a non-empty string", tenant_id=tenant_id.value
            )

        async def write(store: IDocumentStore) -> Document:
            return await store.create(stamped)

        return await self._write(
            tenant_id, OperationKind.CREATE, write, lambda doc: [doc[ID_FIELD]]
        )

    async def update(
        self,
        context: TenantContext | None,
        filter: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> list[Document]:
        """Apply field changes to the tenant's matching documents."""
        tenant_id = self._require_tenant(context, OperationKind.UPDATE)
        scoped = self._scope_filter(tenant_id, filter, OperationKind.UPDATE)

        stamped = dict(changes)
        self._check_supplied_tenant(tenant_id, stamped, OperationKind.UPDATE)
        stamped.pop(TENANT_FIELD, None)
        if ID_FIELD in stamped:
            raise InvalidOperationError(
                "Document ids cannot be changed", tenant_id=tenant_id.value
            )

        async def write(store: IDocumentStore) -> list[Document]:
            return await store.update(scoped, stamped)

        return await self._write(
            tenant_id,
            OperationKind.UPDATE,
            write,
            lambda docs: [doc[ID_FIELD] for doc in docs],
        )

    async def delete(
        self, context: TenantContext | None, filter: Mapping[str, Any]
    ) -> list[str]:
        """Delete the tenant's matching documents and return their ids."""
        tenant_id = self._require_tenant(context, OperationKind.DELETE)
        scoped = self._scope_filter(tenant_id, filter, OperationKind.DELETE)

        async def write(store: IDocumentStore) -> list[str]:
            return await store.delete(scoped)

        return await self._write(tenant_id, OperationKind.DELETE, write, list)

    async def _write(
        self,
        tenant_id: TenantId,
        kind: OperationKind,
        write: Callable[[IDocumentStore], Awaitable[T]],
        touched: Callable[[T], list[str]],
    ) -> T:
        async with self._write_gate.admit(tenant_id.value):
            target = await self._router.route(tenant_id)
            store = self._drivers.driver(target.address)
            result = await self._call_store(
                tenant_id, target, lambda: write(store), _SINGLE_ATTEMPT
            )

            if isinstance(result, dict):
                self._verify_owned(tenant_id, [result], target)
                affected = 1
            else:
                if kind == OperationKind.UPDATE:
                    self._verify_owned(tenant_id, result, target)
                affected = len(result)

            # Journal before leaving the gate so a cutover drain sees it.
            self._write_gate.record(tenant_id.value, touched(result))
            self._probe.operation_forwarded(
                tenant_id=tenant_id.value,
                kind=kind.value,
                target=str(target),
                affected=affected,
            )
            return result

    async def _call_store(
        self,
        tenant_id: TenantId,
        target: PhysicalTarget,
        call: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
    ) -> T:
        try:
            return await retry(call, policy)
        except RetryExhaustedError as e:
            raise RoutingUnavailableError(
                f"Target {target} unavailable: {e.last_error}",
                tenant_id=tenant_id.value,
            ) from e.last_error

    def _require_tenant(
        self, context: TenantContext | None, kind: OperationKind
    ) -> TenantId:
        if context is None:
            self._probe.tenant_context_missing(kind=kind.value)
            raise MissingTenantContextError(
                f"{kind.value} requires a resolved tenant context"
            )
        try:
            return TenantId.from_string(context.tenant_id)
        except ValueError as e:
            self._probe.tenant_context_missing(kind=kind.value)
            raise MissingTenantContextError(str(e)) from e

    def _scope_filter(
        self,
        tenant_id: TenantId,
        filter: Mapping[str, Any],
        kind: OperationKind,
    ) -> dict[str, Any]:
        scoped = dict(filter)
        if TENANT_FIELD in scoped:
            self._check_supplied_tenant(tenant_id, scoped, kind)
        else:
            scoped[TENANT_FIELD] = tenant_id.value
            self._probe.tenant_predicate_injected(
                tenant_id=tenant_id.value, kind=kind.value
            )
        return scoped

    def _check_supplied_tenant(
        self,
        tenant_id: TenantId,
        fields: Mapping[str, Any],
        kind: OperationKind,
    ) -> None:
        if TENANT_FIELD not in fields:
            return
        supplied = fields[TENANT_FIELD]
        if supplied != tenant_id.value:
            self._probe.tenant_mismatch(
                tenant_id=tenant_id.value,
                supplied_tenant_id=str(supplied),
                kind=kind.value,
            )
            raise TenantMismatchError(
                f"Operation targets tenant {supplied!r} but the caller acts for "
                f"{tenant_id}",
                tenant_id=tenant_id.value,
                supplied_tenant_id=str(supplied),
            )

    def _verify_owned(
        self,
        tenant_id: TenantId,
        documents: list[Document],
        target: PhysicalTarget,
    ) -> None:
        for document in documents:
            owner = document.get(TENANT_FIELD)
            if owner != tenant_id.value:
                self._probe.foreign_record_returned(
                    tenant_id=tenant_id.value,
                    record_tenant_id=None if owner is None else str(owner),
                    target=str(target),
                )
                raise TenantMismatchError(
                    f"Store {target} returned a record outside tenant {tenant_id}",
                    tenant_id=tenant_id.value,
                    supplied_tenant_id=None if owner is None else str(owner),
                )
