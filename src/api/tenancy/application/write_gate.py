"""Per-tenant write coordination for tier migrations.

While a tenant backfills, every write admitted for it records the ids it
touched in a journal. During cutover new writes are held until the
registry swap is done, so the journal can be replayed against a quiet
source and no write lands on the old target after the swap.

The gate is process-local: it coordinates the writers of one API process.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable

from tenancy.application.observability import (
    DefaultWriteGateProbe,
    WriteGateProbe,
)
from tenancy.domain.exceptions import RoutingUnavailableError


@dataclass
class _TenantGateState:
    open: asyncio.Event = field(default_factory=asyncio.Event)
    drained: asyncio.Event = field(default_factory=asyncio.Event)
    in_flight: int = 0
    journal: set[str] | None = None

    def __post_init__(self) -> None:
        self.open.set()
        self.drained.set()

    @property
    def idle(self) -> bool:
        return self.open.is_set() and self.in_flight == 0 and self.journal is None


class TenantWriteGate:
    """Journals and holds the writes of migrating tenants.

    Tenants that are not migrating pass straight through: the gate only
    keeps state for tenants with an open journal, a hold or in-flight writes.
    """

    def __init__(
        self,
        hold_timeout_seconds: float = 5.0,
        probe: WriteGateProbe | None = None,
    ) -> None:
        self._hold_timeout = hold_timeout_seconds
        self._probe = probe or DefaultWriteGateProbe()
        self._states: dict[str, _TenantGateState] = {}

    @property
    def hold_timeout_seconds(self) -> float:
        """How long held writes and cutover drains may wait."""
        return self._hold_timeout

    def _state(self, tenant_id: str) -> _TenantGateState:
        state = self._states.get(tenant_id)
        if state is None:
            state = _TenantGateState()
            self._states[tenant_id] = state
        return state

    def _release_if_idle(self, tenant_id: str) -> None:
        state = self._states.get(tenant_id)
        if state is not None and state.idle:
            del self._states[tenant_id]

    def is_held(self, tenant_id: str) -> bool:
        """Whether new writes of the tenant are currently blocked."""
        state = self._states.get(tenant_id)
        return state is not None and not state.open.is_set()

    @asynccontextmanager
    async def admit(self, tenant_id: str) -> AsyncIterator[None]:
        """Admit one write of a tenant.

        Waits while a cutover holds the tenant's writes. The write body runs
        inside the context; touched ids are reported through ``record``.

        Raises:
            RoutingUnavailableError: If the hold outlasts the timeout; the
                write has not reached any store
        """
        state = self._state(tenant_id)
        if not state.open.is_set():
            try:
                await asyncio.wait_for(state.open.wait(), timeout=self._hold_timeout)
            except asyncio.TimeoutError as e:
                self._probe.held_write_timed_out(
                    tenant_id=tenant_id, timeout_seconds=self._hold_timeout
                )
                raise RoutingUnavailableError(
                    f"Writes for tenant {tenant_id} are held by a migration cutover",
                    tenant_id=tenant_id,
                ) from e
            # The hold may have been lifted by a finished migration that
            # dropped this state; re-read it.
            state = self._state(tenant_id)

        state.in_flight += 1
        state.drained.clear()
        try:
            yield
        finally:
            state.in_flight -= 1
            if state.in_flight == 0:
                state.drained.set()
            self._release_if_idle(tenant_id)

    def record(self, tenant_id: str, document_ids: Iterable[str]) -> None:
        """Journal the ids touched by an admitted write, if journaling."""
        state = self._states.get(tenant_id)
        if state is not None and state.journal is not None:
            state.journal.update(document_ids)

    def begin_journal(self, tenant_id: str) -> None:
        """Start journaling the tenant's writes."""
        self._state(tenant_id).journal = set()
        self._probe.journal_started(tenant_id=tenant_id)

    def journaled_ids(self, tenant_id: str) -> set[str]:
        """Ids touched since the journal began."""
        state = self._states.get(tenant_id)
        if state is None or state.journal is None:
            return set()
        return set(state.journal)

    def end_journal(self, tenant_id: str) -> set[str]:
        """Stop journaling and return the touched ids."""
        state = self._states.get(tenant_id)
        touched: set[str] = set()
        if state is not None and state.journal is not None:
            touched = state.journal
            state.journal = None
            self._probe.journal_stopped(tenant_id=tenant_id, touched=len(touched))
        self._release_if_idle(tenant_id)
        return touched

    async def hold(self, tenant_id: str) -> None:
        """Block new writes of the tenant and wait for in-flight ones.

        Raises:
            RoutingUnavailableError: If in-flight writes do not finish within
                the hold timeout; writes stay blocked until ``release``
        """
        state = self._state(tenant_id)
        state.open.clear()
        self._probe.writes_held(tenant_id=tenant_id)
        if state.in_flight == 0:
            return
        try:
            await asyncio.wait_for(state.drained.wait(), timeout=self._hold_timeout)
        except asyncio.TimeoutError as e:
            self._probe.drain_timed_out(tenant_id=tenant_id, in_flight=state.in_flight)
            raise RoutingUnavailableError(
                f"In-flight writes for tenant {tenant_id} did not drain",
                tenant_id=tenant_id,
            ) from e

    def release(self, tenant_id: str) -> None:
        """Admit writes of the tenant again."""
        state = self._states.get(tenant_id)
        if state is None:
            return
        state.open.set()
        self._probe.writes_released(tenant_id=tenant_id)
        self._release_if_idle(tenant_id)
