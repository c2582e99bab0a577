"""Domain probe for the tenant write gate."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class WriteGateProbe(Protocol):
    """Domain probe for write journaling and cutover holds."""

    def journal_started(self, tenant_id: str) -> None:
        """Record that writes of a tenant are now journaled."""
        ...

    def journal_stopped(self, tenant_id: str, touched: int) -> None:
        """Record that journaling ended."""
        ...

    def writes_held(self, tenant_id: str) -> None:
        """Record that new writes of a tenant are blocked."""
        ...

    def writes_released(self, tenant_id: str) -> None:
        """Record that writes of a tenant are admitted again."""
        ...

    def held_write_timed_out(self, tenant_id: str, timeout_seconds: float) -> None:
        """Record that a write gave up waiting for a cutover."""
        ...

    def drain_timed_out(self, tenant_id: str, in_flight: int) -> None:
        """Record that in-flight writes did not finish before the hold timeout."""
        ...

    def with_context(self, context: ObservationContext) -> WriteGateProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultWriteGateProbe:
    """Default implementation of WriteGateProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultWriteGateProbe:
        """Create a new probe with observation context bound."""
        return DefaultWriteGateProbe(logger=self._logger, context=context)

    def journal_started(self, tenant_id: str) -> None:
        """Record that writes of a tenant are now journaled."""
        self._logger.info(
            "write_gate_journal_started",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def journal_stopped(self, tenant_id: str, touched: int) -> None:
        """Record that journaling ended."""
        self._logger.info(
            "write_gate_journal_stopped",
            tenant_id=tenant_id,
            touched=touched,
            **self._get_context_kwargs(),
        )

    def writes_held(self, tenant_id: str) -> None:
        """Record that new writes of a tenant are blocked."""
        self._logger.info(
            "write_gate_writes_held",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def writes_released(self, tenant_id: str) -> None:
        """Record that writes of a tenant are admitted again."""
        self._logger.info(
            "write_gate_writes_released",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def held_write_timed_out(self, tenant_id: str, timeout_seconds: float) -> None:
        """Record that a write gave up waiting for a cutover."""
        self._logger.warning(
            "write_gate_held_write_timed_out",
            tenant_id=tenant_id,
            timeout_seconds=timeout_seconds,
            **self._get_context_kwargs(),
        )

    def drain_timed_out(self, tenant_id: str, in_flight: int) -> None:
        """Record that in-flight writes did not finish before the hold timeout."""
        self._logger.warning(
            "write_gate_drain_timed_out",
            tenant_id=tenant_id,
            in_flight=in_flight,
            **self._get_context_kwargs(),
        )
