"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for database engine lifecycle.

    Targets are logged by their password-free connection string.
    """

    def engine_created(self, target: str) -> None:
        """Record that an engine was created for a target."""
        ...

    def engine_disposed(self, target: str) -> None:
        """Record that an engine was disposed."""
        ...

    def schema_prepared(self, target: str) -> None:
        """Record that the document schema exists on a target."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def engine_created(self, target: str) -> None:
        """Record that an engine was created for a target."""
        self._logger.info(
            "database_engine_created",
            target=target,
            **self._get_context_kwargs(),
        )

    def engine_disposed(self, target: str) -> None:
        """Record that an engine was disposed."""
        self._logger.info(
            "database_engine_disposed",
            target=target,
            **self._get_context_kwargs(),
        )

    def schema_prepared(self, target: str) -> None:
        """Record that the document schema exists on a target."""
        self._logger.info(
            "database_schema_prepared",
            target=target,
            **self._get_context_kwargs(),
        )
