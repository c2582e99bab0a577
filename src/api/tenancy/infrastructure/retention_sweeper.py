"""Retention sweeper for retired migration sources.

Runs as a background task within the FastAPI application and periodically
archives the sources of completed migrations whose retention window has
elapsed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable

from tenancy.infrastructure.observability import (
    DefaultRetentionSweeperProbe,
    RetentionSweeperProbe,
)


class RetentionSweeper:
    """Background loop calling an archival job on a fixed interval."""

    def __init__(
        self,
        archive_retired: Callable[[datetime | None], Awaitable[int]],
        interval_seconds: float = 300,
        probe: RetentionSweeperProbe | None = None,
    ) -> None:
        """Initialize the sweeper.

        Args:
            archive_retired: Job archiving every due source; returns the count
            interval_seconds: Pause between sweeps
            probe: Optional domain probe for observability
        """
        self._archive_retired = archive_retired
        self._interval = interval_seconds
        self._probe = probe or DefaultRetentionSweeperProbe()
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        """Whether the loop is running."""
        return self._running

    async def start(self) -> None:
        """Start the sweep loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        self._probe.sweeper_started(interval_seconds=self._interval)

    async def stop(self) -> None:
        """Stop the loop and wait for it to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._probe.sweeper_stopped()

    async def sweep(self) -> int:
        """Run a single sweep."""
        archived = await self._archive_retired(None)
        self._probe.sweep_completed(archived=archived)
        return archived

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.sweep()
            except Exception as e:
                # Keep sweeping; due sources stay due until archived.
                self._probe.sweep_failed(error=e)
            await asyncio.sleep(self._interval)
