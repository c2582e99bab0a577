"""Unit tests for RetentionSweeper."""

import asyncio
from unittest.mock import AsyncMock, create_autospec

import pytest

from tenancy.infrastructure import RetentionSweeper
from tenancy.infrastructure.observability import RetentionSweeperProbe


@pytest.fixture
def mock_probe():
    return create_autospec(RetentionSweeperProbe, instance=True)


class TestSweep:
    """Tests for single sweeps."""

    @pytest.mark.asyncio
    async def test_sweep_runs_archival_job(self, mock_probe):
        job = AsyncMock(return_value=2)
        sweeper = RetentionSweeper(job, interval_seconds=60, probe=mock_probe)

        assert await sweeper.sweep() == 2

        job.assert_awaited_once_with(None)
        mock_probe.sweep_completed.assert_called_once_with(archived=2)


class TestLifecycle:
    """Tests for the background loop."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, mock_probe):
        job = AsyncMock(return_value=0)
        sweeper = RetentionSweeper(job, interval_seconds=60, probe=mock_probe)

        await sweeper.start()
        await asyncio.sleep(0.01)
        assert sweeper.running

        await sweeper.stop()

        assert not sweeper.running
        job.assert_awaited()
        mock_probe.sweeper_started.assert_called_once_with(interval_seconds=60)
        mock_probe.sweeper_stopped.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_loop(self, mock_probe):
        sweeper = RetentionSweeper(AsyncMock(return_value=0), 60, probe=mock_probe)

        await sweeper.start()
        await sweeper.start()
        await sweeper.stop()

        mock_probe.sweeper_started.assert_called_once()

    @pytest.mark.asyncio
    async def test_loop_survives_failed_sweep(self, mock_probe):
        calls = []

        async def flaky(now):
            calls.append(now)
            if len(calls) == 1:
                raise ConnectionError("db down")
            return 0

        job = AsyncMock(side_effect=flaky)
        sweeper = RetentionSweeper(job, interval_seconds=0.001, probe=mock_probe)

        await sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        mock_probe.sweep_failed.assert_called_once()
        assert job.await_count >= 2
