"""Unit tests for TaskRunner."""

import asyncio
import logging

import pytest

from lifecycle.services.tasks import TaskRunner


@pytest.mark.unit
class TestTaskRunner:
    """Test TaskRunner on a real event loop."""

    @pytest.mark.asyncio
    async def test_spawn_runs_without_awaiting(self):
        runner = TaskRunner()
        started = asyncio.Event()
        release = asyncio.Event()

        async def work():
            started.set()
            await release.wait()

        task = runner.spawn(work(), name="work")
        await started.wait()

        assert task.get_name() == "work"
        assert runner.pending == 1

        release.set()
        await runner.wait()
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_failed_task_is_logged(self, caplog):
        runner = TaskRunner()

        async def boom():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="lifecycle.tasks"):
            runner.spawn(boom(), name="boom")
            await runner.wait()

        assert runner.pending == 0
        assert "Background task boom failed: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_cancelled_task_is_dropped(self):
        runner = TaskRunner()
        task = runner.spawn(asyncio.sleep(10), name="sleepy")

        task.cancel()
        await runner.wait()

        assert runner.pending == 0
