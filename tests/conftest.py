"""Global pytest fixtures and configuration."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lifecycle.config import Settings  # noqa: E402
from lifecycle.services.status_registry import StatusRegistry  # noqa: E402


@pytest.fixture(autouse=True)
def reset_registry():
    """Each test starts from a fresh process-wide status."""
    StatusRegistry._instance = None
    yield
    StatusRegistry._instance = None


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every path into a temp directory."""
    return Settings(
        version="1.0.0",
        paths={
            "base": tmp_path / "livos",
            "data": tmp_path / "livos" / "data",
            "logs": tmp_path / "livos" / "logs",
        },
        update_grace_seconds=0,
    )


@pytest.fixture
def mock_system():
    """Mock SystemControl so nothing is stopped or rebooted."""
    system = MagicMock()
    system.stop_services = AsyncMock()
    system.reboot = AsyncMock()
    system.shutdown = AsyncMock()
    system.stop_and_reboot = AsyncMock()
    return system


@pytest.fixture
def mock_tasks():
    """Mock TaskRunner that records spawned coroutines without running them."""
    tasks = MagicMock()

    def spawn(coro, name=None):
        tasks.spawned.append((name, coro))
        return MagicMock()

    tasks.spawned = []
    tasks.spawn = MagicMock(side_effect=spawn)
    yield tasks
    # Close never-awaited coroutines to keep warnings out of the output
    for _, coro in tasks.spawned:
        coro.close()


def make_stream(data: bytes = b"") -> asyncio.StreamReader:
    """Create a StreamReader pre-fed with data and EOF.

    Must be called from inside a running event loop.
    """
    stream = asyncio.StreamReader()
    if data:
        stream.feed_data(data)
    stream.feed_eof()
    return stream


def make_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    """Create a fake asyncio subprocess with the given output and exit code."""
    process = MagicMock()
    process.stdout = make_stream(stdout)
    process.stderr = make_stream(stderr)
    process.returncode = returncode
    process.wait = AsyncMock(return_value=returncode)
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    return process


async def wait_for(predicate, attempts: int = 500):
    """Yield to the loop until predicate() is true."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture(name="make_process")
def make_process_fixture():
    """Factory fixture for fake subprocesses (see make_process)."""
    return make_process


@pytest.fixture(name="wait_for")
def wait_for_fixture():
    """Fixture exposing the wait_for helper."""
    return wait_for
