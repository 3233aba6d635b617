"""Unit tests for StatusRegistry."""

import threading

import pytest

from lifecycle.errors import StateConflictError
from lifecycle.models.status import SystemStatus
from lifecycle.services.status_registry import StatusRegistry


@pytest.mark.unit
class TestStatusRegistry:
    """Test StatusRegistry in isolation."""

    def test_singleton_pattern(self):
        assert StatusRegistry() is StatusRegistry()

    def test_initial_state(self):
        assert StatusRegistry().get() == SystemStatus.RUNNING

    def test_set_overwrites_unconditionally(self):
        registry = StatusRegistry()
        registry.set(SystemStatus.MIGRATING)
        registry.set(SystemStatus.RESTARTING)
        assert registry.get() == SystemStatus.RESTARTING

    def test_try_begin_from_running(self):
        registry = StatusRegistry()
        assert registry.try_begin(SystemStatus.UPDATING) is True
        assert registry.get() == SystemStatus.UPDATING

    @pytest.mark.parametrize(
        "current",
        [s for s in SystemStatus if s != SystemStatus.RUNNING],
    )
    def test_try_begin_rejected_when_busy(self, current):
        registry = StatusRegistry()
        registry.set(current)

        assert registry.try_begin(SystemStatus.RESETTING) is False
        assert registry.get() == current

    def test_begin_raises_conflict(self):
        registry = StatusRegistry()
        registry.begin(SystemStatus.SHUTTING_DOWN)

        with pytest.raises(StateConflictError) as exc_info:
            registry.begin(SystemStatus.UPDATING)

        assert exc_info.value.requested == "updating"
        assert exc_info.value.current == "shutting-down"
        assert exc_info.value.code == 409

    def test_release_returns_to_running(self):
        registry = StatusRegistry()
        registry.begin(SystemStatus.UPDATING)
        registry.release()
        assert registry.get() == SystemStatus.RUNNING
        assert registry.try_begin(SystemStatus.RESETTING) is True

    def test_only_one_concurrent_claim_wins(self):
        registry = StatusRegistry()
        barrier = threading.Barrier(8)
        results = []

        def claim(status):
            barrier.wait()
            results.append(registry.try_begin(status))

        statuses = [SystemStatus.UPDATING, SystemStatus.RESETTING] * 4
        threads = [threading.Thread(target=claim, args=(s,)) for s in statuses]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert registry.get() in (SystemStatus.UPDATING, SystemStatus.RESETTING)
