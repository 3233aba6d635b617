"""Unit tests for PowerController."""

import asyncio

import pytest

from lifecycle.errors import StateConflictError
from lifecycle.models.status import SystemStatus
from lifecycle.services.power import PowerController
from lifecycle.services.status_registry import StatusRegistry


@pytest.mark.unit
class TestPowerController:
    """Test PowerController in isolation."""

    @pytest.fixture
    def power(self, mock_system, mock_tasks):
        return PowerController(mock_system, mock_tasks)

    def test_shutdown_claims_and_spawns(self, power, mock_tasks):
        assert power.shutdown() is True
        assert StatusRegistry().get() == SystemStatus.SHUTTING_DOWN
        assert [name for name, _ in mock_tasks.spawned] == ["shutdown"]

    def test_restart_claims_and_spawns(self, power, mock_tasks):
        assert power.restart() is True
        assert StatusRegistry().get() == SystemStatus.RESTARTING
        assert [name for name, _ in mock_tasks.spawned] == ["restart"]

    def test_conflict_when_busy(self, power, mock_tasks):
        StatusRegistry().set(SystemStatus.MIGRATING)

        with pytest.raises(StateConflictError):
            power.restart()

        assert mock_tasks.spawned == []
        assert StatusRegistry().get() == SystemStatus.MIGRATING

    def test_second_power_command_rejected(self, power, mock_tasks):
        power.shutdown()

        with pytest.raises(StateConflictError):
            power.restart()

        assert len(mock_tasks.spawned) == 1

    @pytest.mark.asyncio
    async def test_run_stops_services_then_acts(self, power, mock_system):
        StatusRegistry().begin(SystemStatus.SHUTTING_DOWN)

        await power._run(mock_system.shutdown)

        mock_system.stop_services.assert_awaited_once()
        mock_system.shutdown.assert_awaited_once()
        assert StatusRegistry().get() == SystemStatus.SHUTTING_DOWN

    @pytest.mark.asyncio
    async def test_run_failure_releases(self, power, mock_system):
        StatusRegistry().begin(SystemStatus.RESTARTING)
        mock_system.reboot.side_effect = RuntimeError("systemctl failed")

        await power._run(mock_system.reboot)

        assert StatusRegistry().get() == SystemStatus.RUNNING

    @pytest.mark.asyncio
    async def test_run_cancelled_releases(self, power, mock_system):
        StatusRegistry().begin(SystemStatus.SHUTTING_DOWN)
        mock_system.stop_services.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await power._run(mock_system.shutdown)

        mock_system.shutdown.assert_not_awaited()
        assert StatusRegistry().get() == SystemStatus.RUNNING
