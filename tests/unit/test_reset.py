"""Unit tests for ResetCoordinator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lifecycle.errors import AuthorizationError, StateConflictError
from lifecycle.models.status import SystemStatus
from lifecycle.services.progress import ProgressTracker
from lifecycle.services.reset import ResetCoordinator
from lifecycle.services.status_registry import StatusRegistry


@pytest.mark.unit
class TestResetCoordinator:
    """Test ResetCoordinator in isolation."""

    @pytest.fixture
    def authenticator(self):
        auth = MagicMock()
        auth.validate_password = AsyncMock(return_value=True)
        return auth

    @pytest.fixture
    def wiper(self):
        w = MagicMock()
        w.wipe = AsyncMock()
        return w

    @pytest.fixture
    def coordinator(self, authenticator, wiper, mock_system, mock_tasks):
        return ResetCoordinator(
            authenticator,
            wiper,
            mock_system,
            mock_tasks,
            tracker=ProgressTracker("reset"),
            grace_seconds=0,
        )

    @pytest.mark.asyncio
    async def test_wrong_password_changes_nothing(
        self, coordinator, authenticator, wiper, mock_tasks
    ):
        authenticator.validate_password.return_value = False

        with pytest.raises(AuthorizationError) as exc_info:
            await coordinator.factory_reset("nope")

        assert exc_info.value.code == 401
        wiper.wipe.assert_not_awaited()
        assert mock_tasks.spawned == []
        assert StatusRegistry().get() == SystemStatus.RUNNING
        assert coordinator.get_status().running is False

    @pytest.mark.asyncio
    async def test_valid_password_schedules_reset(
        self, coordinator, authenticator, wiper, mock_tasks
    ):
        assert await coordinator.factory_reset("secret") is True

        authenticator.validate_password.assert_awaited_once_with("secret")
        assert StatusRegistry().get() == SystemStatus.RESETTING
        assert [name for name, _ in mock_tasks.spawned] == ["factory-reset"]
        wiper.wipe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_conflict_when_busy(self, coordinator, mock_tasks):
        StatusRegistry().set(SystemStatus.UPDATING)

        with pytest.raises(StateConflictError):
            await coordinator.factory_reset("secret")

        assert mock_tasks.spawned == []
        assert StatusRegistry().get() == SystemStatus.UPDATING

    @pytest.mark.asyncio
    async def test_perform_reset_success(self, coordinator, wiper):
        assert await coordinator.perform_reset() is True

        wiper.wipe.assert_awaited_once()
        status = coordinator.get_status()
        assert status.running is False
        assert status.progress == 100
        assert status.description == "Restarting..."
        assert status.error is False

    @pytest.mark.asyncio
    async def test_perform_reset_failure(self, coordinator, wiper):
        wiper.wipe.side_effect = FileNotFoundError("Data directory not found")

        assert await coordinator.perform_reset() is False

        status = coordinator.get_status()
        assert status.running is False
        assert status.progress == 0
        assert status.error == "Data directory not found"

    @pytest.mark.asyncio
    async def test_perform_reset_failure_without_message(self, coordinator, wiper):
        wiper.wipe.side_effect = RuntimeError()

        assert await coordinator.perform_reset() is False
        assert coordinator.get_status().error == "Failed to reset device"

    @pytest.mark.asyncio
    async def test_run_success_reboots(self, coordinator, mock_system):
        StatusRegistry().begin(SystemStatus.RESETTING)

        await coordinator._run()

        mock_system.stop_and_reboot.assert_awaited_once_with(0)
        assert StatusRegistry().get() == SystemStatus.RESETTING

    @pytest.mark.asyncio
    async def test_run_failure_releases(self, coordinator, wiper, mock_system):
        StatusRegistry().begin(SystemStatus.RESETTING)
        wiper.wipe.side_effect = OSError("read-only file system")

        await coordinator._run()

        mock_system.stop_and_reboot.assert_not_awaited()
        assert StatusRegistry().get() == SystemStatus.RUNNING

    @pytest.mark.asyncio
    async def test_run_reboot_failure_releases(self, coordinator, mock_system):
        StatusRegistry().begin(SystemStatus.RESETTING)
        mock_system.stop_and_reboot.side_effect = RuntimeError("systemctl failed")

        await coordinator._run()

        assert StatusRegistry().get() == SystemStatus.RUNNING
