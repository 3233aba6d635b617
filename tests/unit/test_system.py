"""Unit tests for SystemControl."""

from unittest.mock import AsyncMock, patch

import pytest

from lifecycle.services.system import SystemControl


@pytest.mark.unit
class TestSystemControl:
    """Test SystemControl with a mocked systemctl."""

    @pytest.mark.asyncio
    async def test_reboot(self, make_process):
        with patch("asyncio.create_subprocess_exec", return_value=make_process()) as mock_exec:
            await SystemControl().reboot()

        assert mock_exec.call_args[0] == ("systemctl", "reboot")

    @pytest.mark.asyncio
    async def test_shutdown(self, make_process):
        with patch("asyncio.create_subprocess_exec", return_value=make_process()) as mock_exec:
            await SystemControl().shutdown()

        assert mock_exec.call_args[0] == ("systemctl", "poweroff")

    @pytest.mark.asyncio
    async def test_command_failure_raises(self, make_process):
        process = make_process(stderr=b"Access denied", returncode=1)

        with patch("asyncio.create_subprocess_exec", return_value=process):
            with pytest.raises(RuntimeError, match="Access denied"):
                await SystemControl().reboot()

    @pytest.mark.asyncio
    async def test_stop_services_continues_past_failures(self, make_process):
        processes = [
            make_process(stderr=b"Unit not loaded", returncode=5),
            make_process(),
        ]

        with patch("asyncio.create_subprocess_exec", side_effect=processes) as mock_exec:
            await SystemControl(["docker", "livos"]).stop_services()

        calls = [c[0] for c in mock_exec.call_args_list]
        assert calls == [("systemctl", "stop", "docker"), ("systemctl", "stop", "livos")]

    @pytest.mark.asyncio
    async def test_stop_and_reboot_order(self):
        system = SystemControl(["docker"])
        order = []
        system.stop_services = AsyncMock(side_effect=lambda: order.append("stop"))
        system.reboot = AsyncMock(side_effect=lambda: order.append("reboot"))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await system.stop_and_reboot(2.5)

        mock_sleep.assert_awaited_once_with(2.5)
        assert order == ["stop", "reboot"]
