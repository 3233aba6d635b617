"""Host power control and service-layer shutdown via systemctl."""

import asyncio
import logging
from typing import Optional


class SystemControl:
    """Stops managed services and reboots or powers off the host."""

    def __init__(self, services: Optional[list[str]] = None):
        """Initialize system control.

        Args:
            services: systemd units stopped before a reboot or poweroff
        """
        self.logger = logging.getLogger("lifecycle.system")
        self.services = list(services or [])

    async def _systemctl(self, *args: str) -> None:
        """Run a systemctl command.

        Raises:
            RuntimeError: If the command exits non-zero
        """
        process = await asyncio.create_subprocess_exec(
            "systemctl",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            raise RuntimeError(
                f"systemctl {' '.join(args)} failed: "
                f"exit code {process.returncode}, "
                f"stderr: {stderr.decode(errors='replace').strip()}"
            )

    async def stop_services(self) -> None:
        """Stop every managed service, continuing past individual failures."""
        for service in self.services:
            self.logger.info(f"Stopping service: {service}")
            try:
                await self._systemctl("stop", service)
            except Exception as e:
                self.logger.error(f"Failed to stop {service}: {e}")

    async def reboot(self) -> None:
        """Reboot the host.

        Raises:
            RuntimeError: If the reboot command fails
        """
        self.logger.info("Rebooting")
        await self._systemctl("reboot")

    async def shutdown(self) -> None:
        """Power off the host.

        Raises:
            RuntimeError: If the poweroff command fails
        """
        self.logger.info("Powering off")
        await self._systemctl("poweroff")

    async def stop_and_reboot(self, grace_seconds: float = 1.0) -> None:
        """Pause briefly, stop the service layer and reboot.

        Args:
            grace_seconds: Delay so pollers can observe the final progress
        """
        await asyncio.sleep(grace_seconds)
        await self.stop_services()
        await self.reboot()
