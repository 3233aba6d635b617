"""Shutdown and restart commands."""

import logging
from typing import Optional

from lifecycle.models.status import SystemStatus
from lifecycle.services.status_registry import StatusRegistry
from lifecycle.services.system import SystemControl
from lifecycle.services.tasks import TaskRunner


class PowerController:
    """Claims the exclusive state and powers the host down or reboots it."""

    def __init__(
        self,
        system: SystemControl,
        tasks: TaskRunner,
        registry: Optional[StatusRegistry] = None,
    ):
        self.logger = logging.getLogger("lifecycle.power")
        self.system = system
        self.tasks = tasks
        self.registry = registry or StatusRegistry()

    def shutdown(self) -> bool:
        """Start powering off the host.

        Returns:
            True once the shutdown has been claimed and scheduled

        Raises:
            StateConflictError: If another exclusive operation is in progress
        """
        self.registry.begin(SystemStatus.SHUTTING_DOWN)
        self.tasks.spawn(self._run(self.system.shutdown), name="shutdown")
        return True

    def restart(self) -> bool:
        """Start rebooting the host.

        Returns:
            True once the restart has been claimed and scheduled

        Raises:
            StateConflictError: If another exclusive operation is in progress
        """
        self.registry.begin(SystemStatus.RESTARTING)
        self.tasks.spawn(self._run(self.system.reboot), name="restart")
        return True

    async def _run(self, power_action) -> None:
        done = False
        try:
            await self.system.stop_services()
            await power_action()
            done = True
        except Exception as e:
            self.logger.error(f"Power action failed: {e}", exc_info=True)
        finally:
            if not done:
                self.registry.release()
