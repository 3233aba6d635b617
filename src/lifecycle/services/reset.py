"""Password-gated factory reset."""

import logging
from typing import Optional, Protocol

from lifecycle.errors import AuthorizationError
from lifecycle.models.progress import ProgressStatus
from lifecycle.models.status import SystemStatus
from lifecycle.services.progress import ProgressTracker
from lifecycle.services.status_registry import StatusRegistry
from lifecycle.services.system import SystemControl
from lifecycle.services.tasks import TaskRunner


class PasswordValidator(Protocol):
    async def validate_password(self, password: str) -> bool: ...


class Wiper(Protocol):
    async def wipe(self) -> None: ...


class ResetCoordinator:
    """Authorizes and performs a factory reset, then reboots."""

    def __init__(
        self,
        authenticator: PasswordValidator,
        wiper: Wiper,
        system: SystemControl,
        tasks: TaskRunner,
        registry: Optional[StatusRegistry] = None,
        tracker: Optional[ProgressTracker] = None,
        grace_seconds: float = 1.0,
    ):
        self.logger = logging.getLogger("lifecycle.reset")
        self.authenticator = authenticator
        self.wiper = wiper
        self.system = system
        self.tasks = tasks
        self.registry = registry or StatusRegistry()
        self.tracker = tracker or ProgressTracker("reset")
        self.grace_seconds = grace_seconds

    def get_status(self) -> ProgressStatus:
        """Get the current factory reset progress."""
        return self.tracker.get()

    async def factory_reset(self, password: str) -> bool:
        """Validate the password, claim the exclusive state and start the reset.

        Args:
            password: The user's password

        Returns:
            True once the reset has been scheduled

        Raises:
            AuthorizationError: If the password is wrong (nothing is changed)
            StateConflictError: If another exclusive operation is in progress
        """
        if not await self.authenticator.validate_password(password):
            self.logger.warning("Factory reset rejected: invalid password")
            raise AuthorizationError("Invalid password")

        self.registry.begin(SystemStatus.RESETTING)
        self.tasks.spawn(self._run(), name="factory-reset")
        return True

    async def _run(self) -> None:
        rebooting = False
        try:
            if await self.perform_reset():
                rebooting = True
                await self.system.stop_and_reboot(self.grace_seconds)
        except Exception as e:
            rebooting = False
            self.logger.error(f"Reboot after factory reset failed: {e}", exc_info=True)
        finally:
            if not rebooting:
                self.registry.release()

    async def perform_reset(self) -> bool:
        """Wipe user data.

        Returns:
            True on success, False if the wipe failed (see ``error``)
        """
        self.tracker.reset()
        self.tracker.update(running=True, progress=5, description="Resetting...")

        try:
            self.logger.warning("Performing factory reset")
            await self.wiper.wipe()
        except Exception as e:
            self.logger.error(f"Factory reset failed: {e}", exc_info=True)
            self.tracker.update(
                running=False,
                progress=0,
                description="",
                error=str(e) or "Failed to reset device",
            )
            return False

        self.tracker.update(running=False, progress=100, description="Restarting...")
        return True
