"""Process-wide registry of the current exclusive operation."""

import logging
import threading
from typing import Optional

from lifecycle.errors import StateConflictError
from lifecycle.models.status import SystemStatus


class StatusRegistry:
    """Singleton holder of the machine-wide SystemStatus.

    Starting an exclusive operation goes through ``try_begin``/``begin``, a
    compare-and-set that only succeeds from ``running``. ``set`` remains an
    unconditional overwrite for the owner of the running operation, e.g. to
    move from ``migrating`` to ``restarting``.
    """

    _instance: Optional["StatusRegistry"] = None

    def __new__(cls):
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize registry (only once due to singleton)."""
        if self._initialized:
            return

        self.logger = logging.getLogger("lifecycle.status")
        self._lock = threading.Lock()
        self._status: SystemStatus = SystemStatus.RUNNING

        self._initialized = True

    def get(self) -> SystemStatus:
        """Get the current system status."""
        with self._lock:
            return self._status

    def set(self, status: SystemStatus) -> None:
        """Overwrite the current status unconditionally.

        Args:
            status: New system status
        """
        with self._lock:
            previous = self._status
            self._status = status
        self.logger.info(f"System status: {previous.value} -> {status.value}")

    def try_begin(self, status: SystemStatus) -> bool:
        """Claim the exclusive state if no other operation holds it.

        Args:
            status: Status of the operation being started

        Returns:
            True if the status was ``running`` and is now ``status``,
            False if another operation is in progress
        """
        with self._lock:
            current = self._status
            if current != SystemStatus.RUNNING:
                claimed = False
            else:
                self._status = status
                claimed = True

        if claimed:
            self.logger.info(f"System status: running -> {status.value}")
        else:
            self.logger.warning(
                f"Rejected {status.value}: {current.value} already in progress"
            )
        return claimed

    def begin(self, status: SystemStatus) -> None:
        """Claim the exclusive state or raise.

        Args:
            status: Status of the operation being started

        Raises:
            StateConflictError: If another exclusive operation is in progress
        """
        if not self.try_begin(status):
            raise StateConflictError(status.value, self.get().value)

    def release(self) -> None:
        """Return to the steady ``running`` state."""
        self.set(SystemStatus.RUNNING)
