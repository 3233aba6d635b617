"""Update orchestration: download, execute and track the update script.

An update attempt moves idle → running → {succeeded | failed}:

1. Status ``updating``, progress 5% "Updating..."
2. Resolve the latest release; no ``updateScript`` is fatal
3. Download the script body and run it with ``bash -c``
4. Stream stdout/stderr line by line into the progress record
5. Non-zero exit is fatal
6. Failure keeps the script's own error (or "Update failed") and resets
   everything else; the status returns to ``running``
7. Success reports 100% "Restarting..." and the host reboots
"""

import asyncio
import json
import logging
import os
from typing import Optional

import httpx

from lifecycle.errors import ScriptExecutionError, ScriptMissingError
from lifecycle.models.progress import ProgressStatus
from lifecycle.models.status import SystemStatus
from lifecycle.services.progress import ProgressTracker
from lifecycle.services.release import ReleaseResolver
from lifecycle.services.status_registry import StatusRegistry
from lifecycle.services.system import SystemControl
from lifecycle.services.tasks import TaskRunner
from lifecycle.utils.process import kill_and_reap


# Structured status lines: "livinity-update: {json}"
STATUS_MARKER = "livinity-update: "

# The installer phase streams one "." per step
INSTALL_DOTS_TOTAL = 70
INSTALL_PROGRESS_START = 5
INSTALL_PROGRESS_SPAN = 90
INSTALL_PROGRESS_CAP = 95

# Longest line accepted from the script before readline gives up
STREAM_LIMIT = 1024 * 1024


def dot_progress(dots: int) -> int:
    """Map the installer dot count onto the 5-95% band.

    Args:
        dots: Number of "." lines seen so far

    Returns:
        Progress percentage, capped at 95
    """
    return min(
        INSTALL_PROGRESS_CAP,
        (dots * INSTALL_PROGRESS_SPAN) // INSTALL_DOTS_TOTAL + INSTALL_PROGRESS_START,
    )


class UpdateOrchestrator:
    """Runs the update script and owns the update progress record."""

    def __init__(
        self,
        resolver: ReleaseResolver,
        system: SystemControl,
        tasks: TaskRunner,
        registry: Optional[StatusRegistry] = None,
        tracker: Optional[ProgressTracker] = None,
        grace_seconds: float = 1.0,
    ):
        """Initialize orchestrator.

        Args:
            resolver: Latest-release lookup
            system: Service stop and reboot capability
            tasks: Background task runner
            registry: StatusRegistry instance (uses singleton if None)
            tracker: Update progress record (a fresh one if None)
            grace_seconds: Pause between success and reboot
        """
        self.logger = logging.getLogger("lifecycle.update")
        self.resolver = resolver
        self.system = system
        self.tasks = tasks
        self.registry = registry or StatusRegistry()
        self.tracker = tracker or ProgressTracker("update")
        self.grace_seconds = grace_seconds
        self._install_dots = 0

    def get_status(self) -> ProgressStatus:
        """Get the current update progress."""
        return self.tracker.get()

    def update(self) -> bool:
        """Claim the exclusive state and start the update in the background.

        Returns:
            True once the update has been scheduled

        Raises:
            StateConflictError: If another exclusive operation is in progress
        """
        self.registry.begin(SystemStatus.UPDATING)
        self.tasks.spawn(self._run(), name="update")
        return True

    async def _run(self) -> None:
        rebooting = False
        try:
            if await self.perform_update():
                rebooting = True
                await self.system.stop_and_reboot(self.grace_seconds)
        except Exception as e:
            rebooting = False
            self.logger.error(f"Reboot after update failed: {e}", exc_info=True)
        finally:
            if not rebooting:
                self.registry.release()

    async def perform_update(self) -> bool:
        """Run one update attempt to completion.

        Returns:
            True if the script succeeded, False otherwise (the reason is
            left in the progress record's ``error``)
        """
        self.tracker.update(running=True, progress=5, description="Updating...", error=False)
        self._install_dots = 0

        try:
            async with httpx.AsyncClient(
                timeout=self.resolver.settings.release_timeout_seconds
            ) as client:
                release = await self.resolver.resolve(client)

                if not release.update_script:
                    self.tracker.update(error="No update script found")
                    raise ScriptMissingError("No update script found")

                self.logger.info(
                    f"Downloading update script for {release.version}: {release.update_script}"
                )
                response = await client.get(
                    release.update_script,
                    headers={"User-Agent": self.resolver.user_agent},
                )
                response.raise_for_status()
                script = response.text

            await self._execute(script)

        except Exception as e:
            # Don't overwrite a more specific error reported by the script
            error = self.tracker.get().error or "Update failed"
            # Keep the error so pollers can tell a failed update from a
            # successful one that already rebooted
            self.tracker.reset()
            self.tracker.update(error=error)
            self.logger.error(f"Update script failed: {e}", exc_info=True)
            return False

        self.tracker.update(running=False, progress=100, description="Restarting...")
        self.logger.info("Update script completed successfully")
        return True

    async def _execute(self, script: str) -> None:
        """Run the script and consume its output until it exits.

        Raises:
            ScriptExecutionError: If the script cannot start or exits non-zero
        """
        try:
            process = await asyncio.create_subprocess_exec(
                "bash",
                "-c",
                script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=os.environ.copy(),
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            raise ScriptExecutionError(f"Failed to launch update script: {e}") from e

        try:
            await asyncio.gather(
                self._consume(process.stdout),
                self._consume(process.stderr),
            )
            returncode = await process.wait()
        except BaseException:
            # The script must not outlive a failed or cancelled attempt
            await kill_and_reap(process, "update script")
            raise

        if returncode != 0:
            raise ScriptExecutionError(
                f"Update script exited with code {returncode}", returncode=returncode
            )

    async def _consume(self, stream: Optional[asyncio.StreamReader]) -> None:
        if stream is None:
            return
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # Line longer than STREAM_LIMIT; readline already dropped it
                self.logger.warning("Skipping oversized update script output line")
                continue
            if not raw:
                break
            self.handle_output_line(raw.decode("utf-8", errors="replace").rstrip("\r\n"))

    def handle_output_line(self, line: str) -> None:
        """Apply one line of script output to the progress record.

        Args:
            line: Output line without its trailing newline
        """
        if line.startswith(STATUS_MARKER):
            try:
                status = json.loads(line[len(STATUS_MARKER):])
            except ValueError:
                # A malformed status line never aborts the update
                self.logger.debug(f"Ignoring malformed status line: {line!r}")
            else:
                self.tracker.merge(status)

        if line == ".":
            self._install_dots += 1
            progress = dot_progress(self._install_dots)
            self.logger.info(f"Update progress: {progress}%")
            self.tracker.update(progress=progress)
