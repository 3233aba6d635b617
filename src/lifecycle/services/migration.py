"""Data migration from a prior installation on an external USB drive."""

import asyncio
import json
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Optional

import psutil
import yaml
from packaging.version import InvalidVersion, Version

from lifecycle.errors import PreflightError
from lifecycle.models.progress import ProgressStatus
from lifecycle.models.status import SystemStatus
from lifecycle.services.device import DeviceDetector
from lifecycle.services.progress import ProgressTracker
from lifecycle.services.status_registry import StatusRegistry
from lifecycle.services.system import SystemControl
from lifecycle.services.tasks import TaskRunner
from lifecycle.utils.process import kill_and_reap, tail


INSTALL_MARKER = Path("livinity") / ".livinity"
TEMPORARY_DIR_NAME = ".temporary-migration"
IMPORT_DIR_NAME = "import"
SPACE_BUFFER_BYTES = 1024 * 1024 * 1024  # 1GB
SYSTEM_MOUNTPOINTS = {"/", "/boot", "/boot/firmware", "[SWAP]"}

# Share of total migration progress per phase
COPY_PROGRESS_SHARE = 0.6
PULL_PROGRESS_SHARE = 30

_PERCENT_RE = re.compile(r"(\d+)%")
_VERSION_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def bytes_to_gb(num_bytes: int) -> str:
    """Format a byte count as GB with one decimal."""
    return f"{num_bytes / 1024 / 1024 / 1024:.1f}"


def coerce_version(value: str) -> Optional[Version]:
    """Extract the first x[.y[.z]] version found in a string.

    Args:
        value: Loose version string (e.g. "v0.5.4", "1.0")

    Returns:
        Normalized Version, or None if no version is present
    """
    match = _VERSION_RE.search(str(value))
    if not match:
        return None
    major, minor, patch = (part or "0" for part in match.groups())
    return Version(f"{major}.{minor}.{patch}")


def directory_size(path: Path) -> int:
    """Total size in bytes of every file below a directory.

    Symlinks are counted by their own size and never followed.
    """
    total = 0
    for root, dirs, files in os.walk(path):
        for name in files:
            total += os.lstat(os.path.join(root, name)).st_size
        for name in dirs:
            entry = os.path.join(root, name)
            if os.path.islink(entry):
                total += os.lstat(entry).st_size
    return total


async def _exec(*args: str) -> str:
    """Run a command and return its stdout.

    Raises:
        RuntimeError: If the command exits non-zero
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise RuntimeError(
            f"{args[0]} failed: exit code {process.returncode}, "
            f"stderr: {tail(stderr)}"
        )
    return stdout.decode(errors="replace")


class MigrationCoordinator:
    """Discovers, validates and copies a previous installation's data."""

    def __init__(
        self,
        current_version: str,
        data_dir: Path,
        device: DeviceDetector,
        system: SystemControl,
        tasks: TaskRunner,
        registry: Optional[StatusRegistry] = None,
        tracker: Optional[ProgressTracker] = None,
        mount_root: Path = Path("/mnt"),
    ):
        """Initialize coordinator.

        Args:
            current_version: Version of the running installation
            data_dir: Data directory of the running installation
            device: Hardware detection capability
            system: Service stop and reboot capability
            tasks: Background task runner
            registry: StatusRegistry instance (uses singleton if None)
            tracker: Migration progress record (a fresh one if None)
            mount_root: Where unmounted external drives get mounted
        """
        self.logger = logging.getLogger("lifecycle.migration")
        self.current_version = current_version
        self.data_dir = Path(data_dir)
        self.device = device
        self.system = system
        self.tasks = tasks
        self.registry = registry or StatusRegistry()
        self.tracker = tracker or ProgressTracker("migration")
        self.mount_root = Path(mount_root)

    def get_status(self) -> ProgressStatus:
        """Get the current migration progress."""
        return self.tracker.get()

    # ------------------------------------------------------------------
    # Drive discovery
    # ------------------------------------------------------------------

    async def list_external_drives(self) -> list[dict]:
        """List USB disks that are not part of the base system.

        Returns:
            lsblk disk entries, each with a "mountpoints" list added
        """
        output = await _exec(
            "lsblk", "--json", "--output", "NAME,PATH,TYPE,TRAN,MOUNTPOINT"
        )
        devices = json.loads(output).get("blockdevices", [])

        drives = []
        for disk in devices:
            if disk.get("type") != "disk" or disk.get("tran") != "usb":
                continue
            nodes = [disk] + list(disk.get("children") or [])
            mountpoints = [node["mountpoint"] for node in nodes if node.get("mountpoint")]
            if SYSTEM_MOUNTPOINTS.intersection(mountpoints):
                continue
            drives.append({**disk, "mountpoints": mountpoints})
        return drives

    async def _mount_first_partition(self, drive: dict) -> Path:
        children = drive.get("children") or []
        device = children[0]["path"] if children else f"{drive['path']}1"
        mount_point = self.mount_root / Path(device).name
        mount_point.mkdir(parents=True, exist_ok=True)
        await _exec("mount", "--read-only", device, str(mount_point))
        self.logger.info(f"Mounted {device} at {mount_point}")
        return mount_point

    async def find_external_install(self) -> Optional[Path]:
        """Find a previous installation on an attached USB drive.

        Unmounted drives are mounted read-only first. Errors are logged
        and never raised.

        Returns:
            Path to the external install's data directory, or None
        """
        try:
            drives = await self.list_external_drives()
            for drive in drives:
                mountpoints = [Path(p) for p in drive["mountpoints"]]
                if not mountpoints:
                    try:
                        mountpoints.append(await self._mount_first_partition(drive))
                    except Exception as e:
                        # Keep trying the remaining drives
                        self.logger.error(f"Error mounting drive {drive.get('path')}: {e}")
                        continue

                for mountpoint in mountpoints:
                    marker = mountpoint / INSTALL_MARKER
                    if marker.exists():
                        self.logger.info(f"Found external install at {marker.parent}")
                        return marker.parent
        except Exception as e:
            self.logger.error(f"Error finding external install: {e}", exc_info=True)

        return None

    async def unmount_external_drives(self) -> None:
        """Unmount every external USB drive, best effort."""
        try:
            drives = await self.list_external_drives()
        except Exception as e:
            self.logger.warning(f"Cannot list external drives for unmount: {e}")
            return

        for drive in drives:
            for mountpoint in drive["mountpoints"]:
                try:
                    await _exec("umount", mountpoint)
                    self.logger.info(f"Unmounted {mountpoint}")
                except Exception as e:
                    self.logger.error(f"Error unmounting {mountpoint}: {e}")

    # ------------------------------------------------------------------
    # Pre-flight checks
    # ------------------------------------------------------------------

    def read_install_version(self, install: Path) -> str:
        """Read the version of an installation's data directory.

        Returns:
            Version string, or "unknown" if no version file is present
        """
        manifest = install / "livinity.yaml"
        legacy = install / "info.json"
        if manifest.exists():
            data = yaml.safe_load(manifest.read_text(encoding="utf-8")) or {}
            return str(data.get("version", "unknown"))
        if legacy.exists():
            # <=0.5.4 installs
            data = json.loads(legacy.read_text(encoding="utf-8"))
            return str(data.get("version", "unknown"))
        return "unknown"

    def _is_compatible(self, external_version: str) -> bool:
        external = coerce_version(external_version)
        if external is None:
            return False
        try:
            current = Version(self.current_version)
        except InvalidVersion:
            current = coerce_version(self.current_version)
            if current is None:
                return False
        return current >= external

    async def run_preflight_checks(
        self,
        current_install: Path,
        external_install: Optional[Path],
        only_allow_home: bool = True,
    ) -> Path:
        """Validate that data can be migrated from the external install.

        Must be rerun right before migrating: mount state can change
        between the check and the action.

        Args:
            current_install: Data directory of the running installation
            external_install: Data directory found on the external drive
            only_allow_home: Restrict migration to Livinity Home hardware

        Returns:
            The validated external install path

        Raises:
            PreflightError: Describing the first failed check
        """
        if only_allow_home and not await self.device.is_livinity_home():
            raise PreflightError("This feature is only supported on Livinity Home hardware")

        if self.tracker.get().running:
            raise PreflightError("Migration is already running")

        if not external_install:
            raise PreflightError("No drive found with an LivOS install")

        external_install = Path(external_install)
        current_install = Path(current_install)

        # Don't allow migrating in data more recent than the current install
        external_version = self.read_install_version(external_install)
        if not self._is_compatible(external_version):
            raise PreflightError(
                f"Cannot migrate LivOS {external_version} data into an "
                f"LivOS {self.current_version} install.",
                details={"external": external_version, "current": self.current_version},
            )

        shutil.rmtree(current_install / TEMPORARY_DIR_NAME, ignore_errors=True)
        free = psutil.disk_usage(str(current_install)).free
        required = await asyncio.to_thread(directory_size, external_install) + SPACE_BUFFER_BYTES
        if free < required:
            raise PreflightError(
                f"Not enough storage available. {bytes_to_gb(free)} GB free, "
                f"{bytes_to_gb(required)} GB required.",
                details={"free": free, "required": required},
            )

        return external_install

    async def can_migrate(self) -> bool:
        """Run discovery and pre-flight checks, then release the drives.

        Returns:
            True if a migration could start now

        Raises:
            PreflightError: If a check fails
        """
        external = await self.find_external_install()
        await self.run_preflight_checks(self.data_dir, external)
        await self.unmount_external_drives()
        return True

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    async def migrate(self) -> bool:
        """Check, claim the exclusive state and start copying in the background.

        Returns:
            True once the migration has been scheduled; completion is only
            observable through ``get_status``

        Raises:
            PreflightError: If a check fails
            StateConflictError: If another exclusive operation is in progress
        """
        external = await self.find_external_install()
        external = await self.run_preflight_checks(self.data_dir, external)

        self.registry.begin(SystemStatus.MIGRATING)
        self.tasks.spawn(self.migrate_data(self.data_dir, external), name="migrate")
        return True

    async def migrate_data(self, current_install: Path, external_install: Path) -> None:
        """Copy the external install into ``<current>/import`` and reboot.

        The caller must hold the ``migrating`` status. The data directory
        is replaced by the import directory on the next boot.
        """
        self.tracker.reset()
        self.tracker.update(running=True, description="Copying data")

        temporary = Path(current_install) / TEMPORARY_DIR_NAME
        final = Path(current_install) / IMPORT_DIR_NAME

        try:
            shutil.rmtree(temporary, ignore_errors=True)
            await self._copy(Path(external_install), temporary)
            await self._pull_app_images(temporary)

            self.tracker.update(progress=92, description="Cleaning up")
            await asyncio.to_thread(self._replace, temporary, final)
        except BaseException as e:
            self.logger.error(f"Migration failed: {e!r}", exc_info=True)
            self.registry.release()
            self.tracker.update(
                running=False, progress=0, description="", error="Failed to migrate data"
            )
            if not isinstance(e, Exception):
                raise
            return

        self.tracker.update(progress=95, description="Rebooting")
        self.registry.set(SystemStatus.RESTARTING)
        rebooted = False
        try:
            await self.system.stop_services()
            await self.system.reboot()
            rebooted = True
        except Exception as e:
            self.logger.error(f"Reboot after migration failed: {e}", exc_info=True)
        finally:
            if not rebooted:
                self.registry.release()

    async def _copy(self, source: Path, target: Path) -> None:
        """rsync source into target, reporting 0-60% progress.

        Raises:
            RuntimeError: If rsync exits non-zero
        """
        process = await asyncio.create_subprocess_exec(
            "rsync",
            "--info=progress2",
            "--archive",
            "--delete",
            f"{source}/",
            str(target),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        async def report_progress() -> None:
            # rsync rewrites its progress line with "\r", so parse raw chunks
            while True:
                chunk = await process.stdout.read(4096)
                if not chunk:
                    break
                matches = _PERCENT_RE.findall(chunk.decode(errors="replace"))
                if matches:
                    progress = int(COPY_PROGRESS_SHARE * int(matches[-1]))
                    if progress > self.tracker.get().progress:
                        self.tracker.update(progress=progress)

        try:
            # stderr is drained alongside stdout: a full stderr pipe blocks rsync
            _, stderr = await asyncio.gather(report_progress(), process.stderr.read())
            returncode = await process.wait()
        except BaseException:
            await kill_and_reap(process, "rsync")
            raise

        if returncode != 0:
            raise RuntimeError(f"rsync failed: exit code {returncode}, stderr: {tail(stderr)}")

    def list_app_images(self, data: Path) -> list[str]:
        """Collect the images referenced by migrated app compose files."""
        images = []
        for compose_file in sorted(data.glob("app-data/*/docker-compose.yml")):
            compose = yaml.safe_load(compose_file.read_text(encoding="utf-8")) or {}
            for service in (compose.get("services") or {}).values():
                image = (service or {}).get("image")
                if image:
                    images.append(image)
        return images

    async def _pull_app_images(self, data: Path) -> None:
        """Pre-pull app images, reporting 60-90% progress.

        Failures are ignored: images are pulled again when apps start.
        """
        try:
            self.tracker.update(description="Downloading apps")
            images = self.list_app_images(data)
            if not images:
                return

            progress = float(self.tracker.get().progress)
            step = PULL_PROGRESS_SHARE / len(images)

            async def pull(image: str) -> None:
                nonlocal progress
                await _exec("docker", "pull", image)
                progress += step
                self.tracker.update(progress=int(progress))

            results = await asyncio.gather(
                *(pull(image) for image in images), return_exceptions=True
            )
            for image, result in zip(images, results):
                if isinstance(result, Exception):
                    self.logger.warning(f"Failed to pull {image}: {result}")
        except Exception as e:
            self.logger.error(f"Error processing docker-compose files: {e}")

    @staticmethod
    def _replace(source: Path, target: Path) -> None:
        if target.exists():
            shutil.rmtree(target)
        shutil.move(str(source), str(target))
