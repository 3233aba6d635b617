"""Device and platform detection."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


LIVINITY_HOME_MANUFACTURER = "Livinity, Inc."
LIVINITY_HOME_MODEL = "Livinity Home"


@dataclass(frozen=True)
class DeviceInfo:
    """Hardware identity of the host."""

    device_id: str
    manufacturer: str
    model: str


class DeviceDetector:
    """Reads hardware identity from DMI or the device tree."""

    def __init__(
        self,
        base_dir: Path = Path("/opt/livos"),
        dmi_dir: Path = Path("/sys/class/dmi/id"),
        device_tree_model: Path = Path("/proc/device-tree/model"),
    ):
        """Initialize detector.

        Args:
            base_dir: LivOS installation directory
            dmi_dir: sysfs directory exposing DMI strings
            device_tree_model: device-tree model file (ARM boards)
        """
        self.logger = logging.getLogger("lifecycle.device")
        self.base_dir = Path(base_dir)
        self.dmi_dir = Path(dmi_dir)
        self.device_tree_model = Path(device_tree_model)

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        try:
            # device-tree strings are NUL terminated
            return path.read_text(encoding="utf-8", errors="replace").strip().strip("\x00")
        except (FileNotFoundError, PermissionError):
            return None

    async def detect_device(self) -> DeviceInfo:
        """Identify the hardware the appliance is running on.

        Returns:
            DeviceInfo with a short device_id slug

        Raises:
            RuntimeError: If no hardware identity source is readable
        """
        manufacturer = self._read(self.dmi_dir / "sys_vendor")
        model = self._read(self.dmi_dir / "product_name")

        if manufacturer is None and model is None:
            tree_model = self._read(self.device_tree_model)
            if tree_model is None:
                raise RuntimeError("No DMI or device-tree information available")
            manufacturer = "Raspberry Pi Ltd" if tree_model.startswith("Raspberry Pi") else ""
            model = tree_model

        manufacturer = manufacturer or ""
        model = model or ""

        if manufacturer == LIVINITY_HOME_MANUFACTURER and model == LIVINITY_HOME_MODEL:
            device_id = "livinity-home"
        elif model.startswith("Raspberry Pi 5"):
            device_id = "pi-5"
        elif model.startswith("Raspberry Pi 4"):
            device_id = "pi-4"
        else:
            device_id = "unknown"

        return DeviceInfo(device_id=device_id, manufacturer=manufacturer, model=model)

    async def is_livinity_home(self) -> bool:
        """Check whether the host is Livinity Home hardware."""
        device = await self.detect_device()
        return (
            device.manufacturer == LIVINITY_HOME_MANUFACTURER
            and device.model == LIVINITY_HOME_MODEL
        )

    async def is_livos(self) -> bool:
        """Check whether the host runs a LivOS installation."""
        return (self.base_dir / ".env").is_file()
