"""Destructive removal of user data for factory reset."""

import asyncio
import logging
import shutil
from pathlib import Path


class DataWiper:
    """Deletes every entry of the data directory."""

    def __init__(self, data_dir: Path):
        self.logger = logging.getLogger("lifecycle.wipe")
        self.data_dir = Path(data_dir)

    def _wipe(self) -> int:
        removed = 0
        for entry in self.data_dir.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
        return removed

    async def wipe(self) -> None:
        """Remove all data directory contents, keeping the directory itself.

        Raises:
            FileNotFoundError: If the data directory does not exist
            OSError: If an entry cannot be removed
        """
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

        self.logger.warning(f"Wiping data directory {self.data_dir}")
        removed = await asyncio.to_thread(self._wipe)
        self.logger.info(f"Removed {removed} entries from {self.data_dir}")
