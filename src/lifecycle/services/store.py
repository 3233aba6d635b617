"""JSON file backed key-value store for persistent settings."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import aiofiles


class JsonStore:
    """Dotted-key store persisted as a single JSON document.

    ``await store.get("settings.releaseChannel")`` reads
    ``{"settings": {"releaseChannel": ...}}``.
    """

    def __init__(self, file_path: Path):
        """Initialize store.

        Args:
            file_path: JSON file holding the store (created on first write)
        """
        self.logger = logging.getLogger("lifecycle.store")
        self.file_path = Path(file_path)
        # Serializes read-modify-write cycles of set()
        self._write_lock = asyncio.Lock()

    async def _load(self) -> dict:
        if not self.file_path.exists():
            return {}
        async with aiofiles.open(self.file_path, "r", encoding="utf-8") as f:
            content = await f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.file_path} does not hold a JSON object")
        return data

    async def _save(self, data: dict) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.file_path.with_name(f"{self.file_path.name}.tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))
        # Atomic rename to final destination
        os.replace(tmp_path, self.file_path)

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Read a value by dotted key.

        Args:
            key: Dotted path, e.g. "settings.releaseChannel"
            default: Value returned when the key is absent

        Returns:
            Stored value or default

        Raises:
            ValueError: If the store file is corrupted
        """
        node: Any = await self._load()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    async def set(self, key: str, value: Any) -> bool:
        """Write a value by dotted key, creating intermediate objects.

        Args:
            key: Dotted path
            value: JSON-serializable value

        Returns:
            True once the store is persisted
        """
        async with self._write_lock:
            data = await self._load()
            parts = key.split(".")
            node = data
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = value

            await self._save(data)
        self.logger.debug(f"Stored {key}")
        return True
