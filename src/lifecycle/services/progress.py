"""In-memory progress record for one exclusive operation."""

import logging
from typing import Any

from pydantic import ValidationError

from lifecycle.models.progress import ProgressStatus


class ProgressTracker:
    """Holds the pollable ProgressStatus of a single operation.

    Writers replace the whole record on each update so readers never observe
    a partially merged value.
    """

    def __init__(self, name: str):
        """Initialize tracker with default progress.

        Args:
            name: Operation name used in log messages (e.g. "update")
        """
        self.name = name
        self.logger = logging.getLogger(f"lifecycle.progress.{name}")
        self._status = ProgressStatus()

    def get(self) -> ProgressStatus:
        """Get the current progress record."""
        return self._status

    def update(self, **fields: Any) -> ProgressStatus:
        """Shallow-merge fields into the record.

        Args:
            **fields: ProgressStatus fields to overwrite

        Returns:
            The new progress record

        Raises:
            pydantic.ValidationError: If a field value is invalid
        """
        self._status = ProgressStatus.model_validate(
            {**self._status.model_dump(), **fields}
        )
        self.logger.debug(f"{self.name} progress: {self._status.model_dump()}")
        return self._status

    def merge(self, fields: Any) -> bool:
        """Shallow-merge an untrusted mapping, ignoring invalid input.

        Args:
            fields: Decoded JSON object reported by an external process

        Returns:
            True if the record was updated, False if the input was rejected
        """
        if not isinstance(fields, dict):
            return False
        try:
            self.update(**fields)
        except ValidationError as e:
            self.logger.debug(f"Ignoring invalid {self.name} status: {e}")
            return False
        return True

    def reset(self) -> None:
        """Reset to defaults (not running, 0%, no description, no error)."""
        self._status = ProgressStatus()
