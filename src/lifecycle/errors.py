"""Error types for exclusive lifecycle operations.

Every error carries an ``error_code`` string (e.g. "STATE_CONFLICT") and the
application-level status ``code`` the HTTP layer returns in its envelope.
"""

from typing import Any, Optional


class LifecycleError(Exception):
    """Base class for lifecycle operation failures.

    Attributes:
        error_code: Machine-readable error identifier
        message: Human-readable error message
        details: Optional structured context
    """

    error_code = "INTERNAL"
    code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to the HTTP error envelope.

        Returns:
            Dictionary with code, msg and optional details
        """
        payload: dict[str, Any] = {
            "code": self.code,
            "msg": f"{self.error_code}: {self.message}",
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ResolutionError(LifecycleError):
    """Release metadata unreachable or malformed."""

    error_code = "RESOLUTION_FAILED"
    code = 502


class ScriptMissingError(LifecycleError):
    """The latest release does not name an update script."""

    error_code = "SCRIPT_MISSING"
    code = 404


class ScriptExecutionError(LifecycleError):
    """Update script could not be launched or exited non-zero."""

    error_code = "SCRIPT_FAILED"
    code = 500

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.returncode = returncode


class AuthorizationError(LifecycleError):
    """Password check failed before a destructive operation."""

    error_code = "UNAUTHORIZED"
    code = 401


class PreflightError(LifecycleError):
    """Migration compatibility or free-space check failed."""

    error_code = "PREFLIGHT_FAILED"
    code = 412


class StateConflictError(LifecycleError):
    """Another exclusive operation is already in progress."""

    error_code = "STATE_CONFLICT"
    code = 409

    def __init__(self, requested: str, current: str):
        super().__init__(
            f"Cannot start {requested}: system is {current}",
            details={"requested": requested, "current": current},
        )
        self.requested = requested
        self.current = current
