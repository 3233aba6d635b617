"""System status enum for exclusive lifecycle operations."""

from enum import Enum


class SystemStatus(str, Enum):
    """Machine-wide status of the appliance.

    Exactly one value is active at a time. Transitions:
    running → updating | shutting-down | restarting | migrating | resetting | restoring
    migrating → restarting
        ↓
    running (only when the in-flight operation fails)
    """

    RUNNING = "running"
    UPDATING = "updating"
    SHUTTING_DOWN = "shutting-down"
    RESTARTING = "restarting"
    MIGRATING = "migrating"
    RESETTING = "resetting"
    RESTORING = "restoring"
