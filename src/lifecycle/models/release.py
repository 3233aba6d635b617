"""Release metadata returned by the remote release server."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReleaseChannel(str, Enum):
    """Update tracks selectable by the user."""

    STABLE = "stable"
    BETA = "beta"


class ReleaseInfo(BaseModel):
    """Latest release as described by GET /latest-release.

    Example:
        {
            "version": "v1.2.0",
            "name": "LivOS 1.2",
            "releaseNotes": "Bug fixes",
            "updateScript": "https://api.livinity.io/scripts/update-1.2.0.sh"
        }
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str = Field(..., description="Release tag, may carry a leading 'v'")
    name: str = Field(default="", description="Release name")
    release_notes: str = Field(default="", alias="releaseNotes")
    update_script: Optional[str] = Field(
        default=None, alias="updateScript", description="URL of the update script"
    )


class UpdateCheck(BaseModel):
    """Result of comparing the latest release with the running version."""

    model_config = ConfigDict(populate_by_name=True)

    available: bool
    version: str
    name: str
    release_notes: str = Field(default="", alias="releaseNotes")
