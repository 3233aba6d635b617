"""Progress record shared by update, migration and factory reset."""

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ProgressStatus(BaseModel):
    """Pollable progress of one exclusive operation.

    ``error`` is ``False`` when no error has been recorded, otherwise the
    last error message. It survives the end of a failed run so clients can
    tell "never ran" from "last run failed".
    """

    model_config = ConfigDict(extra="ignore")

    running: bool = Field(default=False, description="Operation in progress")
    progress: int = Field(default=0, ge=0, le=100, description="Percentage completion (0-100)")
    description: str = Field(default="", description="Human-readable step description")
    error: Union[str, Literal[False]] = Field(
        default=False, description="Last error message, or false"
    )
