"""Pydantic models for HTTP API requests and responses."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from lifecycle.models.release import ReleaseChannel


class FactoryResetRequest(BaseModel):
    """POST /api/v1.0/system/factory-reset payload.

    Example:
        {
            "password": "correct horse battery staple"
        }
    """

    password: str = Field(..., description="Current user password")


class ReleaseChannelRequest(BaseModel):
    """POST /api/v1.0/system/release-channel payload.

    Example:
        {
            "channel": "beta"
        }
    """

    channel: ReleaseChannel = Field(..., description="Release channel", examples=["stable", "beta"])


class SuccessResponse(BaseModel):
    """Envelope for every successful response.

    HTTP status code is always 200, real status in 'code' field.
    """

    code: int = Field(default=200, description="Application-level status code (200)")
    msg: str = Field(default="success", description="Success message")
    data: Optional[Any] = Field(None, description="Response payload")


class ErrorResponse(BaseModel):
    """Envelope for failed requests.

    HTTP status code is always 200, real status in 'code' field.
    """

    code: int = Field(
        ..., description="Application-level error code (401/404/409/412/422/500/502)"
    )
    msg: str = Field(..., description="Error message with error code prefix")
    details: Optional[dict] = Field(None, description="Structured error context")
