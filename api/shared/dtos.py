"""Shared DTOs for the chatbot API."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseDTO(BaseModel):
    """Base DTO: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""

    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=_utc_now)
    version: str = Field(default="1.0.0")
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseDTO):
    """Error body returned by every failing endpoint."""

    timestamp: datetime = Field(default_factory=_utc_now)
    status: int = Field(description="HTTP status code")
    error: str = Field(description="Short error category")
    message: str = Field(description="Client-safe error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Field-keyed validation details"
    )
