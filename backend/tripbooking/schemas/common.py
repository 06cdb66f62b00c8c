"""Shared response shapes."""

from typing import Any, Dict

from pydantic import Field

from .base import StandardizedModel


class SuccessResponse(StandardizedModel):
    success: bool = True
    message: str


class ErrorResponse(StandardizedModel):
    """Body of every error response."""

    success: bool = False
    kind: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(StandardizedModel):
    status: str
    service: str
    environment: str
    database: str
    degraded: bool
