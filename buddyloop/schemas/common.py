"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# Reusable `responses=` entry for routes that can raise a BuddyLoopException.
UNPROCESSABLE = {
    422: {"model": ErrorResponse, "description": "Validation or domain input error."},
}


class DecisionLogEntryOut(BaseModel):
    timestamp: str
    agent: str
    action: str
    reason: str
    status: str = Field(
        description='"triggered" | "throttled" | "blocked" | "no_action" | "fallback"'
    )


class DecisionLogResponse(BaseModel):
    total: int
    items: list[DecisionLogEntryOut]
