"""
Funnel schemas.

POST /funnel/events   → FunnelEventIn → FunnelEventOut
GET  /funnel/events   → FunnelEventListResponse
GET  /funnel/summary  → FunnelSummaryResponse
"""
import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FunnelEventEnum(str, enum.Enum):
    link_created = "link_created"
    link_clicked = "link_clicked"
    signup = "signup"
    session_completed = "session_completed"
    conversion = "conversion"


class FunnelEventIn(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: FunnelEventEnum
    payload: Any = None


class FunnelEventOut(BaseModel):
    name: str
    payload: Any = None
    timestamp: str


class FunnelEventListResponse(BaseModel):
    total: int
    items: list[FunnelEventOut]


class FunnelSummaryResponse(BaseModel):
    counts: dict[str, int] = Field(description="Events per funnel stage, zero-filled.")
