"""
Viral-loop orchestration schemas.

POST /loops/select    → SelectRequest   → SelectResponse
POST /loops/decide    → DecideRequest   → DecisionOut
POST /loops/evaluate  → EvaluateRequest → DecisionOut
POST /loops/reset     → ResetResponse
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from buddyloop.schemas.ai import LoopTypeEnum


class SelectRequest(BaseModel):
    user_id: int
    event: str = Field(min_length=1, examples=["session_completed"])
    data: Optional[dict[str, Any]] = Field(
        default=None,
        description="Event payload, e.g. {\"score\": 85} or {\"minutesInRoom\": 20}.",
    )


class SelectResponse(BaseModel):
    event: str
    loop_type: Optional[str] = None


class DecideRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: int
    loop_type: LoopTypeEnum
    event: Optional[str] = None


class EvaluateRequest(SelectRequest):
    pass


class DecisionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    should_trigger: bool
    loop_type: Optional[str] = None
    reason: str
    throttled: bool = False
    cooldown: bool = False


class ResetResponse(BaseModel):
    keys_cleared: int
