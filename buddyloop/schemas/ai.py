"""
Copy-service (LLM collaborator) schemas.

These models double as the validation layer for model output: a completion
that does not fit them is treated like any other collaborator failure.

POST /ai/analyze-session      → SessionIn              → SessionInsightsResponse
POST /ai/personalize-message  → PersonalizationContext → PersonalizedMessageResponse
POST /ai/orchestrate          → OrchestrateRequest     → AIOrchestrationResult
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoopTypeEnum(str, enum.Enum):
    buddy_challenge = "buddy_challenge"
    voice_room_invite = "voice_room_invite"
    tutor_spotlight = "tutor_spotlight"
    proud_parent_share = "proud_parent_share"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class SessionIn(BaseModel):
    """A completed practice session."""
    session_id: str = Field(min_length=1, examples=["sess_42"])
    subject: str = Field(min_length=1, examples=["Algebra"])
    duration: int = Field(default=0, ge=0, description="Minutes.")
    questions_answered: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    skills_improved: list[str] = Field(default_factory=list)
    timestamp: Optional[datetime] = None

    @property
    def accuracy(self) -> int:
        """Percent correct, rounded. 0 when nothing was answered."""
        if self.questions_answered <= 0:
            return 0
        return round(self.correct_answers / self.questions_answered * 100)


class SenderProfile(BaseModel):
    name: str
    role: str
    streak: Optional[int] = None
    level: Optional[int] = None


class RecipientProfile(BaseModel):
    name: str
    role: str


class SessionSnapshot(BaseModel):
    subject: str
    score: int = Field(ge=0, le=100)
    skills_improved: list[str] = Field(default_factory=list)


class PersonalizationContext(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    sender: SenderProfile
    recipient: Optional[RecipientProfile] = None
    session_data: Optional[SessionSnapshot] = None
    loop_type: LoopTypeEnum
    time_of_day: Optional[Literal["morning", "afternoon", "evening"]] = None


class UserContext(BaseModel):
    user_id: int
    role: str = Field(examples=["student", "parent", "tutor"])
    name: str = "User"
    streak: Optional[int] = Field(default=None, ge=0)
    recent_activity: list[str] = Field(
        default_factory=list,
        description='Short summaries like "Algebra (85%)", newest first.',
    )


class OrchestrateRequest(BaseModel):
    event: str = Field(min_length=1, examples=["session_completed"])
    user_context: UserContext
    session_data: Optional[SessionIn] = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

class SessionInsights(BaseModel):
    strengths: list[str]
    gaps: list[str]
    recommendations: list[str]
    achievement_summary: str


class LoopRecommendation(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    loop_type: Optional[LoopTypeEnum] = None
    reasoning: str
    confidence: int = Field(ge=0, le=100)


class SessionInsightsResponse(BaseModel):
    insights: SessionInsights
    fallback: bool = Field(description="True when rule-based copy was substituted.")


class PersonalizedMessageResponse(BaseModel):
    message: str
    fallback: bool


class AIOrchestrationResult(BaseModel):
    should_trigger: bool
    loop_type: Optional[str] = None
    reasoning: str
    confidence: int
    personalized_message: Optional[str] = None
    fallback: bool = False
