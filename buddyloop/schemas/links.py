"""
Challenge-link schemas.

POST /invite              → InviteRequest → InviteResponse
GET  /invite/parse?url=   → ChallengeLinkOut
POST /invite/{code}/click → ClickResponse
"""
from __future__ import annotations

import enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChallengeTypeEnum(str, enum.Enum):
    beat_score = "beat_score"
    complete_subject = "complete_subject"
    time_challenge = "time_challenge"


class InviteRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    session_id: Annotated[str, Field(min_length=1, examples=["sess_42"])]
    sender_id: int
    sender_name: Annotated[str, Field(min_length=1, max_length=100, examples=["Maya"])]
    subject: Annotated[str, Field(min_length=1, max_length=100, examples=["Algebra"])]
    challenge_type: ChallengeTypeEnum = Field(
        default=ChallengeTypeEnum.beat_score, validate_default=True
    )
    reward_amount: Annotated[int, Field(ge=0)] = 50
    recipient_id: Optional[int] = Field(
        default=None, description="Omit when the link is shared by email or copy/paste."
    )
    recipient_email: Optional[str] = Field(
        default=None, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    )
    message: Optional[str] = Field(
        default=None, max_length=500, description="Sender's note, kept on the link_created event."
    )


class ChallengeLinkOut(BaseModel):
    code: str
    from_user_id: Optional[int] = None
    from_user_name: str
    subject: str
    session_id: Optional[str] = None
    reward_amount: int
    challenge_type: Optional[str] = None
    campaign: dict[str, str] = Field(default_factory=dict)


class InviteResponse(BaseModel):
    link: str
    code: str
    recipient_id: Optional[int] = None
    recipient_label: str = Field(description="Recipient email, or \"Friend\" for open links.")
    challenge: ChallengeLinkOut


class ClickResponse(BaseModel):
    code: str
    tracked: bool
