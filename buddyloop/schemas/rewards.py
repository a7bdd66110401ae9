"""
Reward ledger schemas.

POST /rewards/{user_id}/award         → AwardRequest       → AwardResponse
POST /rewards/{user_id}/achievements  → AchievementRequest → NotificationOut
POST /rewards/{user_id}/streak        → StreakRequest      → MilestoneResponse
POST /rewards/{user_id}/level-check   → LevelCheckRequest  → MilestoneResponse
GET  /rewards/{user_id}                                    → BalanceResponse
GET  /rewards/progress?points=                             → LevelProgressResponse
"""
from typing import Annotated, Optional

from pydantic import BaseModel, Field, model_validator


class NotificationOut(BaseModel):
    kind: str = Field(description='"gems" | "streak" | "level_up" | "achievement"')
    amount: Optional[int] = None
    message: str
    icon: str
    is_big: bool = False


class BalanceResponse(BaseModel):
    user_id: int
    points: int
    gems: int
    streak_days: int
    level: int


class AwardRequest(BaseModel):
    amount: Annotated[int, Field(ge=0, description="Gems to add. Points grow by twice this.")]
    reason: Annotated[str, Field(min_length=1, max_length=200, examples=["Buddy challenge sent"])]
    check_level_up: bool = Field(
        default=True,
        description="Also award the level-up bonus if this award crosses a 1000-point band.",
    )


class AwardResponse(BaseModel):
    balance: BalanceResponse
    notifications: list[NotificationOut]


class AchievementRequest(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=100, examples=["first_challenge"])]
    message: Annotated[str, Field(min_length=1, max_length=200, examples=["First challenge sent!"])]


class StreakRequest(BaseModel):
    streak_days: Annotated[int, Field(ge=0)]


class LevelCheckRequest(BaseModel):
    previous_points: Annotated[int, Field(ge=0)]
    current_points: Annotated[int, Field(ge=0)]

    @model_validator(mode="after")
    def points_do_not_decrease(self):
        if self.current_points < self.previous_points:
            raise ValueError("current_points must be >= previous_points")
        return self


class MilestoneResponse(BaseModel):
    awarded: bool
    notification: Optional[NotificationOut] = None
    balance: BalanceResponse


class LevelProgressResponse(BaseModel):
    points: int
    level: int
    next_level: int
    progress_percent: float = Field(ge=0, le=100)
