"""
Rewards router.

GET  /rewards/progress?points=        — level progress bar (pure)
GET  /rewards/{user_id}               — current balance
POST /rewards/{user_id}/award         — add gems (+ optional level-up check)
POST /rewards/{user_id}/achievements  — award an achievement
POST /rewards/{user_id}/streak        — record streak, award milestone once
POST /rewards/{user_id}/level-check   — award level-up for a points transition
"""
from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from buddyloop.core.runtime import Runtime, get_runtime
from buddyloop.schemas.common import UNPROCESSABLE
from buddyloop.schemas.rewards import (
    AchievementRequest,
    AwardRequest,
    AwardResponse,
    BalanceResponse,
    LevelCheckRequest,
    LevelProgressResponse,
    MilestoneResponse,
    NotificationOut,
    StreakRequest,
)
from buddyloop.services.rewards import Notification, calculate_level, level_progress

router = APIRouter(prefix="/rewards", tags=["rewards"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _balance_out(rt: Runtime, user_id: int) -> BalanceResponse:
    balance = rt.ledger.balance(user_id)
    return BalanceResponse(
        user_id=user_id,
        points=balance.points,
        gems=balance.gems,
        streak_days=balance.streak_days,
        level=calculate_level(balance.points),
    )


def _notification_out(n: Notification) -> NotificationOut:
    return NotificationOut(**asdict(n))


def _milestone_out(rt: Runtime, user_id: int, n: Optional[Notification]) -> MilestoneResponse:
    return MilestoneResponse(
        awarded=n is not None,
        notification=_notification_out(n) if n is not None else None,
        balance=_balance_out(rt, user_id),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("/progress", response_model=LevelProgressResponse, summary="Level progress for a points total")
def get_level_progress(points: int = Query(ge=0, description="Total points.")):
    progress = level_progress(points)
    return LevelProgressResponse(
        points=points,
        level=progress.level,
        next_level=progress.next_level,
        progress_percent=progress.progress_percent,
    )


@router.get("/{user_id}", response_model=BalanceResponse, summary="Current reward balance")
def get_balance(user_id: int, rt: Runtime = Depends(get_runtime)):
    return _balance_out(rt, user_id)


@router.post(
    "/{user_id}/award",
    response_model=AwardResponse,
    summary="Award gems (and points at 2 per gem)",
    responses=UNPROCESSABLE,
)
def award(user_id: int, body: AwardRequest, rt: Runtime = Depends(get_runtime)):
    if body.check_level_up:
        result = rt.ledger.award_with_level_check(user_id, body.amount, body.reason)
        notifications = result.notifications
    else:
        notifications = [rt.ledger.award_points(user_id, body.amount, body.reason)]
    return AwardResponse(
        balance=_balance_out(rt, user_id),
        notifications=[_notification_out(n) for n in notifications],
    )


@router.post(
    "/{user_id}/achievements",
    response_model=NotificationOut,
    summary="Award an achievement badge",
)
def award_achievement(user_id: int, body: AchievementRequest, rt: Runtime = Depends(get_runtime)):
    return _notification_out(rt.ledger.award_achievement(user_id, body.name, body.message))


@router.post(
    "/{user_id}/streak",
    response_model=MilestoneResponse,
    summary="Record the user's streak and award a milestone once",
)
def record_streak(user_id: int, body: StreakRequest, rt: Runtime = Depends(get_runtime)):
    """
    Milestones: 7 days → 100 gems, 30 days → 500 gems.
    Repeating the same streak length for the same user never awards twice.
    """
    notification = rt.ledger.record_streak(user_id, body.streak_days)
    return _milestone_out(rt, user_id, notification)


@router.post(
    "/{user_id}/level-check",
    response_model=MilestoneResponse,
    summary="Award the level-up bonus for a points transition",
)
def level_check(user_id: int, body: LevelCheckRequest, rt: Runtime = Depends(get_runtime)):
    notification = rt.ledger.check_level_up(user_id, body.previous_points, body.current_points)
    return _milestone_out(rt, user_id, notification)
