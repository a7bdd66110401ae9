"""
Reward Ledger: gems/points balances with streak and level-up milestones.

Rules
-----
  award_points            : +amount gems, +2*amount points. Additive only.
  check_streak_milestone  : streak of 7 → +100 gems, 30 → +500 gems,
                            at most once per (user_id, streak_days).
  check_level_up          : level(p) = p // 1000 + 1; crossing into a higher
                            level → +200 gems.
  level_progress          : pure, percent clamped to [0, 100].

Idempotency
-----------
Each rewarded streak is marked with `set_if_absent` on the tracking store
before gems are added, so a repeated call (or a concurrent one against a
shared store) finds the marker and returns None.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from buddyloop.core.errors import InvalidRewardAmountError
from buddyloop.services.store import TrackingStore


# ---------------------------------------------------------------------------
# Reward amounts (gems)
# ---------------------------------------------------------------------------

class RewardAmount:
    BUDDY_CHALLENGE   = 50
    VOICE_ROOM        = 25
    STREAK_7          = 100
    STREAK_30         = 500
    LEVEL_UP          = 200
    SESSION_COMPLETE  = 20
    VOICE_ROOM_JOIN   = 10
    INVITE_ACCEPTED   = 15
    VOICE_ROOM_30_MIN = 25
    ACHIEVEMENT       = 50


POINTS_PER_GEM = 2
POINTS_PER_LEVEL = 1000

STREAK_MILESTONES: dict[int, int] = {
    7: RewardAmount.STREAK_7,
    30: RewardAmount.STREAK_30,
}


class NotificationKind:
    GEMS        = "gems"
    STREAK      = "streak"
    LEVEL_UP    = "level_up"
    ACHIEVEMENT = "achievement"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Notification:
    """Display payload for a reward toast."""
    kind: str
    message: str
    icon: str
    amount: Optional[int] = None
    is_big: bool = False


@dataclass
class RewardBalance:
    points: int = 0
    gems: int = 0
    streak_days: int = 0


@dataclass
class LevelProgress:
    level: int
    next_level: int
    progress_percent: float  # display only


@dataclass
class AwardResult:
    """Award plus whatever milestone it unlocked."""
    balance: RewardBalance
    notifications: list[Notification] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def calculate_level(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def level_progress(points: int) -> LevelProgress:
    level = calculate_level(points)
    floor_points = (level - 1) * POINTS_PER_LEVEL
    ceiling_points = level * POINTS_PER_LEVEL
    progress = (points - floor_points) / (ceiling_points - floor_points) * 100
    return LevelProgress(
        level=level,
        next_level=level + 1,
        progress_percent=round(min(100.0, max(0.0, progress)), 2),
    )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class RewardLedger:

    def __init__(self, store: TrackingStore):
        self._store = store

    @staticmethod
    def _key(user_id: int, name: str) -> str:
        return f"balance:{user_id}:{name}"

    def balance(self, user_id: int) -> RewardBalance:
        return RewardBalance(
            points=int(self._store.get(self._key(user_id, "points"), 0)),
            gems=int(self._store.get(self._key(user_id, "gems"), 0)),
            streak_days=int(self._store.get(self._key(user_id, "streak_days"), 0)),
        )

    def _add(self, user_id: int, gems: int) -> None:
        if gems < 0:
            raise InvalidRewardAmountError(gems)
        self._store.increment(self._key(user_id, "gems"), gems)
        self._store.increment(self._key(user_id, "points"), gems * POINTS_PER_GEM)

    def award_points(self, user_id: int, amount: int, reason: str) -> Notification:
        """Add `amount` gems and `2 * amount` points."""
        self._add(user_id, amount)
        logger.info("Reward awarded", user_id=user_id, gems=amount, reason=reason)
        return Notification(
            kind=NotificationKind.GEMS,
            amount=amount,
            message=f"💎 +{amount} gems - {reason}",
            icon="💎",
        )

    def award_achievement(self, user_id: int, achievement_name: str, message: str) -> Notification:
        self._add(user_id, RewardAmount.ACHIEVEMENT)
        logger.info(
            "Achievement awarded",
            user_id=user_id,
            achievement=achievement_name,
            gems=RewardAmount.ACHIEVEMENT,
        )
        return Notification(
            kind=NotificationKind.ACHIEVEMENT,
            amount=RewardAmount.ACHIEVEMENT,
            message=f"🏆 {message}",
            icon="🏆",
            is_big=True,
        )

    def check_streak_milestone(self, user_id: int, current_streak_days: int) -> Optional[Notification]:
        """Award a streak milestone once per (user_id, streak_days)."""
        bonus = STREAK_MILESTONES.get(current_streak_days)
        if bonus is None:
            return None
        marker = f"milestone:{user_id}:streak:{current_streak_days}"
        if not self._store.set_if_absent(marker, True):
            return None

        self.award_points(user_id, bonus, f"{current_streak_days} day streak milestone!")
        return Notification(
            kind=NotificationKind.STREAK,
            amount=bonus,
            message=f"🔥 {current_streak_days} day streak unlocked! +{bonus} gems",
            icon="🔥",
            is_big=True,
        )

    def record_streak(self, user_id: int, streak_days: int) -> Optional[Notification]:
        """Store the user's current streak and run the milestone check."""
        self._store.set(self._key(user_id, "streak_days"), max(0, streak_days))
        return self.check_streak_milestone(user_id, streak_days)

    def check_level_up(
        self, user_id: int, previous_points: int, current_points: int
    ) -> Optional[Notification]:
        previous_level = calculate_level(previous_points)
        current_level = calculate_level(current_points)
        if current_level <= previous_level:
            return None

        self.award_points(user_id, RewardAmount.LEVEL_UP, f"Level {current_level} unlocked!")
        return Notification(
            kind=NotificationKind.LEVEL_UP,
            amount=RewardAmount.LEVEL_UP,
            message=f"⭐ Level {current_level} unlocked! +{RewardAmount.LEVEL_UP} gems",
            icon="⭐",
            is_big=True,
        )

    def award_with_level_check(self, user_id: int, amount: int, reason: str) -> AwardResult:
        """Award gems, then check whether the new points total crossed a level."""
        previous_points = self.balance(user_id).points
        notifications = [self.award_points(user_id, amount, reason)]
        level_up = self.check_level_up(user_id, previous_points, self.balance(user_id).points)
        if level_up is not None:
            notifications.append(level_up)
        return AwardResult(balance=self.balance(user_id), notifications=notifications)
