"""
Viral-Loop Orchestrator: which growth loop to fire, and whether it may fire now.

Selection rules (first match wins)
----------------------------------
  1. session_completed        + score > 70                  → buddy_challenge
  2. buddy_challenge_accepted                               → voice_room_invite
  3. voice_room_15_min        + minutesInRoom > 15          → tutor_spotlight
  4. session_completed        + parent role + studentCompleted → proud_parent_share

Numeric thresholds only match real numbers; `studentCompleted` is read as
truthy, so 1 or "true" count as completed.

Gating (evaluated by `decide`, in order)
----------------------------------------
  Daily cap  : at most DAILY_INVITE_CAP triggers per (user, UTC day), across
               every loop type.
  Cooldown   : after a trigger, the same (user, loop_type) is blocked for
               LOOP_COOLDOWN_SECONDS.

A passing `decide` consumes one daily slot and restarts the cooldown clock,
so it must be called exactly once per real trigger attempt. Nothing here
raises; every outcome is a LoopTriggerDecision with a display-ready reason.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from loguru import logger

from buddyloop.services.funnel import DecisionLog, DecisionStatus
from buddyloop.services.store import Clock, TrackingStore, utcnow


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

class LoopType:
    BUDDY_CHALLENGE    = "buddy_challenge"
    VOICE_ROOM_INVITE  = "voice_room_invite"
    TUTOR_SPOTLIGHT    = "tutor_spotlight"
    PROUD_PARENT_SHARE = "proud_parent_share"

    ALL = (BUDDY_CHALLENGE, VOICE_ROOM_INVITE, TUTOR_SPOTLIGHT, PROUD_PARENT_SHARE)


class TriggerEvent:
    SESSION_COMPLETED        = "session_completed"
    BUDDY_CHALLENGE_ACCEPTED = "buddy_challenge_accepted"
    VOICE_ROOM_15_MIN        = "voice_room_15_min"


_SCORE_THRESHOLD           = 70
_MINUTES_IN_ROOM_THRESHOLD = 15

AGENT_NAME = "Viral Loop Orchestrator"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class TriggerContext:
    user_id: int
    event: str
    data: Optional[Mapping[str, Any]] = None


@dataclass
class LoopTriggerDecision:
    should_trigger: bool
    loop_type: Optional[str]
    reason: str
    throttled: bool = False
    cooldown: bool = False


# ---------------------------------------------------------------------------
# Rule selection (pure)
# ---------------------------------------------------------------------------

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _exceeds(value: Any, threshold: float) -> bool:
    number = _number(value)
    return number is not None and number > threshold


def select_loop(event: str, context: TriggerContext) -> Optional[str]:
    data = context.data or {}

    if event == TriggerEvent.SESSION_COMPLETED and _exceeds(data.get("score"), _SCORE_THRESHOLD):
        return LoopType.BUDDY_CHALLENGE

    if event == TriggerEvent.BUDDY_CHALLENGE_ACCEPTED:
        return LoopType.VOICE_ROOM_INVITE

    if event == TriggerEvent.VOICE_ROOM_15_MIN and _exceeds(
        data.get("minutesInRoom"), _MINUTES_IN_ROOM_THRESHOLD
    ):
        return LoopType.TUTOR_SPOTLIGHT

    role = data.get("userRole", data.get("role"))
    if (
        event == TriggerEvent.SESSION_COMPLETED
        and role == "parent"
        and bool(data.get("studentCompleted"))
    ):
        return LoopType.PROUD_PARENT_SHARE

    return None


# ---------------------------------------------------------------------------
# Orchestrator (stateful gating)
# ---------------------------------------------------------------------------

class ViralLoopOrchestrator:

    def __init__(
        self,
        store: TrackingStore,
        decisions: DecisionLog,
        daily_cap: int = 3,
        cooldown_seconds: int = 2 * 60 * 60,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._decisions = decisions
        self.daily_cap = daily_cap
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock

    # -- keys ---------------------------------------------------------------

    @staticmethod
    def _daily_key(user_id: int, now: datetime) -> str:
        return f"invites:{user_id}:{now.date().isoformat()}"

    @staticmethod
    def _cooldown_key(user_id: int, loop_type: str) -> str:
        return f"cooldown:{user_id}:{loop_type}"

    @staticmethod
    def _seconds_until_midnight(now: datetime) -> float:
        midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), now.tzinfo)
        return max(1.0, (midnight - now).total_seconds())

    # -- queries ------------------------------------------------------------

    def invites_today(self, user_id: int) -> int:
        return int(self._store.get(self._daily_key(user_id, self._clock()), 0))

    # -- operations ---------------------------------------------------------

    def decide(self, user_id: int, loop_type: str, event: Optional[str] = None) -> LoopTriggerDecision:
        now = self._clock()
        daily_key = self._daily_key(user_id, now)
        today_count = int(self._store.get(daily_key, 0))

        if today_count >= self.daily_cap:
            decision = LoopTriggerDecision(
                should_trigger=False,
                loop_type=None,
                reason=f"Daily limit reached ({today_count}/{self.daily_cap} invites today)",
                throttled=True,
            )
            self._log(loop_type, decision, DecisionStatus.THROTTLED)
            return decision

        last_trigger = self._store.get(self._cooldown_key(user_id, loop_type))
        if last_trigger is not None:
            elapsed = now.timestamp() - float(last_trigger)
            if elapsed < self.cooldown_seconds:
                minutes_remaining = math.ceil((self.cooldown_seconds - elapsed) / 60)
                decision = LoopTriggerDecision(
                    should_trigger=False,
                    loop_type=None,
                    reason=f"Cooldown active ({minutes_remaining} minutes remaining)",
                    cooldown=True,
                )
                self._log(loop_type, decision, DecisionStatus.BLOCKED)
                return decision

        self._store.increment(daily_key, ttl=self._seconds_until_midnight(now))
        self._store.set(
            self._cooldown_key(user_id, loop_type),
            now.timestamp(),
            ttl=self.cooldown_seconds,
        )

        suffix = f" (event: {event})" if event else ""
        decision = LoopTriggerDecision(
            should_trigger=True,
            loop_type=loop_type,
            reason=f"Triggering {loop_type} for user {user_id}{suffix}",
        )
        self._log(loop_type, decision, DecisionStatus.TRIGGERED)
        return decision

    def evaluate_event(
        self, user_id: int, event: str, data: Optional[Mapping[str, Any]] = None
    ) -> LoopTriggerDecision:
        """select_loop + decide. No matching rule → no_action, no quota used."""
        loop_type = select_loop(event, TriggerContext(user_id=user_id, event=event, data=data))
        if loop_type is None:
            decision = LoopTriggerDecision(
                should_trigger=False,
                loop_type=None,
                reason=f"No viral loop rule matched event {event}",
            )
            self._decisions.record(
                agent=AGENT_NAME,
                action="No loop selected",
                reason=decision.reason,
                status=DecisionStatus.NO_ACTION,
            )
            return decision
        return self.decide(user_id, loop_type, event)

    def reset_tracking(self) -> int:
        """Administrative: clear daily counters and cooldown clocks."""
        cleared = self._store.reset("invites:") + self._store.reset("cooldown:")
        logger.warning("Viral loop tracking reset", keys_cleared=cleared)
        return cleared

    def _log(self, loop_type: str, decision: LoopTriggerDecision, status: str) -> None:
        self._decisions.record(
            agent=AGENT_NAME,
            action=loop_type,
            reason=decision.reason,
            status=status,
        )
