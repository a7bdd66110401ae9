"""
Funnel and decision logs: append-only, bounded, in process memory.

DecisionLog keeps the last N agent decisions (oldest dropped) for the
debugger view. FunnelTracker records named funnel events and mirrors each
one into the decision log under the "Funnel" agent.
"""
from __future__ import annotations

import json
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from buddyloop.services.store import Clock, utcnow


class DecisionStatus:
    TRIGGERED = "triggered"
    THROTTLED = "throttled"
    BLOCKED   = "blocked"
    NO_ACTION = "no_action"
    FALLBACK  = "fallback"


class FunnelEventName:
    LINK_CREATED      = "link_created"
    LINK_CLICKED      = "link_clicked"
    SIGNUP            = "signup"
    SESSION_COMPLETED = "session_completed"
    CONVERSION        = "conversion"

    ALL = (LINK_CREATED, LINK_CLICKED, SIGNUP, SESSION_COMPLETED, CONVERSION)


@dataclass(frozen=True)
class DecisionLogEntry:
    timestamp: datetime
    agent: str
    action: str
    reason: str
    status: str


@dataclass(frozen=True)
class FunnelEvent:
    name: str
    payload: Any
    timestamp: datetime


class DecisionLog:

    def __init__(self, max_entries: int = 100, clock: Clock = utcnow):
        self._entries: deque[DecisionLogEntry] = deque(maxlen=max_entries)
        self._clock = clock

    def record(self, agent: str, action: str, reason: str, status: str) -> DecisionLogEntry:
        entry = DecisionLogEntry(
            timestamp=self._clock(),
            agent=agent,
            action=action,
            reason=reason,
            status=status,
        )
        self._entries.append(entry)
        logger.info("Agent decision", agent=agent, action=action, status=status)
        return entry

    def entries(self, agent: Optional[str] = None, limit: Optional[int] = None) -> list[DecisionLogEntry]:
        """Newest first."""
        items = [e for e in reversed(self._entries) if agent is None or e.agent == agent]
        return items if limit is None else items[:limit]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class FunnelTracker:

    def __init__(self, decisions: DecisionLog, max_events: int = 1000, clock: Clock = utcnow):
        self._decisions = decisions
        self._events: deque[FunnelEvent] = deque(maxlen=max_events)
        self._clock = clock

    def track(self, name: str, payload: Any = None) -> FunnelEvent:
        if name not in FunnelEventName.ALL:
            raise ValueError(f"Unknown funnel event: {name!r}")
        event = FunnelEvent(name=name, payload=payload, timestamp=self._clock())
        self._events.append(event)
        self._decisions.record(
            agent="Funnel",
            action=name,
            reason=json.dumps(payload, default=str) if payload is not None else "Funnel event tracked",
            status=DecisionStatus.TRIGGERED,
        )
        return event

    def track_link_click(self, code: str) -> FunnelEvent:
        self._decisions.record(
            agent="Analytics",
            action="Link clicked",
            reason=f"Invite link clicked: {code}",
            status=DecisionStatus.TRIGGERED,
        )
        return self.track(FunnelEventName.LINK_CLICKED, {"code": code})

    def events(self, name: Optional[str] = None) -> list[FunnelEvent]:
        """Insertion order."""
        return [e for e in self._events if name is None or e.name == name]

    def summary(self) -> dict[str, int]:
        counts = Counter(e.name for e in self._events)
        return {name: counts.get(name, 0) for name in FunnelEventName.ALL}

    def clear(self) -> None:
        self._events.clear()
