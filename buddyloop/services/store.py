"""
Tracking store: key/value state behind the orchestrator and the ledger.

Throttle counters, cooldown clocks, streak markers and reward balances all
live behind this interface. `InMemoryTrackingStore` is the process-local
implementation; a shared deployment swaps in a store whose `increment` and
`set_if_absent` are atomic on the server side (Redis INCRBY / SET NX EX).

Keys are composite strings built by the callers, e.g.
  invites:<user_id>:<YYYY-MM-DD>
  cooldown:<user_id>:<loop_type>
  milestone:<user_id>:streak:<days>
  balance:<user_id>:points

TTLs are in seconds. Expiry is evaluated lazily against the injected clock,
so tests can advance time without sleeping.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TrackingStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None: ...

    def set_if_absent(self, key: str, value: Any, ttl: Optional[float] = None) -> bool: ...

    def increment(self, key: str, amount: int = 1, ttl: Optional[float] = None) -> int: ...

    def reset(self, prefix: Optional[str] = None) -> int: ...


@dataclass
class _Slot:
    value: Any
    expires_at: Optional[float]  # POSIX seconds, None = never


class InMemoryTrackingStore:
    """Dict-backed store. Single process, no locking."""

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._slots: dict[str, _Slot] = {}

    def _now(self) -> float:
        return self._clock().timestamp()

    def _expiry(self, ttl: Optional[float]) -> Optional[float]:
        return None if ttl is None else self._now() + ttl

    def _live(self, key: str) -> Optional[_Slot]:
        slot = self._slots.get(key)
        if slot is None:
            return None
        if slot.expires_at is not None and slot.expires_at <= self._now():
            del self._slots[key]
            return None
        return slot

    def get(self, key: str, default: Any = None) -> Any:
        slot = self._live(key)
        return default if slot is None else slot.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self._slots[key] = _Slot(value=value, expires_at=self._expiry(ttl))

    def set_if_absent(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """Store `value` only when `key` is missing or expired. True if stored."""
        if self._live(key) is not None:
            return False
        self.set(key, value, ttl)
        return True

    def increment(self, key: str, amount: int = 1, ttl: Optional[float] = None) -> int:
        """
        Add `amount` to the integer at `key` (missing counts as 0).
        `ttl` applies only when the key is created, like INCR + EXPIRE NX.
        """
        slot = self._live(key)
        if slot is None:
            slot = _Slot(value=0, expires_at=self._expiry(ttl))
            self._slots[key] = slot
        slot.value = int(slot.value) + amount
        return slot.value

    def reset(self, prefix: Optional[str] = None) -> int:
        """Drop every key (or every key starting with `prefix`). Returns count."""
        if prefix is None:
            count = len(self._slots)
            self._slots.clear()
            return count
        doomed = [k for k in self._slots if k.startswith(prefix)]
        for k in doomed:
            del self._slots[k]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._slots)
