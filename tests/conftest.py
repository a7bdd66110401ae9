"""
Shared pytest fixtures.

Every test gets a fresh runtime on a fake clock, so throttle counters,
cooldowns and balances never leak between tests. The LLM is reached through
an httpx.MockTransport; without one the copy service has no API key and
answers with fallbacks.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from buddyloop.core.config import Settings
from buddyloop.core.runtime import Runtime, build_runtime, get_runtime
from buddyloop.main import app
from buddyloop.services.funnel import DecisionLog
from buddyloop.services.orchestrator import ViralLoopOrchestrator
from buddyloop.services.rewards import RewardLedger
from buddyloop.services.store import InMemoryTrackingStore

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


def completion(content: str) -> httpx.Response:
    """A chat-completions response carrying `content`."""
    return httpx.Response(
        200,
        json={"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]},
    )


def make_settings(**overrides) -> Settings:
    values = dict(
        LLM_API_KEY="",
        LLM_API_BASE="https://llm.test/v1",
        LLM_TIMEOUT_SECONDS=0.5,
        PUBLIC_BASE_URL="https://buddyloop.test",
        DAILY_INVITE_CAP=3,
        LOOP_COOLDOWN_SECONDS=2 * 60 * 60,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock):
    return InMemoryTrackingStore(clock=clock)


@pytest.fixture()
def decisions(clock):
    return DecisionLog(max_entries=100, clock=clock)


@pytest.fixture()
def ledger(store):
    return RewardLedger(store)


@pytest.fixture()
def orchestrator(store, decisions, clock):
    return ViralLoopOrchestrator(
        store, decisions, daily_cap=3, cooldown_seconds=2 * 60 * 60, clock=clock
    )


@pytest.fixture()
def llm_runtime(clock) -> Callable[..., Runtime]:
    """Factory: runtime whose copy service talks to `handler` via MockTransport."""
    def _build(handler: Optional[Callable] = None, **overrides) -> Runtime:
        if handler is None:
            return build_runtime(make_settings(**overrides), clock=clock)
        overrides.setdefault("LLM_API_KEY", "sk-test")
        return build_runtime(
            make_settings(**overrides),
            clock=clock,
            llm_transport=httpx.MockTransport(handler),
        )
    return _build


@pytest.fixture()
def runtime(llm_runtime) -> Runtime:
    return llm_runtime()


@pytest.fixture()
def client(runtime):
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
