"""
Process-wide wiring of the tracking store and the services built on it.

Routers receive the Runtime through the `get_runtime` dependency; tests
override it with a runtime built on a fake clock and a mock LLM transport.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from buddyloop.core.config import Settings, settings
from buddyloop.services.ai_orchestrator import AIOrchestrator
from buddyloop.services.funnel import DecisionLog, FunnelTracker
from buddyloop.services.llm import CopyService, LLMClient
from buddyloop.services.orchestrator import ViralLoopOrchestrator
from buddyloop.services.rewards import RewardLedger
from buddyloop.services.smart_links import SmartLinkCodec
from buddyloop.services.store import Clock, InMemoryTrackingStore, TrackingStore, utcnow


@dataclass
class Runtime:
    store: TrackingStore
    decisions: DecisionLog
    funnel: FunnelTracker
    ledger: RewardLedger
    links: SmartLinkCodec
    orchestrator: ViralLoopOrchestrator
    copy: CopyService
    ai: AIOrchestrator


def build_runtime(
    config: Settings = settings,
    clock: Clock = utcnow,
    store: Optional[TrackingStore] = None,
    llm_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Runtime:
    store = store if store is not None else InMemoryTrackingStore(clock=clock)
    decisions = DecisionLog(max_entries=config.DECISION_LOG_SIZE, clock=clock)
    copy = CopyService(
        LLMClient(
            api_base=config.LLM_API_BASE,
            api_key=config.LLM_API_KEY,
            model=config.LLM_MODEL,
            timeout_seconds=config.LLM_TIMEOUT_SECONDS,
            transport=llm_transport,
        ),
        decisions,
    )
    return Runtime(
        store=store,
        decisions=decisions,
        funnel=FunnelTracker(decisions, max_events=config.FUNNEL_EVENT_LIMIT, clock=clock),
        ledger=RewardLedger(store),
        links=SmartLinkCodec(base_url=config.PUBLIC_BASE_URL),
        orchestrator=ViralLoopOrchestrator(
            store,
            decisions,
            daily_cap=config.DAILY_INVITE_CAP,
            cooldown_seconds=config.LOOP_COOLDOWN_SECONDS,
            clock=clock,
        ),
        copy=copy,
        ai=AIOrchestrator(copy, decisions),
    )


_runtime: Optional[Runtime] = None


def get_runtime() -> Runtime:
    global _runtime
    if _runtime is None:
        _runtime = build_runtime()
    return _runtime
