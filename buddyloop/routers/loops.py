"""
Viral-loop router.

POST /loops/select     — which loop an event maps to (pure, no quota used)
POST /loops/decide     — gate a loop trigger (consumes quota on success)
POST /loops/evaluate   — select + decide in one call
POST /loops/reset      — clear throttle counters and cooldown clocks (admin)
GET  /loops/decisions  — agent decision log, newest first
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from buddyloop.core.runtime import Runtime, get_runtime
from buddyloop.schemas.common import DecisionLogEntryOut, DecisionLogResponse
from buddyloop.schemas.loops import (
    DecideRequest,
    DecisionOut,
    EvaluateRequest,
    ResetResponse,
    SelectRequest,
    SelectResponse,
)
from buddyloop.services.funnel import DecisionLogEntry
from buddyloop.services.orchestrator import TriggerContext, select_loop

router = APIRouter(prefix="/loops", tags=["loops"])


def _entry_out(entry: DecisionLogEntry) -> DecisionLogEntryOut:
    return DecisionLogEntryOut(
        timestamp=entry.timestamp.isoformat(),
        agent=entry.agent,
        action=entry.action,
        reason=entry.reason,
        status=entry.status,
    )


@router.post("/select", response_model=SelectResponse, summary="Select the loop for an event")
def select(body: SelectRequest):
    """
    | event | condition | loop |
    |---|---|---|
    | `session_completed` | `score > 70` | `buddy_challenge` |
    | `buddy_challenge_accepted` | — | `voice_room_invite` |
    | `voice_room_15_min` | `minutesInRoom > 15` | `tutor_spotlight` |
    | `session_completed` | parent role + `studentCompleted` | `proud_parent_share` |
    """
    context = TriggerContext(user_id=body.user_id, event=body.event, data=body.data)
    return SelectResponse(event=body.event, loop_type=select_loop(body.event, context))


@router.post("/decide", response_model=DecisionOut, summary="Gate a loop trigger")
def decide(body: DecideRequest, rt: Runtime = Depends(get_runtime)):
    """
    Checks the daily cap, then the per-loop cooldown. A positive decision
    consumes one daily slot, so call this once per real trigger attempt.
    """
    decision = rt.orchestrator.decide(body.user_id, body.loop_type, body.event)
    return DecisionOut.model_validate(decision)


@router.post("/evaluate", response_model=DecisionOut, summary="Select and gate in one call")
def evaluate(body: EvaluateRequest, rt: Runtime = Depends(get_runtime)):
    decision = rt.orchestrator.evaluate_event(body.user_id, body.event, body.data)
    return DecisionOut.model_validate(decision)


@router.post("/reset", response_model=ResetResponse, summary="Reset throttle and cooldown tracking")
def reset(rt: Runtime = Depends(get_runtime)):
    return ResetResponse(keys_cleared=rt.orchestrator.reset_tracking())


@router.get("/decisions", response_model=DecisionLogResponse, summary="Agent decision log")
def list_decisions(
    agent: Optional[str] = Query(default=None, description='e.g. "Viral Loop Orchestrator", "Funnel".'),
    limit: int = Query(default=50, ge=1, le=200),
    rt: Runtime = Depends(get_runtime),
):
    items = rt.decisions.entries(agent=agent)
    return DecisionLogResponse(
        total=len(items),
        items=[_entry_out(e) for e in items[:limit]],
    )
