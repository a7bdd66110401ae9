"""
Funnel router.

POST /funnel/events   — record a funnel event
GET  /funnel/events   — list events in insertion order (optionally by name)
GET  /funnel/summary  — counts per stage
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from buddyloop.core.runtime import Runtime, get_runtime
from buddyloop.schemas.funnel import (
    FunnelEventEnum,
    FunnelEventIn,
    FunnelEventListResponse,
    FunnelEventOut,
    FunnelSummaryResponse,
)
from buddyloop.services.funnel import FunnelEvent

router = APIRouter(prefix="/funnel", tags=["funnel"])


def _event_out(ev: FunnelEvent) -> FunnelEventOut:
    return FunnelEventOut(name=ev.name, payload=ev.payload, timestamp=ev.timestamp.isoformat())


@router.post(
    "/events",
    response_model=FunnelEventOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a funnel event",
)
def track_event(body: FunnelEventIn, rt: Runtime = Depends(get_runtime)):
    return _event_out(rt.funnel.track(body.name, body.payload))


@router.get("/events", response_model=FunnelEventListResponse, summary="List funnel events")
def list_events(
    name: Optional[FunnelEventEnum] = Query(default=None, description="Omit for all stages."),
    rt: Runtime = Depends(get_runtime),
):
    items = rt.funnel.events(name.value if name else None)
    return FunnelEventListResponse(total=len(items), items=[_event_out(e) for e in items])


@router.get("/summary", response_model=FunnelSummaryResponse, summary="Funnel counts per stage")
def summary(rt: Runtime = Depends(get_runtime)):
    return FunnelSummaryResponse(counts=rt.funnel.summary())
