"""
AI copy router.

POST /ai/analyze-session      — session insights
POST /ai/personalize-message  — share copy for a loop
POST /ai/orchestrate          — model-recommended loop + copy

These routes always answer 200: when the model is unavailable the response
carries rule-based copy and `fallback: true`.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from buddyloop.core.runtime import Runtime, get_runtime
from buddyloop.schemas.ai import (
    AIOrchestrationResult,
    OrchestrateRequest,
    PersonalizationContext,
    PersonalizedMessageResponse,
    SessionIn,
    SessionInsightsResponse,
)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/analyze-session", response_model=SessionInsightsResponse, summary="Session insights")
async def analyze_session(body: SessionIn, rt: Runtime = Depends(get_runtime)):
    outcome = await rt.copy.summarize_session(body)
    return SessionInsightsResponse(insights=outcome.value, fallback=outcome.is_fallback)


@router.post(
    "/personalize-message",
    response_model=PersonalizedMessageResponse,
    summary="Personalised share message",
)
async def personalize_message(body: PersonalizationContext, rt: Runtime = Depends(get_runtime)):
    outcome = await rt.copy.personalize(body)
    return PersonalizedMessageResponse(message=outcome.value, fallback=outcome.is_fallback)


@router.post("/orchestrate", response_model=AIOrchestrationResult, summary="Recommend a viral loop")
async def orchestrate(body: OrchestrateRequest, rt: Runtime = Depends(get_runtime)):
    return await rt.ai.analyze_and_orchestrate(body.event, body.user_context, body.session_data)
