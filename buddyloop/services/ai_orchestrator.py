"""
AI Orchestrator: model-recommended viral loop plus personalised share copy.

This only recommends. Callers that act on the recommendation still go
through ViralLoopOrchestrator.decide for throttling and cooldown.
"""
from __future__ import annotations

from typing import Optional

from buddyloop.schemas.ai import (
    AIOrchestrationResult,
    PersonalizationContext,
    SenderProfile,
    SessionIn,
    SessionSnapshot,
    UserContext,
)
from buddyloop.services.funnel import DecisionLog, DecisionStatus
from buddyloop.services.llm import CopyService, Fallback

AGENT_NAME = "AI Orchestrator"


class AIOrchestrator:

    def __init__(self, copy: CopyService, decisions: DecisionLog):
        self._copy = copy
        self._decisions = decisions

    async def analyze_and_orchestrate(
        self,
        event: str,
        user: UserContext,
        session: Optional[SessionIn] = None,
    ) -> AIOrchestrationResult:
        outcome = await self._copy.recommend_loop(user, session)
        recommendation = outcome.value

        message = None
        if recommendation.loop_type is not None:
            snapshot = None
            if session is not None:
                snapshot = SessionSnapshot(
                    subject=session.subject,
                    score=min(100, session.accuracy),
                    skills_improved=session.skills_improved,
                )
            message_outcome = await self._copy.personalize(
                PersonalizationContext(
                    sender=SenderProfile(name=user.name, role=user.role, streak=user.streak),
                    loop_type=recommendation.loop_type,
                    session_data=snapshot,
                )
            )
            message = message_outcome.value

        self._decisions.record(
            agent=AGENT_NAME,
            action=(
                f"Recommended: {recommendation.loop_type}"
                if recommendation.loop_type
                else "No recommendation"
            ),
            reason=f"[{event}] {recommendation.reasoning}",
            status=DecisionStatus.TRIGGERED if recommendation.loop_type else DecisionStatus.NO_ACTION,
        )

        return AIOrchestrationResult(
            should_trigger=recommendation.loop_type is not None,
            loop_type=recommendation.loop_type,
            reasoning=recommendation.reasoning,
            confidence=recommendation.confidence,
            personalized_message=message,
            fallback=isinstance(outcome, Fallback),
        )
