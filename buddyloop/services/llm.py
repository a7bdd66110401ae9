"""
Copy service: thin wrapper around an OpenAI-compatible chat endpoint.

Every call returns an Outcome:
  Ok(value)               the model answered and the answer validated
  Fallback(value, error)  rule-based value of the same shape

Missing API key, HTTP errors, timeouts and unparseable or invalid output all
end in Fallback. Nothing from the collaborator is raised to the caller.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import ClassVar, Generic, Optional, TypeVar, Union

import httpx
from loguru import logger

from buddyloop.schemas.ai import (
    LoopRecommendation,
    PersonalizationContext,
    SessionIn,
    SessionInsights,
    UserContext,
)
from buddyloop.services.funnel import DecisionLog, DecisionStatus
from buddyloop.services.orchestrator import LoopType

T = TypeVar("T")

AGENT_NAME = "Copy Service"
_FALLBACK_CONFIDENCE = 50


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    is_fallback: ClassVar[bool] = False


@dataclass(frozen=True)
class Fallback(Generic[T]):
    value: T
    error: str
    is_fallback: ClassVar[bool] = True


Outcome = Union[Ok[T], Fallback[T]]


class LLMError(RuntimeError):
    """The collaborator could not produce a usable completion."""


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class LLMClient:

    def __init__(
        self,
        api_base: str,
        api_key: str,
        model: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def complete(
        self,
        system: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        json_mode: bool = False,
    ) -> str:
        if not self.api_key:
            raise LLMError("LLM_API_KEY is not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(
                f"{self.api_base}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMError("Malformed completion payload") from exc
        if not isinstance(content, str) or not content.strip():
            raise LLMError("Empty completion")
        return content.strip()


# ---------------------------------------------------------------------------
# Deterministic fallbacks
# ---------------------------------------------------------------------------

_FALLBACK_MESSAGES = {
    LoopType.BUDDY_CHALLENGE: "Hey! I just crushed my session! Think you can beat that? 🎯",
    LoopType.VOICE_ROOM_INVITE: "Come join our study room! Let's learn together 🎧",
    LoopType.TUTOR_SPOTLIGHT: "Need help? A tutor is available for drop-in sessions! 📚",
    LoopType.PROUD_PARENT_SHARE: "So proud of my child's progress! 🌟",
}


def fallback_insights(session: SessionIn) -> SessionInsights:
    return SessionInsights(
        strengths=["Consistent effort", "Good problem-solving approach"],
        gaps=["Review foundational concepts", "Practice more challenging problems"],
        recommendations=["Continue practicing daily", "Focus on weak areas", "Join study groups"],
        achievement_summary=(
            f"Great work completing your {session.subject} session! Keep up the momentum!"
        ),
    )


def fallback_message(loop_type: str) -> str:
    return _FALLBACK_MESSAGES.get(loop_type, "Check out BuddyLoop!")


def fallback_recommendation(session: Optional[SessionIn] = None) -> LoopRecommendation:
    strong_session = session is not None and session.accuracy > 70
    return LoopRecommendation(
        loop_type=LoopType.BUDDY_CHALLENGE if strong_session else None,
        reasoning="Fallback: Using rule-based logic",
        confidence=_FALLBACK_CONFIDENCE,
    )


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def _session_prompt(session: SessionIn) -> str:
    skills = ", ".join(session.skills_improved) or "none recorded"
    return (
        f"You are an AI tutor analyzing a student's {session.subject} practice session.\n\n"
        "Session Details:\n"
        f"- Subject: {session.subject}\n"
        f"- Score: {session.correct_answers}/{session.questions_answered} ({session.accuracy}%)\n"
        f"- Duration: {session.duration} minutes\n"
        f"- Skills Improved: {skills}\n\n"
        "Respond with a JSON object with keys:\n"
        "- strengths: 2-3 key strengths demonstrated\n"
        "- gaps: 2-3 areas needing improvement\n"
        "- recommendations: 2-3 actionable next steps\n"
        "- achievement_summary: 1-2 motivational sentences\n\n"
        "Be encouraging but honest. JSON only."
    )


def _personalize_prompt(context: PersonalizationContext) -> str:
    sender = context.sender
    subject = context.session_data.subject if context.session_data else None

    if context.loop_type == LoopType.BUDDY_CHALLENGE:
        prompt = f"Generate a personalized, friendly challenge message from {sender.name} ({sender.role})"
        if context.session_data:
            prompt += f" who just scored {context.session_data.score}% on {subject}"
        if context.recipient:
            prompt += f" to {context.recipient.name} ({context.recipient.role})"
        return prompt + (
            ". Make it engaging, competitive but friendly. "
            "Include an emoji or two. Keep it under 80 characters."
        )
    if context.loop_type == LoopType.VOICE_ROOM_INVITE:
        return (
            f"Generate a casual invite message from {sender.name} to join a "
            f"{subject or 'study'} voice room. Make it sound fun and collaborative. "
            "Include an emoji. Keep it under 60 characters."
        )
    if context.loop_type == LoopType.TUTOR_SPOTLIGHT:
        return (
            f"Generate a message highlighting tutor availability for {subject or 'studies'}. "
            "Make it helpful and encouraging. Keep it under 70 characters."
        )
    return (
        "Generate a proud parent message sharing their child's achievement in "
        f"{subject or 'studies'}. Make it warm and celebratory. Include an emoji. "
        "Keep it under 90 characters."
    )


def _recommend_prompt(user: UserContext, session: Optional[SessionIn]) -> str:
    lines = [
        "You are an AI growth strategist analyzing user engagement data.",
        "",
        "User Context:",
        f"- Role: {user.role}",
        f"- Recent Activity: {', '.join(user.recent_activity) or 'none'}",
        f"- Streak: {user.streak or 0} days",
    ]
    if session is not None:
        lines.append(f"- Latest Session: {session.subject}, {session.accuracy}% score")
    lines += [
        "",
        "Available Viral Loops:",
        "1. buddy_challenge - Challenge a friend to beat your score",
        "2. voice_room_invite - Invite friends to join a study room",
        "3. tutor_spotlight - Highlight tutor availability",
        "4. proud_parent_share - Share child's achievement (parents only)",
        "",
        "Respond with a JSON object with keys:",
        "- loop_type: one of the options above, or null if none should trigger",
        "- reasoning: brief explanation (2-3 sentences)",
        "- confidence: integer 0-100",
        "",
        "Be strategic. Only recommend if engagement is likely.",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class CopyService:

    def __init__(self, client: LLMClient, decisions: DecisionLog):
        self._client = client
        self._decisions = decisions

    @property
    def configured(self) -> bool:
        return bool(self._client.api_key)

    async def _ask(self, system: str, prompt: str, **options) -> str:
        # The client's own timeout is per network phase; this bounds the whole call.
        return await asyncio.wait_for(
            self._client.complete(system, prompt, **options),
            timeout=self._client.timeout_seconds,
        )

    def _fallback(self, call: str, value: T, exc: Exception) -> Fallback[T]:
        error = str(exc) or exc.__class__.__name__
        logger.warning(
            "Copy service fallback",
            call=call,
            error_type=exc.__class__.__name__,
            error=error,
        )
        self._decisions.record(
            agent=AGENT_NAME,
            action=f"{call} fallback",
            reason=error,
            status=DecisionStatus.FALLBACK,
        )
        return Fallback(value=value, error=error)

    async def summarize_session(self, session: SessionIn) -> Outcome[SessionInsights]:
        try:
            raw = await self._ask(
                "You are an expert educational AI tutor. "
                "Provide concise, actionable insights in JSON format.",
                _session_prompt(session),
                temperature=0.7,
                max_tokens=500,
                json_mode=True,
            )
            insights = SessionInsights.model_validate(json.loads(raw))
        except (LLMError, httpx.HTTPError, asyncio.TimeoutError, ValueError) as exc:
            return self._fallback("summarize_session", fallback_insights(session), exc)
        return Ok(insights)

    async def personalize(self, context: PersonalizationContext) -> Outcome[str]:
        try:
            message = await self._ask(
                "You are a creative copywriter specializing in engaging, viral social "
                "messages. Keep messages short, friendly, and action-oriented.",
                _personalize_prompt(context),
                temperature=0.8,
                max_tokens=150,
            )
        except (LLMError, httpx.HTTPError, asyncio.TimeoutError) as exc:
            return self._fallback("personalize", fallback_message(context.loop_type), exc)
        return Ok(message)

    async def recommend_loop(
        self, user: UserContext, session: Optional[SessionIn] = None
    ) -> Outcome[LoopRecommendation]:
        try:
            raw = await self._ask(
                "You are a data-driven growth strategist. "
                "Make recommendations based on engagement likelihood.",
                _recommend_prompt(user, session),
                temperature=0.6,
                max_tokens=300,
                json_mode=True,
            )
            recommendation = LoopRecommendation.model_validate(json.loads(raw))
        except (LLMError, httpx.HTTPError, asyncio.TimeoutError, ValueError) as exc:
            return self._fallback("recommend_loop", fallback_recommendation(session), exc)
        return Ok(recommendation)
