"""
Custom exception hierarchy for BuddyLoop.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Throttle and cooldown rejections are NOT errors: they are ordinary
negative decisions returned by the orchestrator. Collaborator (LLM)
failures never reach this module either; they degrade to fallbacks.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class BuddyLoopException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidRewardAmountError(BuddyLoopException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_REWARD_AMOUNT"

    def __init__(self, amount: int):
        super().__init__(
            message=f"Reward amount must be a non-negative integer. Received {amount}.",
            details={"amount": amount},
        )


class InvalidChallengeLinkError(BuddyLoopException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_CHALLENGE_LINK"

    def __init__(self, url: str):
        super().__init__(
            message="Challenge link is missing required parameters or is malformed.",
            details={"url": url},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def buddyloop_exception_handler(
    request: Request, exc: BuddyLoopException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(
        "Unhandled exception", path=request.url.path, method=request.method
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
