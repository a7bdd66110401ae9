from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from buddyloop.core.config import settings
from buddyloop.core.logging import configure_logging
from buddyloop.core.runtime import Runtime, get_runtime
from buddyloop.routers import ai as ai_router
from buddyloop.routers import funnel as funnel_router
from buddyloop.routers import links as links_router
from buddyloop.routers import loops as loops_router
from buddyloop.routers import rewards as rewards_router
from buddyloop.core.errors import (
    BuddyLoopException,
    buddyloop_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging(
    service_name="buddyloop",
    environment=settings.APP_ENV,
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON,
)

app = FastAPI(
    title="BuddyLoop API",
    description=(
        "**Viral-loop decision engine**\n\n"
        "Selects growth loops from learning events, gates them with a daily cap "
        "and per-loop cooldowns, issues trackable challenge links and awards "
        "gems with streak and level-up milestones.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(BuddyLoopException, buddyloop_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(rewards_router.router)
app.include_router(links_router.router)
app.include_router(loops_router.router)
app.include_router(funnel_router.router)
app.include_router(ai_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(rt: Runtime = Depends(get_runtime)):
    """
    Returns `{"status": "ok"}` plus whether the copy service has an API key.
    Without one every AI route answers with rule-based fallback copy.
    """
    return {
        "status": "ok",
        "env": settings.APP_ENV,
        "llm": "configured" if rt.copy.configured else "fallback-only",
    }
