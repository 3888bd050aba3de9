"""FastAPI application: mood, context, curve and session endpoints.

This module wires together:
- CORS, API key auth, request-id logging and domain error mapping
- The policy backend (remote HTTP service or in-process nudge policy)
- Preference and session-history persistence
- The session orchestrator
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from vibeshift.api.middleware import setup_middleware
from vibeshift.api.routes.curve import router as curve_router
from vibeshift.api.routes.sessions import router as sessions_router
from vibeshift.bandit.base import BasePolicyClient
from vibeshift.bandit.http import HttpPolicyClient
from vibeshift.bandit.local import NudgePolicy
from vibeshift.config import Settings, get_settings
from vibeshift.session.orchestrator import Session, SessionOrchestrator
from vibeshift.storage.database import dispose_db, init_db
from vibeshift.storage.repository import PreferenceRepository, SessionRepository

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_policy: BasePolicyClient | None = None
_orchestrator: SessionOrchestrator | None = None
_sessions: dict[str, Session] = {}  # live sessions only; finished ones are read from history


def create_policy(settings: Settings) -> BasePolicyClient:
    """Instantiate the configured policy backend."""
    if settings.policy_backend == "local":
        return NudgePolicy(
            session_length=settings.default_session_length,
            neutral=settings.curve_neutral,
        )
    return HttpPolicyClient(
        settings.bandit_api_base_url,
        timeout=settings.bandit_request_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _policy, _orchestrator

    settings = get_settings()

    await init_db()
    logger.info("server.db_ready")

    _policy = create_policy(settings)
    _orchestrator = SessionOrchestrator(
        _policy,
        preference_store=PreferenceRepository(),
        session_repo=SessionRepository(),
        neutral=settings.curve_neutral,
        default_base_bpm=settings.default_base_bpm,
        remote_curve=settings.remote_curve,
    )
    logger.info("server.started", policy_backend=settings.policy_backend)

    yield

    await _policy.close()
    _policy = None
    _orchestrator = None
    _sessions.clear()
    await dispose_db()
    logger.info("server.stopped")


app = FastAPI(
    title="VibeShift",
    description="Mood-shifting playlist curves driven by a contextual bandit.",
    version="0.1.0",
    lifespan=lifespan,
)
setup_middleware(app)
app.include_router(curve_router)
app.include_router(sessions_router)


@app.get("/health", tags=["system"])
async def health():
    return {"status": "ok", "policy_ready": _orchestrator is not None}
