"""Session lifecycle routes: start, complete, abandon, history.

Only live sessions are held in memory.  Once a session reaches a terminal
state it is dropped from memory and served from the session history table.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import APIRouter, HTTPException, Query

from vibeshift.api.schemas import StartSessionRequest
from vibeshift.errors import SessionStateError
from vibeshift.models import SessionOutcome
from vibeshift.session.orchestrator import Session
from vibeshift.storage.repository import SessionRepository, session_row_to_dict

router = APIRouter(tags=["sessions"])


def _orchestrator():
    from vibeshift.api.server import _orchestrator

    if _orchestrator is None:
        raise HTTPException(503, "Session orchestrator not ready.")
    return _orchestrator


async def _live_session(session_id: str) -> Session:
    """Return a live session; finished ones raise 409, unknown ones 404."""
    from vibeshift.api.server import _sessions

    session = _sessions.get(session_id)
    if session is not None:
        return session
    row = await SessionRepository().get(session_id)
    if row is not None:
        raise SessionStateError(f"session {session_id} already {row.state}")
    raise HTTPException(404, f"Session {session_id} not found.")


@asynccontextmanager
async def _evict_when_finished(session: Session):
    from vibeshift.api.server import _sessions

    try:
        yield
    finally:
        if session.is_terminal:
            _sessions.pop(session.id, None)


@router.post("/sessions", status_code=201)
async def start_session(req: StartSessionRequest):
    """Compute mood and context, ask the policy for an action, build the curve."""
    from vibeshift.api.server import _sessions

    session = await _orchestrator().start(req.user_id, req.signals, hour=req.hour)
    _sessions[session.id] = session
    return session.to_dict()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
    from vibeshift.api.server import _sessions

    session = _sessions.get(session_id)
    if session is not None:
        return session.to_dict()
    row = await SessionRepository().get(session_id)
    if row is None:
        raise HTTPException(404, f"Session {session_id} not found.")
    return session_row_to_dict(row)


@router.post("/sessions/{session_id}/complete")
async def complete_session(session_id: str, outcome: SessionOutcome):
    """Score the session and report the reward to the policy."""
    session = await _live_session(session_id)
    async with _evict_when_finished(session):
        await _orchestrator().complete(session, outcome)
    return session.to_dict()


@router.post("/sessions/{session_id}/abandon")
async def abandon_session(session_id: str):
    """End the session without scoring it."""
    session = await _live_session(session_id)
    async with _evict_when_finished(session):
        await _orchestrator().abandon(session)
    return session.to_dict()


@router.get("/users/{user_id}/sessions")
async def session_history(user_id: str, limit: int = Query(50, ge=1, le=500)):
    """Sessions for a user that reached a terminal state, newest first."""
    rows = await SessionRepository().get_by_user(user_id, limit=limit)
    return {"user_id": user_id, "count": len(rows), "sessions": [session_row_to_dict(r) for r in rows]}
