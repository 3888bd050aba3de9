"""Stateless routes: mood, context and the reference curve endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from vibeshift.affect.mood import compute_mood
from vibeshift.api.schemas import ContextRequest, RecommendRequest
from vibeshift.bandit.context import build_context
from vibeshift.config import get_settings
from vibeshift.models import SignalSnapshot
from vibeshift.playlist.curve import make_playlist

router = APIRouter(tags=["curve"])


@router.post("/mood")
async def mood(signals: SignalSnapshot):
    """Compute the 0-100 mood estimate for a signal snapshot."""
    return {"mood": compute_mood(signals)}


@router.post("/context")
async def context(req: ContextRequest):
    """Build the policy decision context for a snapshot at a given hour."""
    start_mood = req.mood if req.mood is not None else compute_mood(req.signals)
    ctx = build_context(
        req.signals,
        start_mood,
        hour=req.hour,
        default_base_bpm=get_settings().default_base_bpm,
    )
    return ctx.model_dump(mode="json")


@router.post("/playlist/recommend")
async def recommend(req: RecommendRequest):
    """Reference implementation of the remote recommend endpoint.

    Produces the same targets a local session would for identical inputs.
    """
    targets = make_playlist(
        req.start_mood,
        req.action,
        req.action.N,
        base_bpm=req.base_bpm,
        neutral=get_settings().curve_neutral,
    )
    return {"targets": [t.model_dump(mode="json") for t in targets]}
