"""Request / response models shared across API route modules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from vibeshift.models import Action, SignalSnapshot


class ContextRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    signals: SignalSnapshot
    hour: int = Field(ge=0, le=23)
    mood: float | None = None  # computed from signals when omitted


class RecommendRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    start_mood: float
    base_bpm: float
    action: Action


class StartSessionRequest(BaseModel):
    """Start a session for a user from a signal snapshot."""
    user_id: str = Field(min_length=1)
    signals: SignalSnapshot = Field(default_factory=SignalSnapshot)
    hour: int | None = Field(None, ge=0, le=23)
