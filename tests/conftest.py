"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import os
import tempfile

# Point settings at a throwaway database and the in-process policy before
# anything reads them.
_TMP_DIR = tempfile.mkdtemp(prefix="vibeshift-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")
os.environ.setdefault("POLICY_BACKEND", "local")
os.environ.setdefault("API_SECRET_KEY", "change-me-to-a-random-secret")

import pytest  # noqa: E402

from vibeshift.bandit.base import BasePolicyClient  # noqa: E402
from vibeshift.models import (  # noqa: E402
    Action,
    ActResponse,
    Context,
    HealthSignals,
    Preferences,
    SignalSnapshot,
    Stressors,
    TrackTarget,
    WeatherSignals,
)
from vibeshift.playlist.curve import make_playlist  # noqa: E402


class RecordingPolicy(BasePolicyClient):
    """In-process policy double that records every call."""

    def __init__(
        self,
        action: Action,
        *,
        propensity: float = 0.25,
        act_error: Exception | None = None,
        update_error: Exception | None = None,
        recommend_targets: list[TrackTarget] | None = None,
        update_delay: float = 0.0,
    ) -> None:
        self.action = action
        self.propensity = propensity
        self.act_error = act_error
        self.update_error = update_error
        self.recommend_targets = recommend_targets
        self.update_delay = update_delay
        self.session_lengths: list[int | None] = []
        self.act_calls: list[tuple[str, Context]] = []
        self.update_calls: list[tuple[str, str, Context, float]] = []
        self.recommend_calls: list[tuple[float, float, Action]] = []

    async def act(self, user_id, context, *, session_length=None):
        self.act_calls.append((user_id, context))
        self.session_lengths.append(session_length)
        if self.act_error is not None:
            raise self.act_error
        return ActResponse(
            action_id=f"act-{len(self.act_calls)}",
            action=self.action,
            propensity=self.propensity,
            expected_score=0.42,
            targets_preview={"anything": [1, 2, 3]},
            server_time=1700000000.0,
        )

    async def update(self, user_id, action_id, context, reward):
        self.update_calls.append((user_id, action_id, context, reward))
        if self.update_delay:
            await asyncio.sleep(self.update_delay)
        if self.update_error is not None:
            raise self.update_error
        return {"ok": True}

    async def recommend(self, start_mood, base_bpm, action):
        self.recommend_calls.append((start_mood, base_bpm, action))
        if self.recommend_targets is not None:
            return self.recommend_targets
        return make_playlist(start_mood, action, action.N, base_bpm=base_bpm)


class RecordingSessionRepo:
    """Stand-in for :class:`SessionRepository` that keeps saved sessions."""

    def __init__(self) -> None:
        self.saved = []

    async def save(self, record) -> None:
        self.saved.append(record)


@pytest.fixture
def action() -> Action:
    return Action(id="arm-3", kv=0.6, ke=0.4, kt=0.3, kd=0.2, tempo_offset=0, N=10, instrumental=0)


@pytest.fixture
def preferences() -> Preferences:
    return Preferences(
        explicit_ok=True,
        no_lyrics=False,
        genres=["indie-pop", "lo-fi", "r&b"],
        base_bpm=96,
        session_length=10,
    )


@pytest.fixture
def neutral_snapshot() -> SignalSnapshot:
    """Every signal sits exactly on the mood calibration baseline."""
    return SignalSnapshot(
        health=HealthSignals(sleep_hours=7.5, hrv=45, resting_hr=65, steps=7000),
        weather=WeatherSignals(precip_mm=0, cloud_pct=0, temp_c=17),
        stressors=Stressors(),
        self_report=0,
    )


@pytest.fixture
def gloomy_snapshot(preferences: Preferences) -> SignalSnapshot:
    """A rainy, short-sleep, stressed day."""
    return SignalSnapshot(
        health=HealthSignals(sleep_hours=6.0, hrv=38, resting_hr=70, steps=5800),
        weather=WeatherSignals(precip_mm=8, cloud_pct=95, temp_c=11),
        stressors=Stressors(unemployment_gap=0.02, housing_stress=0.30, spend_anomaly=0.35),
        self_report=-2,
        preferences=preferences,
    )


@pytest.fixture
def policy(action: Action) -> RecordingPolicy:
    return RecordingPolicy(action)


@pytest.fixture
def session_repo() -> RecordingSessionRepo:
    return RecordingSessionRepo()


@pytest.fixture
def policy_factory():
    """Build a :class:`RecordingPolicy` with custom behaviour."""
    return RecordingPolicy
