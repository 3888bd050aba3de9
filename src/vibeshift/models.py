"""Shared Pydantic models used across the framework.

Field names of :class:`Context`, :class:`Action`, :class:`ActResponse` and
:class:`TrackTarget` are part of the policy-service wire contract and must
not be renamed.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ── Raw signals ───────────────────────────────────────────────


class HealthSignals(BaseModel):
    """Wearable-derived health metrics for the current day."""

    model_config = ConfigDict(allow_inf_nan=False)

    sleep_hours: float = Field(7.5, ge=0)
    hrv: float = Field(45.0, description="Heart-rate variability (RMSSD, ms).")
    resting_hr: float = Field(64.0, description="Resting heart rate (bpm).")
    steps: float = Field(8000.0, ge=0)


class WeatherSignals(BaseModel):
    """Local weather at session start."""

    model_config = ConfigDict(allow_inf_nan=False)

    precip_mm: float = Field(0.0, ge=0)
    cloud_pct: float = Field(0.0, ge=0, le=100)
    temp_c: float = 17.0


class Stressors(BaseModel):
    """Macro, finance and education stress signals."""

    model_config = ConfigDict(allow_inf_nan=False)

    unemployment_gap: float = Field(
        0.0, description="Local unemployment minus national rate, as a fraction (0.016 = 1.6 pts worse)."
    )
    housing_stress: float = Field(
        0.0, description="Rent burden above local median, as a fraction."
    )
    spend_anomaly: float = Field(0.0, description="Recent spending spike score, nominally 0..1.")
    grade_surprise: float = Field(0.0, description="Latest grade vs expectation, -1 (bad) .. +1 (great).")


class PersonalBaselines(BaseModel):
    """Per-user baseline statistics.  Missing values fall back to defaults."""

    model_config = ConfigDict(allow_inf_nan=False)

    sleep_hours: float | None = None
    hrv_mean: float | None = None
    hrv_std: float | None = None
    rhr_mean: float | None = None
    rhr_std: float | None = None
    steps_mean: float | None = None
    steps_std: float | None = None


class Preferences(BaseModel):
    """Listening preferences persisted per user."""

    model_config = ConfigDict(allow_inf_nan=False)

    explicit_ok: bool = False
    no_lyrics: bool = False
    genres: list[str] = Field(default_factory=list)
    base_bpm: float | None = Field(None, gt=0)
    session_length: int | None = Field(
        None, ge=1, description="Preferred tracks per session; the policy decides when unset."
    )


class SignalSnapshot(BaseModel):
    """Immutable bundle of raw inputs captured at session start."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    health: HealthSignals = Field(default_factory=HealthSignals)
    weather: WeatherSignals = Field(default_factory=WeatherSignals)
    stressors: Stressors = Field(default_factory=Stressors)
    baselines: PersonalBaselines = Field(default_factory=PersonalBaselines)
    self_report: float = Field(0.0, description="Self-rated mood, -10 .. +10.")
    preferences: Preferences | None = None


# ── Policy wire contract ──────────────────────────────────────


class Context(BaseModel):
    """Fixed-schema decision context submitted to the policy service."""

    model_config = ConfigDict(frozen=True)

    start_mood: int = Field(ge=0, le=100)
    base_bpm: int = Field(gt=0)
    explicit_ok: bool
    no_lyrics: bool
    daypart: int = Field(ge=0, le=23)
    sleep_deficit_h: float = Field(ge=0)
    hrv_z: float
    rhr_z: float
    steps_z: float
    gloom_index: float = Field(ge=0, le=1)
    spend_anomaly: float = Field(ge=0, le=1)
    grade_surprise: float = Field(ge=-1, le=1)
    genre_cluster: int = Field(ge=0, le=4)


class Action(BaseModel):
    """Curve gains and session parameters chosen by the policy.

    Gains are nominally ``kv/ke/kd`` in [0, 1] and ``kt`` in [-1, 1] but are
    not enforced here; the curve generator saturates its output instead.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str
    kv: float
    ke: float
    kt: float
    kd: float
    tempo_offset: float = 0.0
    N: int
    instrumental: int = Field(0, ge=0, le=1)


class ActResponse(BaseModel):
    """Decision returned by ``POST /bandit/act``."""

    model_config = ConfigDict(frozen=True)

    action_id: str
    action: Action
    propensity: float
    expected_score: float
    targets_preview: Any = None  # opaque, never inspected
    server_time: float | None = None


class TrackTarget(BaseModel):
    """Target audio features for one position in the curve."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    index: int
    valence: float = Field(ge=0, le=1)
    energy: float = Field(ge=0, le=1)
    dance: float = Field(ge=0, le=1)
    tempo: int = Field(gt=0)


# ── Outcome ───────────────────────────────────────────────────


class SessionOutcome(BaseModel):
    """Terminal feedback for a finished session."""

    model_config = ConfigDict(allow_inf_nan=False)

    end_mood: float
    emoji: int = Field(ge=-2, le=2)
    completion_pct: float = 1.0
    skips: int = Field(0, ge=0)
    delayed: int | None = Field(None, ge=-2, le=2)
