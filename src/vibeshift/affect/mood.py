"""Mood model: deterministic scalar mood estimate from heterogeneous signals.

Mood starts at the neutral setpoint (50) and accumulates signed, weighted
contributions from physiology, weather, macro stressors and self-report:

=================  =======  ==========================================
Term               Sign     Input
=================  =======  ==========================================
hrv                up       z-score of HRV vs calibration baseline
resting_hr         down     z-score of resting HR
steps              up       z-score of step count
sleep_deficit      down     hours below baseline sleep
gloom              down     weather gloom index (0..1)
unemployment       down     local unemployment gap (fraction)
housing            down     housing affordability stress (fraction)
spend              down     spend anomaly (0..1)
self_report        up       self-rating scaled from -10..10 to -1..1
grade_surprise     up       education surprise (-1..1)
=================  =======  ==========================================

The raw sum is saturated into [0, 100] and rounded half-up, so extreme
finite inputs pin the score to an end instead of failing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import structlog

from vibeshift.affect.features import (
    BaselineStats,
    clamp,
    compute_gloom_index,
    round_half_up,
    sleep_deficit,
    z_score,
)
from vibeshift.models import SignalSnapshot

logger = structlog.get_logger(__name__)

SETPOINT = 50


@dataclass(frozen=True)
class MoodWeights:
    """Magnitude of each mood contribution (the sign is fixed by the model)."""

    hrv: float = 6.0
    resting_hr: float = 5.0
    steps: float = 4.0
    sleep_deficit: float = 3.5
    gloom: float = 10.0
    unemployment: float = 12.0
    housing: float = 9.0
    spend: float = 5.0
    self_report: float = 6.0
    grade_surprise: float = 6.0


DEFAULT_MOOD_WEIGHTS = MoodWeights()

# Fixed calibration baselines the weights were tuned against.  Not affected by
# the per-user baselines in the snapshot.
MOOD_CALIBRATION = BaselineStats(
    sleep_hours=7.5,
    hrv_mean=45.0,
    hrv_std=10.0,
    rhr_mean=65.0,
    rhr_std=8.0,
    steps_mean=7000.0,
    steps_std=3000.0,
)


def mood_contributions(
    signals: SignalSnapshot,
    weights: MoodWeights = DEFAULT_MOOD_WEIGHTS,
    calibration: BaselineStats = MOOD_CALIBRATION,
) -> dict[str, float]:
    """Signed contribution of every term, keyed by weight-table name."""
    h, w, s = signals.health, signals.weather, signals.stressors
    return {
        "hrv": weights.hrv * z_score(h.hrv, calibration.hrv_mean, calibration.hrv_std),
        "resting_hr": -weights.resting_hr * z_score(h.resting_hr, calibration.rhr_mean, calibration.rhr_std),
        "steps": weights.steps * z_score(h.steps, calibration.steps_mean, calibration.steps_std),
        "sleep_deficit": -weights.sleep_deficit * sleep_deficit(h.sleep_hours, calibration.sleep_hours),
        "gloom": -weights.gloom * compute_gloom_index(w.precip_mm, w.cloud_pct, w.temp_c),
        "unemployment": -weights.unemployment * s.unemployment_gap,
        "housing": -weights.housing * s.housing_stress,
        "spend": -weights.spend * clamp(0.0, s.spend_anomaly, 1.0),
        "self_report": weights.self_report * clamp(-1.0, signals.self_report / 10.0, 1.0),
        "grade_surprise": weights.grade_surprise * clamp(-1.0, s.grade_surprise, 1.0),
    }


def compute_mood(
    signals: SignalSnapshot,
    weights: MoodWeights = DEFAULT_MOOD_WEIGHTS,
    calibration: BaselineStats = MOOD_CALIBRATION,
) -> int:
    """Return the mood score, an integer in [0, 100] (50 = neutral)."""
    contributions = mood_contributions(signals, weights, calibration)
    raw = SETPOINT + sum(contributions.values())
    if math.isnan(raw):
        # opposing contributions both overflowed
        raw = SETPOINT
    mood = round_half_up(clamp(0, raw, 100))
    logger.debug("mood.computed", mood=mood, raw=round(raw, 3))
    return mood
