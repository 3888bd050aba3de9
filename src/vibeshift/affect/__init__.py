"""Affect estimation: scalar mood from physiology, weather and life stressors.

1. **Features** (`features.py`)
   - z-scores against baselines, sleep deficit
   - the weather gloom index shared with the context builder
2. **Mood model** (`mood.py`)
   - named weight table and fixed calibration baselines
   - deterministic, clamped 0..100 mood score
"""

from vibeshift.affect.features import (
    DEFAULT_BASELINES,
    BaselineStats,
    compute_gloom_index,
    resolve_baselines,
)
from vibeshift.affect.mood import (
    DEFAULT_MOOD_WEIGHTS,
    SETPOINT,
    MoodWeights,
    compute_mood,
    mood_contributions,
)

__all__ = [
    "DEFAULT_BASELINES",
    "DEFAULT_MOOD_WEIGHTS",
    "SETPOINT",
    "BaselineStats",
    "MoodWeights",
    "compute_gloom_index",
    "compute_mood",
    "mood_contributions",
    "resolve_baselines",
]
