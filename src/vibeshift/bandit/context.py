"""Context builder: featurise signals, preferences and mood for the policy.

The output :class:`Context` is a pure function of its inputs.  The hour of
day is passed in explicitly rather than read from a clock.
"""

from __future__ import annotations

import math

import structlog

from vibeshift.affect.features import (
    DEFAULT_BASELINES,
    BaselineStats,
    clamp,
    compute_gloom_index,
    resolve_baselines,
    round_half_up,
    sleep_deficit,
    z_score,
)
from vibeshift.errors import ValidationError
from vibeshift.models import Context, Preferences, SignalSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_BASE_BPM = 96

# Priority-ordered genre buckets: first rule with any matching seed wins.
_GENRE_RULES: tuple[tuple[int, tuple[str, ...]], ...] = (
    (1, ("lo-fi", "chill")),
    (2, ("indie", "alt")),
    (3, ("r&b", "soul")),
    (4, ("edm", "house")),
)
_DEFAULT_GENRE_CLUSTER = 0


def genre_cluster_from_seeds(seeds: list[str] | None) -> int:
    """Map genre seeds to a coarse cluster id (0..4).

    Matching is case-insensitive substring search.  Rules are checked in
    priority order, so the order of *seeds* does not matter.
    """
    lowered = [s.lower() for s in seeds or []]
    for cluster, terms in _GENRE_RULES:
        if any(term in seed for seed in lowered for term in terms):
            return cluster
    return _DEFAULT_GENRE_CLUSTER


def build_context(
    signals: SignalSnapshot,
    mood: float,
    *,
    hour: int,
    preferences: Preferences | None = None,
    defaults: BaselineStats = DEFAULT_BASELINES,
    default_base_bpm: int = DEFAULT_BASE_BPM,
) -> Context:
    """Build the decision context for one session.

    Parameters
    ----------
    signals
        Raw inputs captured at session start.
    mood
        Mood estimate from :func:`~vibeshift.affect.mood.compute_mood`.
    hour
        Local hour of day (0-23), used as ``daypart``.
    preferences
        Overrides ``signals.preferences``; defaults apply when both are absent.
    defaults
        Baseline statistics used for any value missing from ``signals.baselines``.
    default_base_bpm
        Tempo used when the preferences carry no ``base_bpm``.
    """
    if not 0 <= hour <= 23:
        raise ValidationError(f"hour must be within 0..23, got {hour}")
    if not math.isfinite(mood):
        raise ValidationError(f"mood must be finite, got {mood}")

    defaulted: list[str] = []
    prefs = preferences or signals.preferences
    if prefs is None:
        prefs = Preferences()
        defaulted.append("preferences")

    base, missing = resolve_baselines(signals.baselines, defaults)
    defaulted.extend(missing)

    if prefs.base_bpm:
        base_bpm = round_half_up(prefs.base_bpm)
    else:
        base_bpm = default_base_bpm
        defaulted.append("base_bpm")

    if defaulted:
        logger.info("context.defaulted_input", fields=defaulted)

    h, w, s = signals.health, signals.weather, signals.stressors
    return Context(
        start_mood=round_half_up(clamp(0, mood, 100)),
        base_bpm=base_bpm,
        explicit_ok=bool(prefs.explicit_ok),
        no_lyrics=bool(prefs.no_lyrics),
        daypart=hour,
        sleep_deficit_h=sleep_deficit(h.sleep_hours, base.sleep_hours),
        hrv_z=z_score(h.hrv, base.hrv_mean, base.hrv_std),
        rhr_z=z_score(h.resting_hr, base.rhr_mean, base.rhr_std),
        steps_z=z_score(h.steps, base.steps_mean, base.steps_std),
        gloom_index=compute_gloom_index(w.precip_mm, w.cloud_pct, w.temp_c),
        spend_anomaly=clamp(0.0, s.spend_anomaly, 1.0),
        grade_surprise=clamp(-1.0, s.grade_surprise, 1.0),
        genre_cluster=genre_cluster_from_seeds(prefs.genres),
    )
