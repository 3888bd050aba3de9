"""Feature helpers shared by the mood model and the context builder.

Both consumers must compute the weather gloom index identically, so the
formula lives here and nowhere else.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import structlog

from vibeshift.models import PersonalBaselines

logger = structlog.get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────

COMFORT_TEMP_C = 17.0
_TEMP_DISCOMFORT_SPAN_C = 17.0  # |t - comfort| at which discomfort saturates
_PRECIP_SATURATION_MM = 10.0

# Gloom weights: precipitation, cloud cover, temperature discomfort
GLOOM_WEIGHTS = (0.35, 0.25, 0.40)


@dataclass(frozen=True)
class BaselineStats:
    """Fully-resolved baseline statistics used for z-scoring."""

    sleep_hours: float = 7.5
    hrv_mean: float = 45.0
    hrv_std: float = 12.0
    rhr_mean: float = 64.0
    rhr_std: float = 8.0
    steps_mean: float = 8000.0
    steps_std: float = 2500.0


DEFAULT_BASELINES = BaselineStats()


# ── Numeric helpers ───────────────────────────────────────────


def clamp(lo: float, x: float, hi: float) -> float:
    """Saturate *x* into ``[lo, hi]``."""
    return max(lo, min(hi, x))


def z_score(value: float, mean: float, std: float) -> float:
    """Standard score; a non-positive *std* yields 0."""
    return (value - mean) / std if std > 0 else 0.0


def round_half_up(x: float) -> int:
    """Round to the nearest integer, ties toward +inf (``Math.round`` semantics)."""
    return int(math.floor(x + 0.5))


def sleep_deficit(sleep_hours: float, baseline_hours: float) -> float:
    """Hours slept below baseline, never negative."""
    return max(0.0, baseline_hours - sleep_hours)


def compute_gloom_index(precip_mm: float, cloud_pct: float, temp_c: float) -> float:
    """Weather gloom in [0, 1].

    ``0.35 * precip_norm + 0.25 * cloud_norm + 0.40 * temp_discomfort``,
    each term clamped into [0, 1] before weighting.
    """
    w_precip, w_cloud, w_temp = GLOOM_WEIGHTS
    precip_norm = clamp(0.0, precip_mm / _PRECIP_SATURATION_MM, 1.0)
    cloud_norm = clamp(0.0, cloud_pct / 100.0, 1.0)
    temp_discomfort = clamp(0.0, abs(temp_c - COMFORT_TEMP_C) / _TEMP_DISCOMFORT_SPAN_C, 1.0)
    return w_precip * precip_norm + w_cloud * cloud_norm + w_temp * temp_discomfort


def resolve_baselines(
    baselines: PersonalBaselines | None,
    defaults: BaselineStats = DEFAULT_BASELINES,
) -> tuple[BaselineStats, list[str]]:
    """Fill missing baseline statistics from *defaults*.

    Returns the resolved stats and the names of the fields that were
    defaulted, so callers can log them.
    """
    provided = baselines.model_dump(exclude_none=True) if baselines is not None else {}
    defaulted = [
        name for name in BaselineStats.__dataclass_fields__ if name not in provided
    ]
    values = {name: provided.get(name, getattr(defaults, name)) for name in BaselineStats.__dataclass_fields__}
    return BaselineStats(**values), defaulted
