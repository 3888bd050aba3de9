"""Reward estimation: turn a finished session into a scalar in [-1, 1]."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from vibeshift.affect.features import clamp
from vibeshift.affect.mood import SETPOINT
from vibeshift.models import SessionOutcome

logger = structlog.get_logger(__name__)

_SKIP_SATURATION = 5


@dataclass(frozen=True)
class RewardWeights:
    """Weight of each reward term; the terms themselves are scaled to [-1, 1]."""

    toward_setpoint: float = 0.5
    emoji: float = 0.3
    completion: float = 0.15
    skips: float = 0.05
    delayed: float = 0.1


DEFAULT_REWARD_WEIGHTS = RewardWeights()


def reward_from_session(
    outcome: SessionOutcome,
    weights: RewardWeights = DEFAULT_REWARD_WEIGHTS,
) -> float:
    """Weighted sum of landing distance, feedback, completion and skips.

    ``toward`` is 1 when the session ends exactly on the setpoint and falls
    linearly with distance from it.  The delayed-feedback term is added only
    when delayed feedback is present.
    """
    toward = (SETPOINT - abs(outcome.end_mood - SETPOINT)) / SETPOINT
    reward = (
        weights.toward_setpoint * toward
        + weights.emoji * (outcome.emoji / 2)
        + weights.completion * clamp(0.0, outcome.completion_pct, 1.0)
        - weights.skips * min(outcome.skips / _SKIP_SATURATION, 1.0)
    )
    if outcome.delayed is not None:
        reward += weights.delayed * (outcome.delayed / 2)
    return clamp(-1.0, reward, 1.0)
