"""Curve generation: per-track feature targets that ease toward the setpoint.

For position ``i`` in ``1..n`` with ``t = i / n``::

    valence = clamp(0, 1, neutral + kv * delta * ease(t) / 50)
    energy  = clamp(0, 1, neutral + ke * delta * ease(t) / 50)
    dance   = clamp(0, 1, neutral + kd * delta * ease(t) / 50)
    tempo   = round(clamp(1, 1000, base_bpm + kt * delta * ease(t)))

where ``delta = 50 - mood`` is positive when the listener should be lifted.
The output is deterministic; titles and artwork belong to the player.
"""

from __future__ import annotations

import math

from vibeshift.affect.features import clamp, round_half_up
from vibeshift.affect.mood import SETPOINT
from vibeshift.errors import ValidationError
from vibeshift.models import Action, TrackTarget

DEFAULT_NEUTRAL = 0.55
_MIN_TEMPO = 1
_MAX_TEMPO = 1000


def ease_cos(t: float) -> float:
    """Cosine ease-in-out: 0 → 1 over [0, 1] with zero slope at both ends."""
    return 0.5 - 0.5 * math.cos(math.pi * t)


def make_playlist(
    mood: float,
    action: Action,
    n: int,
    *,
    base_bpm: float,
    neutral: float = DEFAULT_NEUTRAL,
) -> list[TrackTarget]:
    """Return ``n`` :class:`TrackTarget` objects moving *mood* toward the setpoint."""
    if n < 1:
        raise ValidationError(f"session length must be >= 1, got {n}")
    if not math.isfinite(mood):
        raise ValidationError(f"mood must be finite, got {mood}")
    if not (math.isfinite(base_bpm) and base_bpm > 0):
        raise ValidationError(f"base_bpm must be positive, got {base_bpm}")

    delta = SETPOINT - mood
    targets: list[TrackTarget] = []
    for i in range(1, n + 1):
        push = delta * ease_cos(i / n)
        targets.append(
            TrackTarget(
                index=i,
                valence=clamp(0.0, neutral + action.kv * push / SETPOINT, 1.0),
                energy=clamp(0.0, neutral + action.ke * push / SETPOINT, 1.0),
                dance=clamp(0.0, neutral + action.kd * push / SETPOINT, 1.0),
                tempo=round_half_up(clamp(_MIN_TEMPO, base_bpm + action.kt * push, _MAX_TEMPO)),
            )
        )
    return targets
