"""In-process policy that nudges curve gains from feedback.

Useful offline and in demos: no remote service is needed.  Each user keeps
a set of gains; a positive reward pushes every gain up (stronger curve next
time), a negative reward softens it.  The protocol is the same as the
remote service, including rejection of unknown or already-rewarded action
ids.
"""

from __future__ import annotations

import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

import structlog

from vibeshift.affect.features import clamp
from vibeshift.bandit.base import BasePolicyClient
from vibeshift.errors import TransportError
from vibeshift.models import Action, ActResponse, Context, TrackTarget
from vibeshift.playlist.curve import DEFAULT_NEUTRAL, make_playlist

logger = structlog.get_logger(__name__)

_NUDGE_SCALE = 25.0  # reward in [-1, 1] → nudge in [-0.04, 0.04]


@dataclass
class Gains:
    kv: float = 0.6
    ke: float = 0.4
    kt: float = 0.3
    kd: float = 0.2

    def nudged(self, reward: float) -> Gains:
        n = reward / _NUDGE_SCALE
        return Gains(
            kv=clamp(0.0, self.kv + n, 1.0),
            ke=clamp(0.0, self.ke + n * 0.8, 1.0),
            kt=clamp(-1.0, self.kt + n * 0.6, 1.0),
            kd=clamp(0.0, self.kd + n * 0.4, 1.0),
        )


class NudgePolicy(BasePolicyClient):
    """Deterministic single-arm policy with feedback-driven gains.

    Outstanding action ids are kept per user, newest last.  Sessions that are
    abandoned or fail never send an ``update``, so each user keeps at most
    *max_pending* ids and the oldest are forgotten first; an ``update`` for a
    forgotten id is rejected like any unknown id.
    """

    def __init__(
        self,
        session_length: int = 10,
        neutral: float = DEFAULT_NEUTRAL,
        *,
        max_pending: int = 4,
    ) -> None:
        self._session_length = session_length
        self._neutral = neutral
        self._max_pending = max_pending
        self._gains: dict[str, Gains] = {}
        self._pending: dict[str, OrderedDict[str, None]] = {}

    def gains_for(self, user_id: str) -> Gains:
        return self._gains.get(user_id, Gains())

    def pending_count(self, user_id: str) -> int:
        return len(self._pending.get(user_id, ()))

    async def act(
        self,
        user_id: str,
        context: Context,
        *,
        session_length: int | None = None,
    ) -> ActResponse:
        g = self.gains_for(user_id)
        action_id = str(uuid.uuid4())
        pending = self._pending.setdefault(user_id, OrderedDict())
        pending[action_id] = None
        while len(pending) > self._max_pending:
            dropped, _ = pending.popitem(last=False)
            logger.debug("nudge_policy.pending_evicted", user_id=user_id, action_id=dropped)

        action = Action(
            id="nudge",
            kv=g.kv,
            ke=g.ke,
            kt=g.kt,
            kd=g.kd,
            N=session_length or self._session_length,
            instrumental=1 if context.no_lyrics else 0,
        )
        return ActResponse(
            action_id=action_id,
            action=action,
            propensity=1.0,
            expected_score=0.0,
            server_time=time.time(),
        )

    async def update(
        self,
        user_id: str,
        action_id: str,
        context: Context,
        reward: float,
    ) -> Any:
        pending = self._pending.get(user_id)
        if not pending or action_id not in pending:
            raise TransportError("bandit/update", 404, f"unknown action_id {action_id}")
        del pending[action_id]
        if not pending:
            del self._pending[user_id]
        updated = self.gains_for(user_id).nudged(reward)
        self._gains[user_id] = updated
        logger.info("nudge_policy.updated", user_id=user_id, reward=round(reward, 4), kv=round(updated.kv, 4))
        return {"ok": True}

    async def recommend(
        self,
        start_mood: float,
        base_bpm: float,
        action: Action,
    ) -> list[TrackTarget]:
        return make_playlist(start_mood, action, action.N, base_bpm=base_bpm, neutral=self._neutral)
