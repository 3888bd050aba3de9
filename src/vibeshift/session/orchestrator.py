"""Session orchestrator: one mood-shifting session from signals to reward.

Lifecycle::

    PENDING ──start()──▶ PLAYING ──complete()──▶ SCORING ──update ok──▶ COMPLETED
       │                    │                      │
       │                    └──abandon()──▶ ABANDONED    └──update failure──▶ FAILED
       └── act / curve failure ──▶ FAILED

Steps run strictly in order: mood → context → ``act`` → curve.  The policy
is called with ``act`` at most once per session and ``update`` at most once
per issued ``action_id``; a session whose ``act`` failed can never send an
``update``.  Abandoned sessions are not scored.

Concurrent sessions for the *same* user are not supported: the policy
service may see interleaved ``act``/``update`` calls with no ordering
guarantee.  Sessions for different users share no mutable state.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

import structlog

from vibeshift.affect.mood import compute_mood
from vibeshift.bandit.base import BasePolicyClient
from vibeshift.bandit.context import DEFAULT_BASE_BPM, build_context
from vibeshift.bandit.reward import reward_from_session
from vibeshift.errors import SessionStateError, TransportError, ValidationError
from vibeshift.models import (
    ActResponse,
    Context,
    Preferences,
    SessionOutcome,
    SignalSnapshot,
    TrackTarget,
)
from vibeshift.playlist.curve import DEFAULT_NEUTRAL, make_playlist
from vibeshift.storage.repository import PreferenceStore, SessionRepository

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    PENDING = "pending"
    PLAYING = "playing"
    SCORING = "scoring"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    FAILED = "failed"


_TERMINAL = {SessionState.COMPLETED, SessionState.ABANDONED, SessionState.FAILED}
_ABANDONABLE = {SessionState.PENDING, SessionState.PLAYING}


@dataclass
class Session:
    """State of one session.  Value objects inside it are never mutated."""

    user_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: SessionState = SessionState.PENDING
    mood: int | None = None
    preferences: Preferences | None = None
    context: Context | None = None
    decision: ActResponse | None = None
    targets: list[TrackTarget] = field(default_factory=list)
    reward: float | None = None
    error: str | None = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    ended_at: datetime | None = None

    @property
    def action_id(self) -> str | None:
        return self.decision.action_id if self.decision else None

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "state": self.state.value,
            "mood": self.mood,
            "context": self.context.model_dump(mode="json") if self.context else None,
            "action_id": self.action_id,
            "action": self.decision.action.model_dump(mode="json") if self.decision else None,
            "propensity": self.decision.propensity if self.decision else None,
            "expected_score": self.decision.expected_score if self.decision else None,
            "targets": [t.model_dump(mode="json") for t in self.targets],
            "reward": self.reward,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


class SessionOrchestrator:
    """Sequences mood, context, policy round-trips, curve and reward.

    Parameters
    ----------
    policy : BasePolicyClient
        Remote or in-process policy service.
    preference_store : PreferenceStore | None
        Read when a snapshot carries no preferences; written with the
        preferences each session started with.
    session_repo : SessionRepository | None
        Receives every session that reaches a terminal state.
    neutral : float
        Baseline feature level for the curve.
    default_base_bpm : int
        Context tempo when the preferences carry no ``base_bpm``.
    remote_curve : bool
        Fetch the curve from ``policy.recommend`` instead of computing it.
    clock : Callable[[], datetime]
        Source of the current local time (for ``daypart``).
    """

    def __init__(
        self,
        policy: BasePolicyClient,
        *,
        preference_store: PreferenceStore | None = None,
        session_repo: SessionRepository | None = None,
        neutral: float = DEFAULT_NEUTRAL,
        default_base_bpm: int = DEFAULT_BASE_BPM,
        remote_curve: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._policy = policy
        self._preferences = preference_store
        self._session_repo = session_repo
        self._neutral = neutral
        self._default_base_bpm = default_base_bpm
        self._remote_curve = remote_curve
        self._clock = clock

    # ── Start ─────────────────────────────────────────────────

    async def start(
        self,
        user_id: str,
        signals: SignalSnapshot,
        *,
        hour: int | None = None,
    ) -> Session:
        """Run mood → context → act → curve and return a PLAYING session.

        Raises :class:`TransportError` or :class:`ValidationError` after
        recording the session as FAILED.
        """
        session = Session(user_id=user_id)
        log = logger.bind(user_id=user_id, session_id=session.id)

        prefs = await self._resolve_preferences(user_id, signals)
        session.preferences = prefs
        session.mood = compute_mood(signals)
        session.context = build_context(
            signals,
            session.mood,
            hour=self._clock().hour if hour is None else hour,
            preferences=prefs,
            default_base_bpm=self._default_base_bpm,
        )

        try:
            session.decision = await self._policy.act(
                user_id, session.context, session_length=prefs.session_length
            )
            session.targets = await self._curve(session)
        except (TransportError, ValidationError) as exc:
            await self._finish(session, SessionState.FAILED, error=str(exc))
            log.warning("session.start_failed", error=str(exc))
            raise

        session.state = SessionState.PLAYING
        if self._preferences is not None:
            await self._preferences.put(user_id, prefs)
        log.info(
            "session.started",
            mood=session.mood,
            action_id=session.action_id,
            tracks=len(session.targets),
        )
        return session

    async def _resolve_preferences(self, user_id: str, signals: SignalSnapshot) -> Preferences:
        if signals.preferences is not None:
            return signals.preferences
        stored = await self._preferences.get(user_id) if self._preferences else None
        if stored is not None:
            return stored
        logger.info("session.defaulted_input", user_id=user_id, fields=["preferences"])
        return Preferences()

    async def _curve(self, session: Session) -> list[TrackTarget]:
        action = session.decision.action
        base_bpm = session.context.base_bpm
        if self._remote_curve:
            targets = await self._policy.recommend(session.mood, base_bpm, action)
            if len(targets) != action.N:
                raise ValidationError(f"recommend returned {len(targets)} targets, expected {action.N}")
            return targets
        return make_playlist(session.mood, action, action.N, base_bpm=base_bpm, neutral=self._neutral)

    # ── Terminal events ───────────────────────────────────────

    async def complete(self, session: Session, outcome: SessionOutcome) -> float:
        """Score a finished session and report the reward to the policy.

        The reward is sent exactly once, for the ``action_id`` obtained from
        this session's successful ``act``.  The session moves to SCORING before
        the round-trip, so a concurrent ``complete`` or ``abandon`` is rejected.
        A failed ``update`` marks the session FAILED and is not retried.
        """
        if session.state is not SessionState.PLAYING or session.decision is None:
            raise SessionStateError(f"cannot complete session in state {session.state.value}")

        session.state = SessionState.SCORING
        reward = reward_from_session(outcome)
        try:
            await self._policy.update(session.user_id, session.decision.action_id, session.context, reward)
        except TransportError as exc:
            session.reward = reward
            await self._finish(session, SessionState.FAILED, error=str(exc))
            logger.warning("session.update_failed", session_id=session.id, error=str(exc))
            raise

        session.reward = reward
        await self._finish(session, SessionState.COMPLETED)
        logger.info("session.completed", session_id=session.id, reward=round(reward, 4))
        return reward

    async def abandon(self, session: Session) -> Session:
        """End a session without scoring it; no update is sent."""
        if session.state not in _ABANDONABLE:
            raise SessionStateError(f"cannot abandon session in state {session.state.value}")
        await self._finish(session, SessionState.ABANDONED)
        logger.info("session.abandoned", session_id=session.id)
        return session

    async def _finish(self, session: Session, state: SessionState, *, error: str | None = None) -> None:
        session.state = state
        session.error = error
        session.ended_at = datetime.utcnow()
        if self._session_repo is not None:
            await self._session_repo.save(session)
