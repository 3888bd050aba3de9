"""Abstract base class for policy-service clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from vibeshift.models import Action, ActResponse, Context, TrackTarget


class BasePolicyClient(ABC):
    """Contract every policy backend must implement.

    A policy client submits a decision context, receives a chosen action,
    and later reports the observed reward for that action.  Failures are
    raised as :class:`~vibeshift.errors.TransportError`; implementations
    never retry and never fabricate an action.
    """

    @abstractmethod
    async def act(
        self,
        user_id: str,
        context: Context,
        *,
        session_length: int | None = None,
    ) -> ActResponse:
        """Request a decision for *context*.

        *session_length* is the listener's preferred track count.  Backends
        that choose ``N`` themselves may ignore it.  ``propensity`` in the
        response must be passed through unchanged.
        """

    @abstractmethod
    async def update(
        self,
        user_id: str,
        action_id: str,
        context: Context,
        reward: float,
    ) -> Any:
        """Report *reward* for a previously issued *action_id*.

        *context* must be the exact context that was sent to :meth:`act`.
        """

    @abstractmethod
    async def recommend(
        self,
        start_mood: float,
        base_bpm: float,
        action: Action,
    ) -> list[TrackTarget]:
        """Compute the target curve for *action* on the policy side."""

    async def close(self) -> None:
        """Release any resources held by the client."""
