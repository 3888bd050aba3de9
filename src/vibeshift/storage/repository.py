"""Data-access layer: preference key-value store and session history."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, AsyncIterator, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vibeshift.models import Preferences
from vibeshift.storage.database import PreferenceRow, SessionRow, get_session_factory

if TYPE_CHECKING:
    from vibeshift.session.orchestrator import Session


class BaseRepository:
    """Shared base with session management for all repositories."""

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._external_session = session

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._external_session is not None:
            yield self._external_session
            return
        async with get_session_factory()() as session:
            yield session


# ── Preferences ───────────────────────────────────────────────


class PreferenceStore(ABC):
    """Key-value store for per-user :class:`Preferences`."""

    @abstractmethod
    async def get(self, user_id: str) -> Preferences | None:
        """Return stored preferences, or ``None`` if the user has none."""

    @abstractmethod
    async def put(self, user_id: str, preferences: Preferences) -> None:
        """Insert or replace the user's preferences."""


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self) -> None:
        self._data: dict[str, Preferences] = {}

    async def get(self, user_id: str) -> Preferences | None:
        return self._data.get(user_id)

    async def put(self, user_id: str, preferences: Preferences) -> None:
        self._data[user_id] = preferences


class PreferenceRepository(BaseRepository, PreferenceStore):
    """SQL-backed :class:`PreferenceStore`."""

    async def get(self, user_id: str) -> Preferences | None:
        async with self._session() as session:
            row = await session.get(PreferenceRow, user_id)
            if row is None:
                return None
            return Preferences.model_validate_json(row.preferences_json)

    async def put(self, user_id: str, preferences: Preferences) -> None:
        async with self._session() as session:
            row = await session.get(PreferenceRow, user_id)
            if row is None:
                row = PreferenceRow(user_id=user_id)
                session.add(row)
            row.preferences_json = preferences.model_dump_json()
            row.updated_at = datetime.utcnow()
            await session.commit()


# ── Session history ───────────────────────────────────────────


class SessionRepository(BaseRepository):
    """Append-only log of sessions that reached a terminal state."""

    async def save(self, record: Session) -> None:
        decision = record.decision
        async with self._session() as session:
            session.add(
                SessionRow(
                    id=record.id,
                    user_id=record.user_id,
                    state=record.state.value,
                    start_mood=record.mood,
                    action_id=decision.action_id if decision else None,
                    propensity=decision.propensity if decision else None,
                    track_count=len(record.targets),
                    reward=record.reward,
                    error=record.error,
                    context_json=record.context.model_dump_json() if record.context else "{}",
                    started_at=record.started_at,
                    ended_at=record.ended_at,
                )
            )
            await session.commit()

    async def get(self, session_id: str) -> SessionRow | None:
        async with self._session() as session:
            return await session.get(SessionRow, session_id)

    async def get_by_user(self, user_id: str, limit: int = 50) -> Sequence[SessionRow]:
        async with self._session() as session:
            stmt = (
                select(SessionRow)
                .where(SessionRow.user_id == user_id)
                .order_by(SessionRow.started_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return result.scalars().all()


def session_row_to_dict(row: SessionRow) -> dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "state": row.state,
        "start_mood": row.start_mood,
        "action_id": row.action_id,
        "propensity": row.propensity,
        "track_count": row.track_count,
        "reward": row.reward,
        "error": row.error,
        "context": json.loads(row.context_json or "{}"),
        "started_at": row.started_at.isoformat(),
        "ended_at": row.ended_at.isoformat() if row.ended_at else None,
    }
