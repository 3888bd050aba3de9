"""HTTP policy client: JSON request/response against the bandit service.

Endpoints::

    POST /bandit/act           {user_id, context}                  -> ActResponse
    POST /bandit/update        {user_id, action_id, context, reward} -> ack
    POST /playlist/recommend   {start_mood, base_bpm, action}      -> {targets}

Any network failure, timeout, non-2xx status or unparseable body becomes a
:class:`TransportError` carrying the operation name and HTTP status.
"""

from __future__ import annotations

from typing import Any

import httpx
import pydantic
import structlog

from vibeshift.bandit.base import BasePolicyClient
from vibeshift.config import get_settings
from vibeshift.errors import TransportError
from vibeshift.models import Action, ActResponse, Context, TrackTarget

logger = structlog.get_logger(__name__)

_ACT = "bandit/act"
_UPDATE = "bandit/update"
_RECOMMEND = "playlist/recommend"


class HttpPolicyClient(BasePolicyClient):
    """Talks to a remote policy service over HTTP.

    Usage::

        client = HttpPolicyClient("http://localhost:8080")
        decision = await client.act("u1", context)
        ...
        await client.update("u1", decision.action_id, context, reward)
        await client.close()

    Pass *transport* (e.g. ``httpx.MockTransport`` or ``httpx.ASGITransport``)
    to swap the remote service for an in-process double.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.bandit_api_base_url,
            timeout=timeout if timeout is not None else settings.bandit_request_timeout,
            transport=transport,
        )

    # ── Internal request wrapper ──────────────────────────────

    async def _post(self, operation: str, payload: dict[str, Any]) -> Any:
        try:
            resp = await self._client.post(f"/{operation}", json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("bandit.timeout", operation=operation)
            raise TransportError(operation, None, "request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("bandit.network_error", operation=operation, error=str(exc))
            raise TransportError(operation, None, str(exc)) from exc

        if not resp.is_success:
            logger.warning("bandit.bad_status", operation=operation, status=resp.status_code)
            raise TransportError(operation, resp.status_code, resp.text[:200])

        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(operation, resp.status_code, "response body is not JSON") from exc

    # ── Operations ────────────────────────────────────────────

    async def act(
        self,
        user_id: str,
        context: Context,
        *,
        session_length: int | None = None,
    ) -> ActResponse:
        # the act request has no length field; the service picks N
        body = await self._post(_ACT, {"user_id": user_id, "context": context.model_dump(mode="json")})
        try:
            decision = ActResponse.model_validate(body)
        except pydantic.ValidationError as exc:
            raise TransportError(_ACT, 200, f"malformed act response: {exc.error_count()} errors") from exc
        logger.info(
            "bandit.act",
            user_id=user_id,
            action_id=decision.action_id,
            propensity=decision.propensity,
        )
        return decision

    async def update(
        self,
        user_id: str,
        action_id: str,
        context: Context,
        reward: float,
    ) -> Any:
        ack = await self._post(
            _UPDATE,
            {
                "user_id": user_id,
                "action_id": action_id,
                "context": context.model_dump(mode="json"),
                "reward": reward,
            },
        )
        logger.info("bandit.update", user_id=user_id, action_id=action_id, reward=round(reward, 4))
        return ack

    async def recommend(
        self,
        start_mood: float,
        base_bpm: float,
        action: Action,
    ) -> list[TrackTarget]:
        body = await self._post(
            _RECOMMEND,
            {"start_mood": start_mood, "base_bpm": base_bpm, "action": action.model_dump(mode="json")},
        )
        try:
            return [TrackTarget.model_validate(t) for t in body["targets"]]
        except (KeyError, TypeError, pydantic.ValidationError) as exc:
            raise TransportError(_RECOMMEND, 200, "malformed recommend response") from exc

    async def close(self) -> None:
        await self._client.aclose()
