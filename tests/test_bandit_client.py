"""Tests for the HTTP policy client against an in-process mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from vibeshift.bandit.http import HttpPolicyClient
from vibeshift.errors import TransportError
from vibeshift.models import Action, Context

_CONTEXT = Context(
    start_mood=38,
    base_bpm=96,
    explicit_ok=False,
    no_lyrics=True,
    daypart=21,
    sleep_deficit_h=1.5,
    hrv_z=-0.58,
    rhr_z=0.75,
    steps_z=-0.88,
    gloom_index=0.66,
    spend_anomaly=0.35,
    grade_surprise=0.0,
    genre_cluster=1,
)

_ACT_BODY = {
    "action_id": "act-123",
    "action": {"id": "arm-3", "kv": 0.7, "ke": 0.5, "kt": 0.2, "kd": 0.3, "tempo_offset": -4, "N": 8, "instrumental": 1},
    "propensity": 0.137,
    "expected_score": 0.61,
    "targets_preview": [{"whatever": True}],
    "server_time": 1760000000.5,
}


def _client(handler) -> HttpPolicyClient:
    return HttpPolicyClient("http://bandit.test", timeout=2.0, transport=httpx.MockTransport(handler))


class TestAct:
    @pytest.mark.asyncio
    async def test_act_posts_context_and_forwards_propensity(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_ACT_BODY)

        client = _client(handler)
        decision = await client.act("user-1", _CONTEXT)
        await client.close()

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/bandit/act"
        body = json.loads(seen[0].content)
        assert body == {"user_id": "user-1", "context": _CONTEXT.model_dump(mode="json")}

        assert decision.action_id == "act-123"
        assert decision.propensity == 0.137
        assert decision.expected_score == 0.61
        assert decision.action.N == 8
        assert decision.action.instrumental == 1

    @pytest.mark.asyncio
    async def test_non_2xx_is_transport_error(self):
        client = _client(lambda request: httpx.Response(503, text="overloaded"))
        with pytest.raises(TransportError) as info:
            await client.act("user-1", _CONTEXT)
        await client.close()
        assert info.value.operation == "bandit/act"
        assert info.value.status == 503

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(TransportError) as info:
            await client.act("user-1", _CONTEXT)
        await client.close()
        assert info.value.status is None

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = _client(handler)
        with pytest.raises(TransportError) as info:
            await client.act("user-1", _CONTEXT)
        await client.close()
        assert "timed out" in str(info.value)

    @pytest.mark.asyncio
    async def test_no_retry(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        client = _client(handler)
        with pytest.raises(TransportError):
            await client.act("user-1", _CONTEXT)
        await client.close()
        assert calls == 1

    @pytest.mark.asyncio
    async def test_malformed_body_is_transport_error(self):
        client = _client(lambda request: httpx.Response(200, json={"action_id": "x"}))
        with pytest.raises(TransportError):
            await client.act("user-1", _CONTEXT)
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body_is_transport_error(self):
        client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(TransportError):
            await client.act("user-1", _CONTEXT)
        await client.close()


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_resubmits_context_verbatim(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        client = _client(handler)
        ack = await client.update("user-1", "act-123", _CONTEXT, 0.42)
        await client.close()

        assert ack == {"ok": True}
        assert seen == [
            {
                "user_id": "user-1",
                "action_id": "act-123",
                "context": _CONTEXT.model_dump(mode="json"),
                "reward": 0.42,
            }
        ]

    @pytest.mark.asyncio
    async def test_update_failure(self):
        client = _client(lambda request: httpx.Response(404, json={"detail": "unknown action"}))
        with pytest.raises(TransportError) as info:
            await client.update("user-1", "act-999", _CONTEXT, 0.1)
        await client.close()
        assert info.value.operation == "bandit/update"
        assert info.value.status == 404


class TestRecommend:
    @pytest.mark.asyncio
    async def test_recommend_parses_targets(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/playlist/recommend"
            body = json.loads(request.content)
            assert body["start_mood"] == 38
            assert body["base_bpm"] == 96
            assert body["action"]["id"] == "arm-3"
            return httpx.Response(
                200,
                json={"targets": [{"index": 1, "valence": 0.6, "energy": 0.58, "dance": 0.56, "tempo": 98}]},
            )

        client = _client(handler)
        targets = await client.recommend(38, 96, Action.model_validate(_ACT_BODY["action"]))
        await client.close()
        assert len(targets) == 1
        assert targets[0].tempo == 98

    @pytest.mark.asyncio
    async def test_recommend_missing_targets(self):
        client = _client(lambda request: httpx.Response(200, json={}))
        with pytest.raises(TransportError):
            await client.recommend(38, 96, Action.model_validate(_ACT_BODY["action"]))
        await client.close()
