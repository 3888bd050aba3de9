"""Tests for the decision-context builder."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from vibeshift.affect.features import compute_gloom_index
from vibeshift.bandit.context import build_context, genre_cluster_from_seeds
from vibeshift.errors import ValidationError
from vibeshift.models import (
    Context,
    HealthSignals,
    PersonalBaselines,
    Preferences,
    SignalSnapshot,
    Stressors,
    WeatherSignals,
)

_WIRE_FIELDS = {
    "start_mood",
    "base_bpm",
    "explicit_ok",
    "no_lyrics",
    "daypart",
    "sleep_deficit_h",
    "hrv_z",
    "rhr_z",
    "steps_z",
    "gloom_index",
    "spend_anomaly",
    "grade_surprise",
    "genre_cluster",
}


# ── Genre clusters ────────────────────────────────────────────


class TestGenreCluster:
    def test_lofi_beats_house_regardless_of_order(self):
        assert genre_cluster_from_seeds(["house", "lo-fi"]) == 1
        assert genre_cluster_from_seeds(["lo-fi", "house"]) == 1

    def test_case_insensitive_substring(self):
        assert genre_cluster_from_seeds(["Chill Vibes"]) == 1
        assert genre_cluster_from_seeds(["INDIE-pop"]) == 2

    def test_priority_order(self):
        assert genre_cluster_from_seeds(["alt-rock", "neo-soul"]) == 2
        assert genre_cluster_from_seeds(["Neo-Soul", "deep house"]) == 3
        assert genre_cluster_from_seeds(["EDM"]) == 4

    def test_default_cluster(self):
        assert genre_cluster_from_seeds(["jazz", "classical"]) == 0
        assert genre_cluster_from_seeds([]) == 0
        assert genre_cluster_from_seeds(None) == 0


# ── Context ───────────────────────────────────────────────────


def _snapshot(**overrides) -> SignalSnapshot:
    base = dict(
        health=HealthSignals(sleep_hours=7.5, hrv=45, resting_hr=64, steps=8000),
        weather=WeatherSignals(precip_mm=0, cloud_pct=0, temp_c=17),
        preferences=Preferences(genres=["house", "lo-fi"], base_bpm=100),
    )
    base.update(overrides)
    return SignalSnapshot(**base)


class TestBuildContext:
    def test_wire_field_names(self):
        ctx = build_context(_snapshot(), 50, hour=9)
        assert set(ctx.model_dump()) == _WIRE_FIELDS

    def test_defaults_give_zero_scores(self):
        ctx = build_context(_snapshot(), 50, hour=9)
        assert ctx.hrv_z == 0.0
        assert ctx.rhr_z == 0.0
        assert ctx.steps_z == 0.0
        assert ctx.sleep_deficit_h == 0.0
        assert ctx.gloom_index == 0.0
        assert ctx.genre_cluster == 1

    def test_hour_is_daypart(self):
        assert build_context(_snapshot(), 50, hour=0).daypart == 0
        assert build_context(_snapshot(), 50, hour=23).daypart == 23

    @pytest.mark.parametrize("hour", [-1, 24, 99])
    def test_invalid_hour_rejected(self, hour):
        with pytest.raises(ValidationError):
            build_context(_snapshot(), 50, hour=hour)

    def test_personal_baselines_used(self):
        snap = _snapshot(
            health=HealthSignals(sleep_hours=5, hrv=60, resting_hr=64, steps=8000),
            baselines=PersonalBaselines(hrv_mean=50, hrv_std=5, sleep_hours=8),
        )
        ctx = build_context(snap, 50, hour=9)
        assert ctx.hrv_z == pytest.approx(2.0)
        assert ctx.sleep_deficit_h == pytest.approx(3.0)

    def test_zero_std_gives_zero_z(self):
        snap = _snapshot(
            health=HealthSignals(hrv=80),
            baselines=PersonalBaselines(hrv_std=0),
        )
        assert build_context(snap, 50, hour=9).hrv_z == 0.0

    def test_gloom_matches_shared_formula(self):
        snap = _snapshot(weather=WeatherSignals(precip_mm=5, cloud_pct=90, temp_c=11))
        ctx = build_context(snap, 40, hour=9)
        assert ctx.gloom_index == compute_gloom_index(5, 90, 11)

    def test_stressors_clamped(self):
        snap = _snapshot(stressors=Stressors(spend_anomaly=1.7, grade_surprise=-3))
        ctx = build_context(snap, 40, hour=9)
        assert ctx.spend_anomaly == 1.0
        assert ctx.grade_surprise == -1.0

    def test_start_mood_clamped_and_rounded(self):
        assert build_context(_snapshot(), 130, hour=9).start_mood == 100
        assert build_context(_snapshot(), -5, hour=9).start_mood == 0
        assert build_context(_snapshot(), 41.5, hour=9).start_mood == 42

    def test_base_bpm_defaults_and_rounds(self):
        snap = _snapshot(preferences=Preferences(base_bpm=None))
        assert build_context(snap, 50, hour=9).base_bpm == 96
        snap = _snapshot(preferences=Preferences(base_bpm=95.5))
        assert build_context(snap, 50, hour=9).base_bpm == 96

    def test_base_bpm_fallback_is_configurable(self):
        snap = _snapshot(preferences=Preferences())
        assert build_context(snap, 50, hour=9, default_base_bpm=120).base_bpm == 120
        assert build_context(_snapshot(), 50, hour=9, default_base_bpm=120).base_bpm == 100

    @pytest.mark.parametrize("mood", [float("nan"), float("inf")])
    def test_non_finite_mood_rejected(self, mood):
        with pytest.raises(ValidationError):
            build_context(_snapshot(), mood, hour=9)

    def test_preferences_argument_overrides_snapshot(self):
        prefs = Preferences(explicit_ok=True, no_lyrics=True, genres=["edm"], base_bpm=120)
        ctx = build_context(_snapshot(), 50, hour=9, preferences=prefs)
        assert ctx.explicit_ok is True
        assert ctx.no_lyrics is True
        assert ctx.genre_cluster == 4
        assert ctx.base_bpm == 120

    def test_missing_preferences_default(self):
        ctx = build_context(_snapshot(preferences=None), 50, hour=9)
        assert ctx.explicit_ok is False
        assert ctx.no_lyrics is False
        assert ctx.genre_cluster == 0
        assert ctx.base_bpm == 96

    def test_defaulted_inputs_are_logged(self):
        with capture_logs() as logs:
            build_context(_snapshot(preferences=None), 50, hour=9)
        events = [e for e in logs if e["event"] == "context.defaulted_input"]
        assert len(events) == 1
        assert "preferences" in events[0]["fields"]
        assert "hrv_mean" in events[0]["fields"]

    def test_deterministic(self, gloomy_snapshot):
        a = build_context(gloomy_snapshot, 23, hour=18)
        b = build_context(gloomy_snapshot, 23, hour=18)
        assert a == b
        assert a.model_dump_json() == b.model_dump_json()

    def test_context_is_immutable(self):
        ctx = build_context(_snapshot(), 50, hour=9)
        with pytest.raises(Exception):
            ctx.start_mood = 10  # type: ignore[misc]
        assert isinstance(ctx, Context)
