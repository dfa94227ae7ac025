"""Unit tests for the pursuit engine."""

from __future__ import annotations

import random
from dataclasses import replace

import pytest

from slug_chase.config import PRESETS, get_preset
from slug_chase.events import CAPTURED, SEPARATION_UPDATED, EventHub
from slug_chase.geo import bearing_between, destination, distance_between
from slug_chase.models import ChaseState, ChaseStatus, GeoPoint
from slug_chase.pursuit import PursuitEngine, chase_status, pursuer_speed_kmh

pytestmark = pytest.mark.unit

PLAYER = GeoPoint(longitude=121.4737, latitude=31.2304)
CLASSIC_EAST = replace(PRESETS["classic"], spawn_bearing_deg=90.0)


def _engine(preset=CLASSIC_EAST):
    hub = EventHub()
    captured: list[bool] = []
    separations: list[float] = []
    hub.subscribe(CAPTURED, lambda: captured.append(True))
    hub.subscribe(SEPARATION_UPDATED, separations.append)
    return PursuitEngine(preset, hub, random.Random(1)), captured, separations


def _run_until_captured(engine: PursuitEngine, limit: int = 1000) -> int:
    for tick in range(1, limit + 1):
        engine.tick()
        if engine.state is ChaseState.CAPTURED:
            return tick
    raise AssertionError("never captured")


class TestSpeedRule:
    def test_floor_at_threshold(self):
        assert pursuer_speed_kmh(PRESETS["classic"], 6.0) == 4.5

    def test_adaptive_just_above_threshold(self):
        assert pursuer_speed_kmh(PRESETS["classic"], 6.0001) == 6.0001 * 0.75

    def test_adaptive_fast_player(self):
        assert pursuer_speed_kmh(PRESETS["classic"], 12.0) == pytest.approx(9.0)

    def test_standing_still_gets_floor(self):
        assert pursuer_speed_kmh(PRESETS["classic"], 0.0) == 4.5

    def test_constant_rule_ignores_player(self):
        assert pursuer_speed_kmh(PRESETS["constant"], 20.0) == 4.5


class TestSpawn:
    def test_uninitialized_until_player_known(self):
        engine, _, separations = _engine()
        engine.tick()
        engine.update_player(None)
        engine.tick()
        assert engine.state is ChaseState.UNINITIALIZED
        assert engine.position is None
        assert separations == []

    def test_spawns_at_preset_distance_and_bearing(self):
        engine, _, _ = _engine()
        engine.update_player(PLAYER)
        assert engine.state is ChaseState.ACTIVE
        assert distance_between(PLAYER, engine.position) == pytest.approx(200.0, abs=1e-6)
        assert bearing_between(PLAYER, engine.position) == pytest.approx(90.0, abs=1e-6)

    def test_random_bearing_still_at_spawn_distance(self):
        engine, _, _ = _engine(PRESETS["classic"])
        engine.update_player(PLAYER)
        assert engine.separation_m == pytest.approx(200.0, abs=1e-6)

    def test_spawn_happens_once(self):
        engine, _, _ = _engine()
        engine.update_player(PLAYER)
        spawned = engine.position
        engine.update_player(destination(PLAYER, 30.0, 0.0))
        assert engine.position == spawned

    def test_test_preset_spawns_close_to_the_north(self):
        engine, _, _ = _engine(get_preset("test"))
        engine.update_player(PLAYER)
        assert engine.separation_m == pytest.approx(20.0, abs=1e-6)
        assert bearing_between(PLAYER, engine.position) == pytest.approx(0.0, abs=1e-6)


class TestTick:
    def test_stationary_player_caught_after_about_160_ticks(self):
        engine, captured, separations = _engine()
        engine.update_player(PLAYER)
        tick = _run_until_captured(engine)
        assert 158 <= tick <= 162
        assert captured == [True]
        assert separations[0] == pytest.approx(200.0 - 1.25, abs=1e-6)
        assert engine.separation_m < 3.0

    def test_moves_floor_speed_per_tick(self):
        engine, _, separations = _engine()
        engine.update_player(PLAYER)
        for _ in range(10):
            engine.tick()
        assert separations[-1] == pytest.approx(200.0 - 12.5, abs=1e-6)
        assert engine.speed_kmh == 4.5

    def test_adaptive_speed_applied_on_next_tick(self):
        engine, _, separations = _engine()
        engine.update_player(PLAYER)
        engine.set_player_speed(12.0)
        engine.tick()
        assert engine.speed_kmh == pytest.approx(9.0)
        assert separations == [pytest.approx(200.0 - 2.5, abs=1e-6)]

    def test_holds_position_while_player_lost(self):
        engine, _, separations = _engine()
        engine.update_player(PLAYER)
        engine.tick()
        held = engine.position
        engine.update_player(None)
        for _ in range(5):
            engine.tick()
        assert engine.position == held
        assert len(separations) == 1
        engine.update_player(PLAYER)
        engine.tick()
        assert len(separations) == 2

    def test_capture_checked_before_moving(self):
        engine, captured, _ = _engine()
        engine.update_player(PLAYER)
        slug = engine.position
        engine.update_player(destination(slug, 2.0, 270.0))
        engine.tick()
        assert engine.state is ChaseState.CAPTURED
        assert engine.position == slug
        assert captured == [True]

    def test_never_steps_past_the_player(self):
        fast = replace(get_preset("test"), min_slug_speed_kmh=3600.0)
        engine, captured, separations = _engine(fast)
        engine.update_player(PLAYER)
        engine.tick()
        engine.tick()
        assert separations[-1] == pytest.approx(0.0, abs=1e-6)
        engine.tick()
        assert captured == [True]

    def test_captured_is_terminal(self):
        engine, captured, separations = _engine()
        engine.update_player(PLAYER)
        _run_until_captured(engine)
        position, speed, n_sep = engine.position, engine.speed_kmh, len(separations)

        engine.set_player_speed(30.0)
        engine.update_player(destination(PLAYER, 500.0, 0.0))
        for _ in range(5):
            engine.tick()

        assert engine.state is ChaseState.CAPTURED
        assert engine.position == position
        assert engine.speed_kmh == speed
        assert len(separations) == n_sep
        assert captured == [True]

    def test_relaxed_preset_catches_earlier(self):
        strict, _, _ = _engine()
        relaxed, _, _ = _engine(replace(PRESETS["relaxed"], spawn_bearing_deg=90.0))
        strict.update_player(PLAYER)
        relaxed.update_player(PLAYER)
        assert _run_until_captured(relaxed) < _run_until_captured(strict)


class TestChaseStatus:
    CLASSIC = PRESETS["classic"]

    @pytest.mark.parametrize(
        ("separation_m", "expected"),
        [
            (0.0, ChaseStatus.CAUGHT),
            (2.99, ChaseStatus.CAUGHT),
            (3.0, ChaseStatus.DANGER),
            (19.99, ChaseStatus.DANGER),
            (20.0, ChaseStatus.TOO_CLOSE),
            (49.99, ChaseStatus.TOO_CLOSE),
        ],
    )
    def test_proximity_tiers(self, separation_m, expected):
        assert chase_status(separation_m, 8.0, self.CLASSIC) is expected

    @pytest.mark.parametrize(
        ("speed_kmh", "expected"),
        [
            (0.0, ChaseStatus.STANDING_STILL),
            (0.01, ChaseStatus.TOO_SLOW),
            (3.99, ChaseStatus.TOO_SLOW),
            (4.0, ChaseStatus.PERFECT_PACE),
            (10.0, ChaseStatus.PERFECT_PACE),
            (10.01, ChaseStatus.TOO_FAST),
        ],
    )
    def test_pace_tiers_when_far_away(self, speed_kmh, expected):
        assert chase_status(50.0, speed_kmh, self.CLASSIC) is expected

    def test_proximity_wins_over_pace(self):
        assert chase_status(10.0, 0.0, self.CLASSIC) is ChaseStatus.DANGER
        assert chase_status(40.0, 15.0, self.CLASSIC) is ChaseStatus.TOO_CLOSE

    def test_caught_follows_the_capture_radius(self):
        relaxed = get_preset("relaxed")
        assert chase_status(9.0, 8.0, relaxed) is ChaseStatus.CAUGHT
        assert chase_status(9.0, 8.0, self.CLASSIC) is ChaseStatus.DANGER
