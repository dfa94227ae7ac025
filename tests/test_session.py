"""Unit tests for ChaseSession wiring, generations and outcomes."""

from __future__ import annotations

import random
from dataclasses import replace

import pytest

from slug_chase.config import PRESETS
from slug_chase.events import COINS_AWARDED
from slug_chase.geo import destination
from slug_chase.models import ChaseState, ChaseStatus, GeoPoint
from slug_chase.session import ChaseSession

pytestmark = pytest.mark.unit

START = GeoPoint(longitude=121.4737, latitude=31.2304)
T0 = 1_735_689_600_000
CLASSIC_EAST = replace(PRESETS["classic"], spawn_bearing_deg=90.0)


def south(meters: float) -> GeoPoint:
    return destination(START, meters, 180.0)


def _session(preset=CLASSIC_EAST) -> ChaseSession:
    return ChaseSession(preset, rng=random.Random(5))


class TestWiring:
    def test_accepted_distance_feeds_ledger_and_engine(self):
        session = _session()
        coins: list[int] = []
        session.events.subscribe(COINS_AWARDED, coins.append)

        session.on_fix(START, T0)
        for i in range(1, 6):
            session.on_fix(south(10.0 * i), T0 + 2000 * i)
        session.tick(time_ms=T0 + 10_000)

        snap = session.snapshot()
        assert snap.distance_m == pytest.approx(50.0)
        assert snap.coins == 5
        assert coins == [1, 1, 1, 1, 1]
        assert snap.player_speed_kmh == pytest.approx(18.0)
        assert snap.pursuer_speed_kmh == pytest.approx(13.5)
        assert snap.state is ChaseState.ACTIVE

    def test_rejected_fix_still_moves_the_target(self):
        session = _session()
        session.on_fix(START, T0)
        session.on_fix(south(3.0), T0 + 1000)
        assert session.snapshot().player_position == south(3.0)
        assert session.snapshot().distance_m == 0.0

    def test_route_holds_accepted_positions(self):
        session = _session()
        session.on_fix(START, T0)
        session.on_fix(south(3.0), T0 + 1000)
        session.on_fix(south(12.0), T0 + 3000)
        assert session.route() == (START, south(12.0))
        frame = session.map_frame()
        assert frame.past_routes == ((START, south(12.0)),)
        assert frame.player_position == south(12.0)
        assert frame.pursuer_position is not None

    def test_map_frame_keeps_past_routes(self):
        session = _session()
        old = ((START, south(100.0)),)
        assert session.map_frame(old).past_routes == old

    def test_dropout_starts_a_new_polyline(self):
        session = _session()
        session.on_fix(START, T0)
        session.on_fix(south(12.0), T0 + 3000)
        session.on_fix(None, T0 + 4000)
        session.on_fix(south(100.0), T0 + 60_000)
        session.on_fix(south(112.0), T0 + 63_000)

        assert session.route() == (START, south(12.0), south(100.0), south(112.0))
        assert session.route_segments() == (
            (START, south(12.0)),
            (south(100.0), south(112.0)),
        )
        assert session.map_frame().past_routes == session.route_segments()
        assert session.filter.distance_m == pytest.approx(24.0)

    def test_lone_point_after_dropout_is_not_drawn(self):
        session = _session()
        session.on_fix(START, T0)
        session.on_fix(south(12.0), T0 + 3000)
        session.on_fix(None, T0 + 4000)
        session.on_fix(south(100.0), T0 + 60_000)
        assert session.route()[-1] == south(100.0)
        assert session.map_frame().past_routes == ((START, south(12.0)),)

    def test_snapshot_status(self):
        session = _session()
        assert session.snapshot().status is None
        session.on_fix(START, T0)
        assert session.snapshot().status is ChaseStatus.STANDING_STILL

    def test_snapshot_status_when_caught(self):
        session = _session(replace(PRESETS["test"], spawn_distance_m=30.0, min_slug_speed_kmh=3600.0))
        session.on_fix(START, T0)
        assert session.snapshot().status is ChaseStatus.TOO_CLOSE
        session.tick()
        session.tick()
        assert session.captured
        assert session.snapshot().status is ChaseStatus.CAUGHT


class TestLifecycle:
    def test_stop_blocks_further_mutation(self):
        session = _session()
        session.on_fix(START, T0)
        session.tick()
        before = session.snapshot()
        session.stop()

        session.on_fix(south(50.0), T0 + 5000)
        session.tick()
        assert session.snapshot() == before
        assert not session.running

    def test_stale_generation_is_discarded(self):
        session = _session()
        old = session.generation
        session.restart()
        session.on_fix(START, T0, generation=old)
        session.tick(generation=old)
        assert session.snapshot().state is ChaseState.UNINITIALIZED

        session.on_fix(START, T0, generation=session.generation)
        assert session.snapshot().state is ChaseState.ACTIVE

    def test_restart_clears_progress(self):
        session = _session()
        session.on_fix(START, T0)
        session.on_fix(south(20.0), T0 + 4000)
        assert session.ledger.coins == 2
        session.restart()
        assert session.ledger.coins == 0
        assert session.filter.distance_m == 0.0
        assert session.engine.position is None
        assert session.running

    def test_outcome_frozen_after_capture(self):
        session = _session(replace(PRESETS["test"], min_slug_speed_kmh=3600.0))
        session.on_fix(START, T0)
        session.on_fix(south(20.0), T0 + 4000)
        for _ in range(5):
            session.tick()
        assert session.captured
        outcome = session.outcome()
        assert outcome.captured
        assert outcome.coins_earned == 2
        assert outcome.distance_traveled_m == pytest.approx(20.0)
        assert outcome.duration_seconds == pytest.approx(4.0)

        session.on_fix(south(40.0), T0 + 8000)
        assert session.outcome() == outcome
        assert session.ledger.coins == 2
