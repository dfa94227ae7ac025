"""One game session: filter, pursuit engine and ledger wired together."""

from __future__ import annotations

import logging
import random

from slug_chase.config import ChasePreset, FilterParams
from slug_chase.events import CAPTURED, DISTANCE_ACCRUED, SPEED_UPDATED, EventHub
from slug_chase.ledger import RewardLedger
from slug_chase.models import ChaseSnapshot, ChaseState, GeoPoint, MapFrame, SessionOutcome
from slug_chase.pursuit import PursuitEngine, chase_status
from slug_chase.tracking import PositionFilter, make_filter

logger = logging.getLogger(__name__)


class ChaseSession:
    """Single source of truth for a chase.

    All mutation goes through ``on_fix`` and ``tick``. Each call may carry the
    generation it was scheduled under; calls from an older generation (after
    ``stop`` or ``restart``) are dropped without touching state.
    """

    def __init__(
        self,
        preset: ChasePreset,
        filter_params: FilterParams | None = None,
        *,
        events: EventHub | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.events = events or EventHub()
        self._preset = preset
        self._filter_params = filter_params or FilterParams()
        self._rng = rng or random.Random()
        self._generation = 0
        self._stopped = False
        self._build()

        self.events.subscribe(DISTANCE_ACCRUED, self._on_distance)
        self.events.subscribe(SPEED_UPDATED, self._on_speed)
        self.events.subscribe(CAPTURED, self._on_captured)

    def _build(self) -> None:
        self.filter: PositionFilter = make_filter(self._filter_params, self.events)
        self.engine = PursuitEngine(self._preset, self.events, self._rng)
        self.ledger = RewardLedger(self.events)
        # One polyline per stretch of continuous signal.
        self._routes: list[list[GeoPoint]] = [[]]
        self._start_ms: int | None = None
        self._last_ms: int | None = None
        self._outcome: SessionOutcome | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def preset(self) -> ChasePreset:
        return self._preset

    @property
    def running(self) -> bool:
        return not self._stopped and self.engine.state is not ChaseState.CAPTURED

    @property
    def captured(self) -> bool:
        return self.engine.state is ChaseState.CAPTURED

    def _is_stale(self, generation: int | None) -> bool:
        if self._stopped:
            return True
        return generation is not None and generation != self._generation

    def on_fix(self, position: GeoPoint | None, time_ms: int, generation: int | None = None) -> None:
        """Location callback. position None means the fix was lost."""

        if self._is_stale(generation) or self.captured:
            return
        if self._start_ms is None:
            self._start_ms = time_ms
        self._last_ms = time_ms

        anchored = self.filter.last_position is not None
        accepted = self.filter.observe(position, time_ms)
        if position is not None:
            if not anchored:
                # First fix after a dropout (or ever) re-anchors: start a new polyline.
                if self._routes[-1]:
                    self._routes.append([])
                self._routes[-1].append(position)
            elif accepted is not None:
                self._routes[-1].append(position)
        self.engine.update_player(position)

    def tick(self, generation: int | None = None, time_ms: int | None = None) -> None:
        """Timer callback."""

        if self._is_stale(generation):
            return
        if time_ms is not None and self._start_ms is not None:
            self._last_ms = max(self._last_ms or time_ms, time_ms)
        self.engine.tick()

    def stop(self) -> None:
        """Stop observing; nothing scheduled before this call can mutate state afterwards."""

        self._stopped = True
        self._generation += 1

    def restart(self) -> None:
        """Throw away all progress and begin a new chase with the same rules."""

        self._generation += 1
        self._stopped = False
        self._build()

    def _on_distance(self, meters: float) -> None:
        self.ledger.credit(meters)

    def _on_speed(self, kmh: float) -> None:
        self.engine.set_player_speed(kmh)

    def _on_captured(self) -> None:
        self._outcome = self._make_outcome()

    def _make_outcome(self) -> SessionOutcome:
        duration = 0.0
        if self._start_ms is not None and self._last_ms is not None:
            duration = max(0.0, (self._last_ms - self._start_ms) / 1000.0)
        return SessionOutcome(
            coins_earned=self.ledger.coins,
            distance_traveled_m=self.filter.distance_m,
            captured=self.captured,
            duration_seconds=duration,
        )

    def outcome(self) -> SessionOutcome:
        """Current outcome; frozen once the slug has caught the player."""

        if self._outcome is not None:
            return self._outcome
        return self._make_outcome()

    def snapshot(self) -> ChaseSnapshot:
        state = self.engine.state
        status = None
        if state is not ChaseState.UNINITIALIZED:
            status = chase_status(self.engine.separation_m, self.filter.speed_kmh, self._preset)
        return ChaseSnapshot(
            state=state,
            player_position=self.engine.player_position,
            pursuer_position=self.engine.position,
            player_speed_kmh=self.filter.speed_kmh,
            pursuer_speed_kmh=self.engine.speed_kmh,
            separation_m=self.engine.separation_m,
            coins=self.ledger.coins,
            distance_m=self.filter.distance_m,
            status=status,
        )

    def route(self) -> tuple[GeoPoint, ...]:
        """Accepted player positions so far, anchors after a dropout included."""

        return tuple(p for segment in self._routes for p in segment)

    def route_segments(self) -> tuple[tuple[GeoPoint, ...], ...]:
        """The route split at signal losses; single-point stretches are left out."""

        return tuple(tuple(segment) for segment in self._routes if len(segment) >= 2)

    def map_frame(self, past_routes: tuple[tuple[GeoPoint, ...], ...] = ()) -> MapFrame:
        routes = (*past_routes, *self.route_segments())
        return MapFrame(
            player_position=self.engine.player_position,
            pursuer_position=self.engine.position,
            past_routes=routes,
        )
