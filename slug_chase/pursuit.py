"""The slug: spawning, adaptive speed, movement and capture."""

from __future__ import annotations

import logging
import random

from slug_chase.config import ChasePreset
from slug_chase.events import CAPTURED, SEPARATION_UPDATED, EventHub
from slug_chase.geo import bearing_between, destination, distance_between
from slug_chase.models import ChaseState, ChaseStatus, GeoPoint, PursuerState

logger = logging.getLogger(__name__)

KMH_TO_MPS = 1.0 / 3.6


def pursuer_speed_kmh(preset: ChasePreset, player_speed_kmh: float) -> float:
    """Slug speed for a given smoothed player speed.

    Adaptive rule: above the threshold the slug runs at a fixed fraction of the
    player's speed, otherwise (and always for the constant rule) at the floor.
    """

    if preset.speed_rule == "constant":
        return preset.min_slug_speed_kmh
    if player_speed_kmh > preset.adaptive_threshold_kmh:
        return max(preset.min_slug_speed_kmh, player_speed_kmh * preset.adaptive_ratio)
    return preset.min_slug_speed_kmh


def chase_status(separation_m: float, player_speed_kmh: float, preset: ChasePreset) -> ChaseStatus:
    """Classify the chase for display.

    Proximity wins over pace: within the capture radius, the danger distance or the
    warning distance the status names that tier; otherwise it judges the player's speed.
    """

    if separation_m < preset.capture_radius_m:
        return ChaseStatus.CAUGHT
    if separation_m < preset.danger_distance_m:
        return ChaseStatus.DANGER
    if separation_m < preset.warning_distance_m:
        return ChaseStatus.TOO_CLOSE
    if player_speed_kmh <= 0:
        return ChaseStatus.STANDING_STILL
    if player_speed_kmh < preset.slow_pace_kmh:
        return ChaseStatus.TOO_SLOW
    if player_speed_kmh > preset.fast_pace_kmh:
        return ChaseStatus.TOO_FAST
    return ChaseStatus.PERFECT_PACE


class PursuitEngine:
    """Owns the pursuer and advances it one tick at a time."""

    def __init__(
        self,
        preset: ChasePreset,
        events: EventHub | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._preset = preset
        self._events = events or EventHub()
        self._rng = rng or random.Random()
        self._state = PursuerState(speed_kmh=preset.min_slug_speed_kmh)
        self._player: GeoPoint | None = None
        self._player_speed_kmh = 0.0

    @property
    def preset(self) -> ChasePreset:
        return self._preset

    @property
    def state(self) -> ChaseState:
        return self._state.state

    @property
    def position(self) -> GeoPoint | None:
        return self._state.position

    @property
    def speed_kmh(self) -> float:
        return self._state.speed_kmh

    @property
    def separation_m(self) -> float:
        return self._state.separation_m

    @property
    def player_position(self) -> GeoPoint | None:
        return self._player

    def set_player_speed(self, speed_kmh: float) -> None:
        """Latest smoothed player speed; used from the next tick on."""

        if self._state.state is ChaseState.CAPTURED:
            return
        self._player_speed_kmh = max(0.0, speed_kmh)

    def update_player(self, position: GeoPoint | None) -> None:
        """Latest player position, None when the signal is lost.

        The first known position spawns the slug.
        """

        if self._state.state is ChaseState.CAPTURED:
            return
        self._player = position
        if position is not None and self._state.state is ChaseState.UNINITIALIZED:
            self._spawn(position)

    def _spawn(self, player: GeoPoint) -> None:
        p = self._preset
        bearing = p.spawn_bearing_deg if p.spawn_bearing_deg is not None else self._rng.uniform(0.0, 360.0)
        st = self._state
        st.position = destination(player, p.spawn_distance_m, bearing)
        st.separation_m = distance_between(st.position, player)
        st.state = ChaseState.ACTIVE
        logger.info("蛞蝓出现：距离 %.1f m，方位 %.0f°", st.separation_m, bearing)

    def tick(self) -> None:
        """Advance one tick. No-op before spawn, after capture, or while the player is lost."""

        st = self._state
        pursuer = st.position
        if st.state is not ChaseState.ACTIVE or self._player is None or pursuer is None:
            return
        p = self._preset

        st.speed_kmh = pursuer_speed_kmh(p, self._player_speed_kmh)

        separation = distance_between(pursuer, self._player)
        st.separation_m = separation
        if separation < p.capture_radius_m:
            st.state = ChaseState.CAPTURED
            logger.info("被蛞蝓抓到了！距离 %.2f m", separation)
            self._events.emit(CAPTURED)
            return

        # Never step past the player.
        step_m = min(st.speed_kmh * KMH_TO_MPS * p.tick_seconds, separation)
        bearing = bearing_between(pursuer, self._player)
        st.position = destination(pursuer, step_m, bearing)
        st.separation_m = distance_between(st.position, self._player)
        self._events.emit(SEPARATION_UPDATED, st.separation_m)
