"""Position filtering: raw fixes -> validated distance and smoothed player speed.

Two failure modes of consumer GPS dominate: sudden jumps to a far-away position and
a few meters of wandering while the device lies still. Both filters reject jumps with
a maximum plausible speed and jitter with a minimum movement floor; only what survives
is added to the player's distance.
"""

from __future__ import annotations

import logging
from collections import deque

from slug_chase.config import FilterParams
from slug_chase.events import DISTANCE_ACCRUED, SPEED_UPDATED, EventHub
from slug_chase.geo import distance_between
from slug_chase.models import GeoPoint, PlayerTrack

logger = logging.getLogger(__name__)

MPS_TO_KMH = 3.6


class PositionFilter:
    """Anchor-based filter.

    Each fix is compared with the last accepted one (the anchor), at most once per
    ``min_interval_ms``. Rejected fixes keep the anchor position but move its time
    forward, so the next comparison measures speed over the latest interval only.
    """

    def __init__(self, params: FilterParams | None = None, events: EventHub | None = None) -> None:
        self._params = params or FilterParams()
        self._events = events or EventHub()
        self._track = PlayerTrack()
        self._last_seen_ms: int | None = None

    @property
    def params(self) -> FilterParams:
        return self._params

    @property
    def distance_m(self) -> float:
        return self._track.cumulative_distance_m

    @property
    def moving_time_s(self) -> float:
        return self._track.cumulative_moving_time_s

    @property
    def speed_kmh(self) -> float:
        return self._track.smoothed_speed_kmh

    @property
    def last_position(self) -> GeoPoint | None:
        return self._track.last_accepted_position

    def reset(self) -> None:
        """Forget everything (explicit game restart)."""

        self._track = PlayerTrack()
        self._last_seen_ms = None

    def observe(self, position: GeoPoint | None, time_ms: int) -> float | None:
        """Feed one fix.

        Args:
            position: New position, or None while the signal is lost.
            time_ms: Epoch milliseconds, non-decreasing across calls.

        Returns:
            Accepted displacement in meters, or None if nothing was accepted.

        Raises:
            ValueError: If time_ms goes backwards.
        """

        if self._last_seen_ms is not None and time_ms < self._last_seen_ms:
            raise ValueError(f"时间戳倒退：{time_ms} < {self._last_seen_ms}")
        self._last_seen_ms = time_ms

        if position is None:
            # Signal loss: the next fix starts a fresh anchor, no distance across the gap.
            self._drop_anchor()
            return None

        anchor = self._track.last_accepted_position
        if anchor is None:
            self._set_anchor(position, time_ms)
            return None
        return self._observe_position(anchor, position, time_ms)

    def _observe_position(self, anchor: GeoPoint, position: GeoPoint, time_ms: int) -> float | None:
        tr = self._track
        p = self._params

        elapsed_ms = time_ms - tr.last_accepted_time_ms
        if elapsed_ms < p.min_interval_ms or elapsed_ms <= 0:
            return None
        elapsed_s = elapsed_ms / 1000.0

        moved_m = distance_between(anchor, position)
        speed_mps = moved_m / elapsed_s

        if speed_mps > p.max_speed_mps:
            logger.debug("丢弃GPS跳点：%.1f m/s > %.1f m/s", speed_mps, p.max_speed_mps)
            tr.last_accepted_time_ms = time_ms
            return None
        if moved_m < p.min_movement_m:
            logger.debug("丢弃静止抖动：%.2f m < %.1f m", moved_m, p.min_movement_m)
            tr.last_accepted_time_ms = time_ms
            return None

        return self._accept(position, time_ms, moved_m, elapsed_s)

    def _accept(self, position: GeoPoint, time_ms: int, moved_m: float, elapsed_s: float) -> float:
        tr = self._track
        tr.cumulative_distance_m += moved_m
        if moved_m / elapsed_s > self._params.resting_speed_mps:
            tr.cumulative_moving_time_s += elapsed_s
        if tr.cumulative_moving_time_s > 0:
            tr.smoothed_speed_kmh = tr.cumulative_distance_m / tr.cumulative_moving_time_s * MPS_TO_KMH
        self._set_anchor(position, time_ms)

        self._events.emit(DISTANCE_ACCRUED, moved_m)
        self._events.emit(SPEED_UPDATED, tr.smoothed_speed_kmh)
        return moved_m

    def _set_anchor(self, position: GeoPoint, time_ms: int) -> None:
        self._track.last_accepted_position = position
        self._track.last_accepted_time_ms = time_ms

    def _drop_anchor(self) -> None:
        self._track.last_accepted_position = None


class WindowedPositionFilter(PositionFilter):
    """Filter that judges speed over a short sliding window of raw fixes.

    Every fix is considered (no minimum interval). The speed test uses the oldest and
    newest fix inside the last ``window_ms``; the movement floor is measured from the
    last accepted position, whose time is left untouched by rejections so slow walking
    still adds up once it clears the floor.
    """

    def __init__(self, params: FilterParams | None = None, events: EventHub | None = None) -> None:
        super().__init__(params, events)
        self._window: deque[tuple[GeoPoint, int]] = deque()

    def reset(self) -> None:
        super().reset()
        self._window.clear()

    def _set_anchor(self, position: GeoPoint, time_ms: int) -> None:
        super()._set_anchor(position, time_ms)
        self._window.clear()
        self._window.append((position, time_ms))

    def _drop_anchor(self) -> None:
        super()._drop_anchor()
        self._window.clear()

    def _window_speed(self, position: GeoPoint, time_ms: int) -> float | None:
        """Speed between the oldest windowed fix and the new one (None if no earlier fix)."""

        horizon = time_ms - self._params.window_ms
        while self._window and self._window[0][1] < horizon:
            self._window.popleft()
        if not self._window:
            return None
        oldest, oldest_ms = self._window[0]
        if oldest_ms >= time_ms:
            return None
        return distance_between(oldest, position) / ((time_ms - oldest_ms) / 1000.0)

    def _observe_position(self, anchor: GeoPoint, position: GeoPoint, time_ms: int) -> float | None:
        tr = self._track
        p = self._params

        elapsed_ms = time_ms - tr.last_accepted_time_ms
        if elapsed_ms <= 0:
            return None
        elapsed_s = elapsed_ms / 1000.0
        moved_m = distance_between(anchor, position)
        step_speed = moved_m / elapsed_s

        window_speed = self._window_speed(position, time_ms)
        speed_mps = step_speed if window_speed is None else max(window_speed, step_speed)
        if speed_mps > p.max_speed_mps:
            logger.debug("丢弃GPS跳点：%.1f m/s > %.1f m/s", speed_mps, p.max_speed_mps)
            return None

        self._window.append((position, time_ms))
        if moved_m < p.min_movement_m:
            return None

        return self._accept(position, time_ms, moved_m, elapsed_s)


def make_filter(params: FilterParams | None = None, events: EventHub | None = None) -> PositionFilter:
    """Build the filter variant selected by params.variant."""

    params = params or FilterParams()
    if params.variant == "window":
        return WindowedPositionFilter(params, events)
    if params.variant == "anchor":
        return PositionFilter(params, events)
    raise ValueError(f"未知过滤器类型：{params.variant!r}")
