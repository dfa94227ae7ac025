"""Data models for positions, pursuit state and session results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Final


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 position in decimal degrees (longitude first, as map libraries expect)."""

    longitude: float
    latitude: float


@dataclass(frozen=True, slots=True)
class PositionFix:
    """A single sample delivered by the location source.

    Attributes:
        time_ms: Unix epoch milliseconds.
        longitude: Longitude in decimal degrees.
        latitude: Latitude in decimal degrees.
        accuracy_m: Horizontal accuracy in meters. -1.0 when unknown.
    """

    time_ms: int
    longitude: float
    latitude: float
    accuracy_m: float = -1.0

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(longitude=self.longitude, latitude=self.latitude)


@dataclass(slots=True)
class PlayerTrack:
    """Mutable filter state. Only validated deltas ever reach cumulative_distance_m."""

    last_accepted_position: GeoPoint | None = None
    last_accepted_time_ms: int = 0
    cumulative_distance_m: float = 0.0
    cumulative_moving_time_s: float = 0.0
    smoothed_speed_kmh: float = 0.0


class ChaseState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CAPTURED = "captured"


class ChaseStatus(str, Enum):
    """What the player should hear right now: proximity first, then pace."""

    CAUGHT = "caught"
    DANGER = "danger"
    TOO_CLOSE = "too_close"
    STANDING_STILL = "standing_still"
    TOO_SLOW = "too_slow"
    TOO_FAST = "too_fast"
    PERFECT_PACE = "perfect_pace"


STATUS_LABELS: Final[dict[ChaseStatus, str]] = {
    ChaseStatus.CAUGHT: "被抓到了！游戏结束",
    ChaseStatus.DANGER: "危险！快跑！",
    ChaseStatus.TOO_CLOSE: "太近了！加速！",
    ChaseStatus.STANDING_STILL: "原地不动，蛞蝓正在靠近",
    ChaseStatus.TOO_SLOW: "太慢了！蛞蝓在追上来",
    ChaseStatus.TOO_FAST: "太快了！蛞蝓也在加速",
    ChaseStatus.PERFECT_PACE: "节奏正好",
}


@dataclass(slots=True)
class PursuerState:
    """Mutable pursuit state. position stays None until the player is first located."""

    speed_kmh: float
    position: GeoPoint | None = None
    separation_m: float = 0.0
    state: ChaseState = ChaseState.UNINITIALIZED


@dataclass(frozen=True, slots=True)
class SessionOutcome:
    """Result of one chase. Read-only once captured is True."""

    coins_earned: int
    distance_traveled_m: float
    captured: bool
    duration_seconds: float = 0.0


@dataclass(frozen=True, slots=True)
class ChaseSnapshot:
    """Read-only view of a session for display."""

    state: ChaseState
    player_position: GeoPoint | None
    pursuer_position: GeoPoint | None
    player_speed_kmh: float
    pursuer_speed_kmh: float
    separation_m: float
    coins: int
    distance_m: float
    status: ChaseStatus | None = None


@dataclass(frozen=True, slots=True)
class MapFrame:
    """Everything a map renderer needs to draw one frame."""

    player_position: GeoPoint | None
    pursuer_position: GeoPoint | None
    past_routes: tuple[tuple[GeoPoint, ...], ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class TimelineRow:
    """One simulated tick, as exported by replay."""

    tick: int
    time_ms: int
    state: ChaseState
    player_position: GeoPoint | None
    pursuer_position: GeoPoint | None
    player_speed_kmh: float
    pursuer_speed_kmh: float
    separation_m: float
    coins: int
    distance_m: float
    status: ChaseStatus | None = None


DEFAULT_TZ: Final[str] = "Asia/Shanghai"
