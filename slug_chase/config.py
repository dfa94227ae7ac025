"""Tunable parameters and the named chase presets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

SpeedRule = Literal["adaptive", "constant"]
FilterVariant = Literal["anchor", "window"]


@dataclass(frozen=True, slots=True)
class FilterParams:
    """Parameters controlling the position filter."""

    variant: FilterVariant = "anchor"
    # Anchor variant only: samples closer than this to the last accepted one are ignored.
    min_interval_ms: int = 1000
    # Faster than any sprinter; anything above is a location jump.
    max_speed_mps: float = 8.5
    # Jitter floor while standing still.
    min_movement_m: float = 5.0
    # ~1 km/h. Intervals slower than this do not count as moving time.
    resting_speed_mps: float = 0.28
    # Window variant only: raw samples kept for the speed test.
    window_ms: int = 1000


@dataclass(frozen=True, slots=True)
class ChasePreset:
    """Rules of one chase variant.

    Attributes:
        name: Preset name used by the CLI and dashboard.
        spawn_distance_m: Distance from the player at which the slug appears.
        capture_radius_m: Separation below which the player is caught.
        min_slug_speed_kmh: Speed floor (and the fixed speed for the constant rule).
        speed_rule: "adaptive" follows the player, "constant" never changes.
        adaptive_threshold_kmh: Player speed above which the adaptive rule kicks in.
        adaptive_ratio: Fraction of player speed used above the threshold.
        spawn_bearing_deg: Fixed spawn bearing; None means random.
        tick_seconds: Length of one pursuit tick.
        danger_distance_m: Separation below which the status is "danger".
        warning_distance_m: Separation below which the status is "too close".
        slow_pace_kmh: Player speed below which the status is "too slow".
        fast_pace_kmh: Player speed above which the status is "too fast".
    """

    name: str
    spawn_distance_m: float = 200.0
    capture_radius_m: float = 3.0
    min_slug_speed_kmh: float = 4.5
    speed_rule: SpeedRule = "adaptive"
    adaptive_threshold_kmh: float = 6.0
    adaptive_ratio: float = 0.75
    spawn_bearing_deg: float | None = None
    tick_seconds: float = 1.0
    danger_distance_m: float = 20.0
    warning_distance_m: float = 50.0
    slow_pace_kmh: float = 4.0
    fast_pace_kmh: float = 10.0


PRESETS: Final[dict[str, ChasePreset]] = {
    "classic": ChasePreset(name="classic"),
    "relaxed": ChasePreset(name="relaxed", capture_radius_m=10.0),
    "constant": ChasePreset(name="constant", speed_rule="constant"),
    "test": ChasePreset(name="test", spawn_distance_m=20.0, spawn_bearing_deg=0.0),
}

DEFAULT_PRESET: Final[str] = "classic"


def get_preset(name: str) -> ChasePreset:
    """Look up a preset by name.

    Raises:
        ValueError: If no preset has that name.
    """

    try:
        return PRESETS[name]
    except KeyError as exc:
        raise ValueError(f"未知预设：{name!r}。可用：{', '.join(sorted(PRESETS))}") from exc
