"""Synthetic player tracks for demos and tests."""

from __future__ import annotations

import random

from slug_chase.geo import destination_latlon
from slug_chase.models import PositionFix


def synthetic_track(
    *,
    start_lat: float,
    start_lon: float,
    start_ms: int,
    seconds: int,
    speed_kmh: float = 0.0,
    bearing_deg: float = 90.0,
    interval_s: float = 1.0,
    jitter_m: float = 0.0,
    jump_probability: float = 0.0,
    dropout_probability: float = 0.0,
    seed: int = 42,
) -> list[PositionFix]:
    """Generate fixes of a player moving in a straight line.

    Args:
        start_lat: Start latitude.
        start_lon: Start longitude.
        start_ms: Epoch ms of the first fix.
        seconds: Track duration.
        speed_kmh: True player speed (0 for standing still).
        bearing_deg: Direction of travel.
        interval_s: Time between fixes.
        jitter_m: Max random offset added to each reported position.
        jump_probability: Chance that a fix is reported 50-300 m off.
        dropout_probability: Chance that a fix is missing entirely.
        seed: Random seed (reproducible).

    Returns:
        Fixes sorted by time.
    """

    rng = random.Random(seed)
    speed_mps = speed_kmh / 3.6
    out: list[PositionFix] = []
    steps = int(seconds / interval_s)
    for i in range(steps + 1):
        t_s = i * interval_s
        if i > 0 and rng.random() < dropout_probability:
            continue
        lat, lon = destination_latlon(start_lat, start_lon, speed_mps * t_s, bearing_deg)
        if jitter_m > 0:
            lat, lon = destination_latlon(lat, lon, rng.uniform(0.0, jitter_m), rng.uniform(0.0, 360.0))
        accuracy = rng.choice([3.0, 5.0, 8.0, 12.0])
        if i > 0 and rng.random() < jump_probability:
            lat, lon = destination_latlon(lat, lon, rng.uniform(50.0, 300.0), rng.uniform(0.0, 360.0))
            accuracy = rng.choice([35.0, 65.0, 120.0])
        out.append(
            PositionFix(
                time_ms=start_ms + int(round(t_s * 1000)),
                longitude=lon,
                latitude=lat,
                accuracy_m=accuracy,
            )
        )
    return out
