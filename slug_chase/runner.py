"""Drivers that feed a ChaseSession: deterministic replay and live asyncio loop."""

from __future__ import annotations

import asyncio
import csv
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Sequence

from slug_chase.config import ChasePreset, FilterParams
from slug_chase.models import GeoPoint, MapFrame, PositionFix, SessionOutcome, TimelineRow
from slug_chase.session import ChaseSession
from slug_chase.timeutils import dt_from_epoch_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReplayResult:
    """Everything a replay produced."""

    outcome: SessionOutcome
    rows: list[TimelineRow]
    map_frame: MapFrame
    capture_tick: int | None
    fixes_used: int


def _row(session: ChaseSession, tick: int, time_ms: int) -> TimelineRow:
    snap = session.snapshot()
    return TimelineRow(
        tick=tick,
        time_ms=time_ms,
        state=snap.state,
        player_position=snap.player_position,
        pursuer_position=snap.pursuer_position,
        player_speed_kmh=snap.player_speed_kmh,
        pursuer_speed_kmh=snap.pursuer_speed_kmh,
        separation_m=snap.separation_m,
        coins=snap.coins,
        distance_m=snap.distance_m,
        status=snap.status,
    )


def replay_track(
    fixes: Sequence[PositionFix],
    preset: ChasePreset,
    filter_params: FilterParams | None = None,
    *,
    rng: random.Random | None = None,
    tail_seconds: float = 0.0,
    signal_timeout_seconds: float | None = None,
    session: ChaseSession | None = None,
) -> ReplayResult:
    """Run a chase over a recorded track on a virtual clock.

    Tick k happens at ``first_fix + k * tick``; before each tick every fix with a
    timestamp at or before the tick time is delivered. After the last fix the player
    stays where they were for ``tail_seconds``.

    Args:
        fixes: Recorded fixes (can be unsorted).
        preset: Chase rules.
        filter_params: Position filter parameters.
        rng: Random source for the spawn bearing.
        tail_seconds: Extra simulated time after the last fix.
        signal_timeout_seconds: If set, a gap between fixes longer than this is
            reported to the session as signal loss until the next fix arrives.
        session: Pre-built session (e.g. with listeners attached).

    Returns:
        ReplayResult.
    """

    if session is None:
        session = ChaseSession(preset, filter_params, rng=rng)
    pts = sorted(fixes, key=lambda f: f.time_ms)
    if not pts:
        return ReplayResult(session.outcome(), [], session.map_frame(), None, 0)

    tick_ms = max(1, int(round(preset.tick_seconds * 1000)))
    timeout_ms = None if signal_timeout_seconds is None else int(signal_timeout_seconds * 1000)
    start_ms = pts[0].time_ms
    end_ms = pts[-1].time_ms + int(tail_seconds * 1000)

    rows: list[TimelineRow] = []
    capture_tick: int | None = None
    idx = 0
    last_fix_ms = start_ms
    lost = False

    def _deliver_until(t_ms: int) -> None:
        nonlocal idx, last_fix_ms, lost
        while idx < len(pts) and pts[idx].time_ms <= t_ms:
            fix = pts[idx]
            session.on_fix(fix.point, fix.time_ms)
            last_fix_ms = fix.time_ms
            lost = False
            idx += 1

    _deliver_until(start_ms)
    tick = 0
    while True:
        tick += 1
        t_ms = start_ms + tick * tick_ms
        if t_ms > end_ms:
            break
        _deliver_until(t_ms)
        if timeout_ms is not None and not lost and idx < len(pts) and t_ms - last_fix_ms > timeout_ms:
            session.on_fix(None, t_ms)
            lost = True
        session.tick(time_ms=t_ms)
        rows.append(_row(session, tick, t_ms))
        if session.captured:
            capture_tick = tick
            break

    return ReplayResult(
        outcome=session.outcome(),
        rows=rows,
        map_frame=session.map_frame(),
        capture_tick=capture_tick,
        fixes_used=idx,
    )


def _fmt_point(point: GeoPoint | None) -> tuple[str, str]:
    if point is None:
        return "", ""
    return f"{point.latitude:.7f}", f"{point.longitude:.7f}"


def write_timeline_csv(rows: Sequence[TimelineRow], out_path: str | Path, tz_name: str) -> None:
    """Write per-tick replay rows to CSV."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "tick",
                "time_local",
                "epoch_ms",
                "state",
                "player_lat",
                "player_lon",
                "slug_lat",
                "slug_lon",
                "player_speed_kmh",
                "slug_speed_kmh",
                "separation_m",
                "coins",
                "distance_m",
                "status",
            ],
        )
        w.writeheader()
        for r in rows:
            player_lat, player_lon = _fmt_point(r.player_position)
            slug_lat, slug_lon = _fmt_point(r.pursuer_position)
            w.writerow(
                {
                    "tick": r.tick,
                    "time_local": dt_from_epoch_ms(r.time_ms, tz_name).isoformat(sep=" "),
                    "epoch_ms": r.time_ms,
                    "state": r.state.value,
                    "player_lat": player_lat,
                    "player_lon": player_lon,
                    "slug_lat": slug_lat,
                    "slug_lon": slug_lon,
                    "player_speed_kmh": f"{r.player_speed_kmh:.2f}",
                    "slug_speed_kmh": f"{r.pursuer_speed_kmh:.2f}",
                    "separation_m": f"{r.separation_m:.2f}",
                    "coins": r.coins,
                    "distance_m": f"{r.distance_m:.1f}",
                    "status": r.status.value if r.status is not None else "",
                }
            )


async def run_live(
    session: ChaseSession,
    source: AsyncIterator[PositionFix | None],
    *,
    time_scale: float = 1.0,
) -> SessionOutcome:
    """Drive a session from an async location source and a fixed-rate ticker.

    Both coroutines run on one event loop, so fixes and ticks never interleave
    mid-update. Tick k is due at ``start + k * tick_seconds / time_scale``; a tick
    that runs late by whole periods skips the missed ticks instead of replaying
    them in a burst.

    Returns when the slug catches the player or the session is stopped. If the
    source ends (permission revoked, hardware gone) the player is treated as lost
    and the slug holds position until the caller stops the session.

    Raises:
        ValueError: If time_scale is not positive, or the source goes back in time.
    """

    if time_scale <= 0:
        raise ValueError("time_scale 必须为正数")
    generation = session.generation
    period = session.preset.tick_seconds / time_scale

    def _current() -> bool:
        return session.running and session.generation == generation

    async def _consume() -> None:
        last_ms: int | None = None
        async for fix in source:
            if not _current():
                return
            if fix is None:
                # Nothing to lose before the first fix.
                if last_ms is not None:
                    session.on_fix(None, last_ms, generation)
                continue
            last_ms = fix.time_ms
            session.on_fix(fix.point, fix.time_ms, generation)
        if _current() and last_ms is not None:
            logger.warning("定位源已结束，蛞蝓原地等待")
            session.on_fix(None, last_ms, generation)

    consumer = asyncio.create_task(_consume())
    loop = asyncio.get_running_loop()
    started = loop.time()
    k = 1
    try:
        while _current():
            if consumer.done() and not consumer.cancelled() and consumer.exception() is not None:
                raise consumer.exception()
            deadline = started + k * period
            delay = deadline - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            lag = loop.time() - deadline
            if lag >= period:
                skipped = int(lag // period)
                logger.warning("tick 延迟 %.3fs，跳过 %s 个 tick", lag, skipped)
                k += skipped
            session.tick(generation)
            k += 1
    finally:
        consumer.cancel()
        try:
            await consumer
        except asyncio.CancelledError:
            pass
    return session.outcome()
