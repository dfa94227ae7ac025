"""Command-line interface for slug_chase.

Run:
    python -m slug_chase replay --csv Path.csv
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import random
import sys
from dataclasses import asdict
from datetime import datetime
from typing import AsyncIterator, Sequence

from slug_chase.config import DEFAULT_PRESET, PRESETS, FilterParams, get_preset
from slug_chase.csv_io import iter_position_fixes, load_position_fixes
from slug_chase.events import COINS_AWARDED, SEPARATION_UPDATED
from slug_chase.models import DEFAULT_TZ, STATUS_LABELS, PositionFix, SessionOutcome
from slug_chase.runner import ReplayResult, replay_track, run_live, write_timeline_csv
from slug_chase.session import ChaseSession
from slug_chase.stats import JsonStatsStore
from slug_chase.synthetic import synthetic_track
from slug_chase.timeutils import dt_from_epoch_ms, format_hhmmss, parse_dt, sampling_stats, tzinfo_from_name
from slug_chase.upload import StravaConfig, UploadError, activity_from_outcome, upload_activity


def _filter_params(args: argparse.Namespace) -> FilterParams:
    return FilterParams(
        variant=args.filter,
        min_movement_m=args.min_movement_m,
        max_speed_mps=args.max_speed_mps,
    )


def _print_outcome(outcome: SessionOutcome) -> None:
    print("### 结果")
    print(
        f"captured={outcome.captured}, coins={outcome.coins_earned}, "
        f"distance={outcome.distance_traveled_m:.1f}m, duration={format_hhmmss(outcome.duration_seconds)}"
    )


def _finish_run(args: argparse.Namespace, outcome: SessionOutcome, started_at: datetime) -> None:
    """Shell-side bookkeeping after a session: stats file and optional upload."""

    if args.stats:
        store = JsonStatsStore(args.stats)
        totals = store.record(outcome, started_at.date())
        store.flush()
        print(f"已记录到：{args.stats}（总次数={totals.total_runs}，总距离={totals.total_distance_m:.1f}m）")

    if args.upload:
        token = args.strava_token or os.environ.get("STRAVA_ACCESS_TOKEN", "")
        record = activity_from_outcome(outcome, started_at)
        try:
            created = upload_activity(record, StravaConfig(access_token=token))
        except UploadError as exc:
            # 上传失败不影响本次结果
            print(f"Strava 上传失败：{exc}", file=sys.stderr)
        else:
            print(f"已上传 Strava：id={created.get('id')}")


def _report_replay(args: argparse.Namespace, fixes: Sequence[PositionFix], result: ReplayResult) -> None:
    stats = sampling_stats(fixes)
    if stats is not None:
        print("### 采样间隔（秒）")
        print(
            f"count={stats.count}, min={stats.min_s:.3f}, median={stats.median_s:.3f}, "
            f"max={stats.max_s:.3f}, gaps>10s={stats.gaps_over_threshold}"
        )
        print()

    _print_outcome(result.outcome)
    if result.capture_tick is not None:
        print(f"capture_tick={result.capture_tick}")
    else:
        last = result.rows[-1] if result.rows else None
        if last is not None:
            print(f"未被抓到，最终距离={last.separation_m:.1f}m")
    print()

    if args.out:
        write_timeline_csv(result.rows, args.out, args.tz)
        print(f"已导出：{args.out}")

    if args.json:
        print(json.dumps(asdict(result.outcome) | {"capture_tick": result.capture_tick}, ensure_ascii=False, indent=2))


def _cmd_replay(args: argparse.Namespace) -> int:
    fixes, summary = load_position_fixes(args.csv)
    print("### 行数")
    print(f"total_rows={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")
    print()
    if not fixes:
        print("没有可用的定位点", file=sys.stderr)
        return 1

    preset = get_preset(args.preset)
    result = replay_track(
        fixes,
        preset,
        _filter_params(args),
        rng=random.Random(args.seed),
        tail_seconds=args.tail_seconds,
        signal_timeout_seconds=args.signal_timeout_seconds,
    )
    _report_replay(args, fixes, result)
    _finish_run(args, result.outcome, dt_from_epoch_ms(fixes[0].time_ms, args.tz))
    return 0


def _cmd_simulate(args: argparse.Namespace) -> int:
    started_at = parse_dt(args.start, args.tz) if args.start else datetime.now(tzinfo_from_name(args.tz))
    fixes = synthetic_track(
        start_lat=args.lat,
        start_lon=args.lon,
        start_ms=int(started_at.timestamp() * 1000),
        seconds=args.seconds,
        speed_kmh=args.speed_kmh,
        bearing_deg=args.bearing,
        jitter_m=args.jitter_m,
        jump_probability=args.jump_probability,
        seed=args.seed,
    )
    result = replay_track(
        fixes,
        get_preset(args.preset),
        _filter_params(args),
        rng=random.Random(args.seed),
        tail_seconds=args.tail_seconds,
    )
    _report_replay(args, fixes, result)
    _finish_run(args, result.outcome, started_at)
    return 0


async def _paced(fixes: Sequence[PositionFix], speedup: float) -> AsyncIterator[PositionFix]:
    prev_ms: int | None = None
    for fix in fixes:
        if prev_ms is not None:
            await asyncio.sleep(max(0.0, (fix.time_ms - prev_ms) / 1000.0 / speedup))
        prev_ms = fix.time_ms
        yield fix


def _cmd_play(args: argparse.Namespace) -> int:
    fixes = sorted(iter_position_fixes(args.csv), key=lambda f: f.time_ms)
    if not fixes:
        print("没有可用的定位点", file=sys.stderr)
        return 1

    session = ChaseSession(get_preset(args.preset), _filter_params(args), rng=random.Random(args.seed))

    def _progress(separation_m: float) -> None:
        status = session.snapshot().status
        label = STATUS_LABELS[status] if status is not None else "-"
        print(
            f"\r距离蛞蝓：{separation_m:7.1f}m  金币：{session.ledger.coins}  {label}",
            end="",
            file=sys.stderr,
            flush=True,
        )

    session.events.subscribe(SEPARATION_UPDATED, _progress)
    session.events.subscribe(COINS_AWARDED, lambda n: print(f"\n+{n} 金币", file=sys.stderr, flush=True))

    async def _main() -> SessionOutcome:
        live = asyncio.create_task(run_live(session, _paced(fixes, args.speedup), time_scale=args.speedup))
        if args.max_seconds is not None:
            await asyncio.wait({live}, timeout=args.max_seconds)
            if not live.done():
                session.stop()
        return await live

    try:
        outcome = asyncio.run(_main())
    except KeyboardInterrupt:
        print("\n收到中断信号：停止追逐。", file=sys.stderr, flush=True)
        session.stop()
        outcome = session.outcome()
    print(file=sys.stderr)
    _print_outcome(outcome)
    _finish_run(args, outcome, dt_from_epoch_ms(fixes[0].time_ms, args.tz))
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    stats = JsonStatsStore(args.stats).get()
    print(f"总次数={stats.total_runs}")
    print(f"总距离={stats.total_distance_m / 1000.0:.2f}km")
    print(f"最长一次={stats.longest_run_m / 1000.0:.2f}km")
    print(f"总金币={stats.total_coins}")
    print(f"上次={stats.last_run_date or '-'}")
    return 0


def _add_chase_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--preset", type=str, default=DEFAULT_PRESET, choices=sorted(PRESETS), help="追逐规则预设")
    p.add_argument("--filter", type=str, default="anchor", choices=["anchor", "window"], help="定位过滤器类型")
    p.add_argument("--min-movement-m", type=float, default=5.0, help="小于该位移视为静止抖动（米）")
    p.add_argument("--max-speed-mps", type=float, default=8.5, help="超过该速度视为GPS跳点（米/秒）")
    p.add_argument("--seed", type=int, default=None, help="随机种子（决定蛞蝓出现方位）")
    p.add_argument("--tz", type=str, default=DEFAULT_TZ, help="时区（IANA）")
    p.add_argument("--stats", type=str, default=None, help="记录到该统计文件（JSON）")
    p.add_argument("--upload", action="store_true", help="结束后上传到 Strava")
    p.add_argument("--strava-token", type=str, default=None, help="Strava access token（默认读 STRAVA_ACCESS_TOKEN）")


def _add_report_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--tail-seconds", type=float, default=0.0, help="轨迹结束后玩家原地不动继续模拟的秒数")
    p.add_argument("--out", type=str, default=None, help="导出逐 tick 时间线 CSV")
    p.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="slug_chase")
    p.add_argument("--log-level", type=str, default="WARNING", help="日志级别（DEBUG/INFO/WARNING）")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_rep = sub.add_parser("replay", help="用录制的轨迹 CSV 回放一次追逐")
    p_rep.add_argument("--csv", type=str, default="Path.csv", help="输入CSV路径")
    p_rep.add_argument(
        "--signal-timeout-seconds",
        type=float,
        default=None,
        help="两次定位间隔超过该秒数视为信号丢失（蛞蝓原地等待）",
    )
    _add_chase_args(p_rep)
    _add_report_args(p_rep)
    p_rep.set_defaults(func=_cmd_replay)

    p_sim = sub.add_parser("simulate", help="用合成轨迹模拟一次追逐（无需CSV）")
    p_sim.add_argument("--lat", type=float, default=31.2304, help="起点纬度")
    p_sim.add_argument("--lon", type=float, default=121.4737, help="起点经度")
    p_sim.add_argument("--seconds", type=int, default=600, help="轨迹时长（秒）")
    p_sim.add_argument("--speed-kmh", type=float, default=0.0, help="玩家速度（0 表示原地不动）")
    p_sim.add_argument("--bearing", type=float, default=90.0, help="玩家前进方位（度）")
    p_sim.add_argument("--jitter-m", type=float, default=0.0, help="定位随机抖动（米）")
    p_sim.add_argument("--jump-probability", type=float, default=0.0, help="每个点发生跳点的概率")
    p_sim.add_argument("--start", type=str, default=None, help="开始时间，例如 2025-01-01 08:00:00")
    _add_chase_args(p_sim)
    _add_report_args(p_sim)
    p_sim.set_defaults(func=_cmd_simulate)

    p_play = sub.add_parser("play", help="按时间节奏实时播放轨迹 CSV（异步实时模式）")
    p_play.add_argument("--csv", type=str, default="Path.csv", help="输入CSV路径")
    p_play.add_argument("--speedup", type=float, default=1.0, help="播放倍速")
    p_play.add_argument("--max-seconds", type=float, default=None, help="最长运行秒数（实际时间）")
    _add_chase_args(p_play)
    p_play.set_defaults(func=_cmd_play)

    p_st = sub.add_parser("stats", help="查看累计统计")
    p_st.add_argument("--stats", type=str, default="slug_stats.json", help="统计文件路径")
    p_st.set_defaults(func=_cmd_stats)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
