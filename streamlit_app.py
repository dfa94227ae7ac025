from __future__ import annotations

import random
from dataclasses import replace
from pathlib import Path
from typing import Any, MutableMapping

import streamlit as st

from slug_chase.config import DEFAULT_PRESET, PRESETS, FilterParams
from slug_chase.csv_io import load_position_fixes
from slug_chase.models import DEFAULT_TZ, STATUS_LABELS, MapFrame, PositionFix, TimelineRow
from slug_chase.runner import ReplayResult, replay_track
from slug_chase.stats import JsonStatsStore
from slug_chase.timeutils import dt_from_epoch_ms, format_hhmmss


@st.cache_data(show_spinner=False)
def _load_fixes(path_csv: str, mtime: float) -> list[PositionFix]:
    _ = mtime  # part of cache key so updated files reload automatically
    fixes, _summary = load_position_fixes(path_csv)
    return fixes


def _stored_result(state: MutableMapping[str, Any], key: tuple[object, ...]) -> ReplayResult | None:
    """Last replay, or None once the CSV file, its contents or the timezone changed."""

    if state.get("result_key") != key:
        state.pop("result", None)
        state.pop("result_key", None)
    return state.get("result")


def _map_points(frame: MapFrame, rows: list[TimelineRow]) -> list[dict[str, object]]:
    """Flatten a frame plus the slug's path into rows for st.map."""

    points: list[dict[str, object]] = []
    for route in frame.past_routes:
        for p in route:
            points.append({"lat": p.latitude, "lon": p.longitude, "color": "#1f77b4", "size": 2.0})
    for r in rows:
        if r.pursuer_position is not None:
            points.append(
                {"lat": r.pursuer_position.latitude, "lon": r.pursuer_position.longitude, "color": "#2ca02c", "size": 1.0}
            )
    if frame.player_position is not None:
        points.append(
            {"lat": frame.player_position.latitude, "lon": frame.player_position.longitude, "color": "#d62728", "size": 8.0}
        )
    if frame.pursuer_position is not None:
        points.append(
            {"lat": frame.pursuer_position.latitude, "lon": frame.pursuer_position.longitude, "color": "#8c564b", "size": 8.0}
        )
    return points


def main() -> None:
    st.set_page_config(page_title="蛞蝓追逐：轨迹回放", layout="wide")
    st.title("蛞蝓追逐：用录制的轨迹回放一次追逐")

    with st.sidebar:
        st.subheader("数据与时区")
        tz_name = st.text_input("时区（IANA）", value=DEFAULT_TZ)
        path_csv = st.text_input("Path.csv 路径", value="Path.csv")

        st.subheader("追逐规则")
        preset_name = st.selectbox("预设", options=sorted(PRESETS), index=sorted(PRESETS).index(DEFAULT_PRESET))
        preset = PRESETS[preset_name]
        spawn_distance_m = st.number_input("出现距离 spawn_distance_m（米）", value=preset.spawn_distance_m, step=10.0)
        capture_radius_m = st.number_input("抓捕半径 capture_radius_m（米）", value=preset.capture_radius_m, step=1.0)
        seed = st.number_input("随机种子（出现方位）", value=42, step=1)
        tail_seconds = st.number_input("轨迹结束后原地等待（秒）", value=0.0, step=30.0)

        with st.expander("定位过滤（通常不用改）", expanded=False):
            variant = st.radio("过滤器", options=["anchor", "window"], horizontal=True)
            min_movement_m = st.number_input("min_movement_m（默认 5m）", value=5.0, step=1.0)
            max_speed_mps = st.number_input("max_speed_mps（默认 8.5）", value=8.5, step=0.5)

        stats_path = st.text_input("统计文件（可选）", value="")
        run = st.button("开始回放", type="primary", use_container_width=True)

    p = Path(path_csv)
    if not p.exists():
        st.error(f"找不到文件：{path_csv!r}。可以先运行 scripts/generate_sample_path_csv.py 生成示例轨迹。")
        return

    mtime = p.stat().st_mtime
    try:
        fixes = _load_fixes(path_csv, mtime)
    except Exception as exc:
        st.exception(exc)
        return
    if not fixes:
        st.warning("CSV 中没有可用的定位点。")
        return

    result_key = (path_csv, mtime, tz_name)
    if not run and _stored_result(st.session_state, result_key) is None:
        st.info(f"已读取 {len(fixes)} 个定位点，点击左侧“开始回放”。")
        return

    if run:
        chase_preset = replace(preset, spawn_distance_m=float(spawn_distance_m), capture_radius_m=float(capture_radius_m))
        params = FilterParams(variant=variant, min_movement_m=float(min_movement_m), max_speed_mps=float(max_speed_mps))
        with st.spinner("正在回放 ..."):
            st.session_state["result"] = replay_track(
                fixes,
                chase_preset,
                params,
                rng=random.Random(int(seed)),
                tail_seconds=float(tail_seconds),
            )
        st.session_state["result_key"] = result_key
        if stats_path:
            store = JsonStatsStore(stats_path)
            store.record(st.session_state["result"].outcome, dt_from_epoch_ms(fixes[0].time_ms, tz_name).date())
            store.flush()
            st.success(f"已记录到：{stats_path}")

    result: ReplayResult = st.session_state["result"]
    outcome = result.outcome

    st.subheader("汇总")
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("结果", "被抓到" if outcome.captured else "逃脱")
    c2.metric("金币", str(outcome.coins_earned))
    c3.metric("有效距离", f"{outcome.distance_traveled_m:.0f} m")
    c4.metric("时长", format_hhmmss(outcome.duration_seconds))
    last_status = result.rows[-1].status if result.rows else None
    c5.metric("状态", STATUS_LABELS[last_status] if last_status is not None else "-")
    if result.capture_tick is not None:
        st.caption(f"第 {result.capture_tick} 个 tick 被抓到。")

    st.subheader("地图（蓝：玩家路线，绿：蛞蝓路径，红：玩家，棕：蛞蝓）")
    st.map(_map_points(result.map_frame, result.rows), color="color", size="size")

    st.subheader("与蛞蝓的距离（米）")
    st.line_chart({"separation_m": [r.separation_m for r in result.rows]})

    with st.expander("逐 tick 明细", expanded=False):
        table = [
            {
                "tick": r.tick,
                "time": dt_from_epoch_ms(r.time_ms, tz_name).isoformat(sep=" "),
                "state": r.state.value,
                "player_kmh": round(r.player_speed_kmh, 2),
                "slug_kmh": round(r.pursuer_speed_kmh, 2),
                "separation_m": round(r.separation_m, 2),
                "coins": r.coins,
                "distance_m": round(r.distance_m, 1),
                "status": STATUS_LABELS[r.status] if r.status is not None else "",
            }
            for r in result.rows
        ]
        st.dataframe(table, use_container_width=True, height=420)


if __name__ == "__main__":
    main()
