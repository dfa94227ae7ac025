"""Time helpers: timezones, run clock formatting and fix sampling statistics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Sequence

from zoneinfo import ZoneInfo

from slug_chase.models import PositionFix


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create tzinfo from an IANA timezone name.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：Asia/Shanghai") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str) -> datetime:
    """Convert epoch milliseconds to a timezone-aware datetime in tz_name."""

    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tzinfo_from_name(tz_name))


def parse_dt(text: str, tz_name: str) -> datetime:
    """Parse "YYYY-MM-DD HH:MM:SS" (optionally with offset); naive input is taken as tz_name.

    Raises:
        ValueError: If cannot parse.
    """

    s = text.strip().replace("T", " ")
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as exc:
        raise ValueError(f"无法解析时间：{text!r}。建议格式：2025-12-18 09:30:00") from exc
    tz = tzinfo_from_name(tz_name)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def format_hhmmss(seconds: float) -> str:
    s = int(round(max(0.0, seconds)))
    return f"{s // 3600:02d}:{(s % 3600) // 60:02d}:{s % 60:02d}"


@dataclass(frozen=True, slots=True)
class SamplingStats:
    """Interval statistics of a fix stream (seconds)."""

    count: int
    min_s: float
    median_s: float
    max_s: float
    gaps_over_threshold: int


def sampling_stats(fixes: Sequence[PositionFix], gap_threshold_s: float = 10.0) -> SamplingStats | None:
    """Summarize how regularly fixes arrived.

    Args:
        fixes: Fixes sorted by time.
        gap_threshold_s: Intervals longer than this are counted as dropouts.

    Returns:
        SamplingStats or None if less than 2 fixes.
    """

    deltas = sorted(
        (fixes[i].time_ms - fixes[i - 1].time_ms) / 1000.0
        for i in range(1, len(fixes))
        if fixes[i].time_ms >= fixes[i - 1].time_ms
    )
    if not deltas:
        return None
    n = len(deltas)
    median = deltas[n // 2] if n % 2 == 1 else 0.5 * (deltas[n // 2 - 1] + deltas[n // 2])
    return SamplingStats(
        count=n,
        min_s=deltas[0],
        median_s=median,
        max_s=deltas[-1],
        gaps_over_threshold=sum(1 for d in deltas if d > gap_threshold_s),
    )
