"""Reading recorded tracks (the Path.csv export format) as position fixes."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Sequence

from slug_chase.models import PositionFix

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("geoTime", "latitude", "longitude")


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _fix_from_row(row: Mapping[str, str]) -> PositionFix:
    return PositionFix(
        time_ms=int(row["geoTime"].strip()),
        latitude=float(row["latitude"].strip()),
        longitude=float(row["longitude"].strip()),
        accuracy_m=float((row.get("horizontalAccuracy") or "-1").strip()),
    )


def _check_fields(fieldnames: Sequence[str] | None) -> None:
    missing = [name for name in REQUIRED_FIELDS if name not in (fieldnames or ())]
    if missing:
        raise KeyError(f"CSV缺少必要字段：{missing}. 实际字段：{list(fieldnames or ())}")


def iter_position_fixes(csv_path: str | Path) -> Iterator[PositionFix]:
    """Yield fixes from a track CSV, silently skipping broken rows.

    Columns used:
      - geoTime: epoch milliseconds
      - latitude/longitude: decimal degrees
      - horizontalAccuracy: meters (optional)

    Raises:
        KeyError: If a required column is missing.
    """

    p = Path(csv_path)
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            return
        _check_fields(reader.fieldnames)
        for row in reader:
            try:
                yield _fix_from_row(row)
            except (ValueError, TypeError, AttributeError):
                # 某些行可能损坏/空行，直接跳过
                continue


def load_position_fixes(csv_path: str | Path) -> tuple[list[PositionFix], CsvSummary]:
    """Load all fixes into memory, sorted by time.

    Returns:
        (fixes, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[PositionFix] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        if fieldnames:
            _check_fields(fieldnames)
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_fix_from_row(row))
            except (ValueError, TypeError, AttributeError):
                continue

    parsed.sort(key=lambda fix: fix.time_ms)
    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("CSV中有 %s 行解析失败已跳过", summary.rows_skipped)
    return parsed, summary
