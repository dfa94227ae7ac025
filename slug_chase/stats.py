"""Lifetime run statistics kept in a small JSON file.

The simulation core never touches this store; the shells record a finished
session's outcome here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from datetime import date
from pathlib import Path
from typing import Any

from slug_chase.models import SessionOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunStats:
    """Totals over all recorded runs."""

    total_distance_m: float = 0.0
    total_runs: int = 0
    longest_run_m: float = 0.0
    total_coins: int = 0
    last_run_date: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RunStats:
        return cls(
            total_distance_m=float(raw.get("total_distance_m", 0.0) or 0.0),
            total_runs=int(raw.get("total_runs", 0) or 0),
            longest_run_m=float(raw.get("longest_run_m", 0.0) or 0.0),
            total_coins=int(raw.get("total_coins", 0) or 0),
            last_run_date=raw.get("last_run_date") or None,
        )


class JsonStatsStore:
    """RunStats persisted on disk as one JSON object."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._stats = RunStats()
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load stats from disk (no-op if already loaded or the file does not exist)."""

        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        text = self._path.read_text(encoding="utf-8").strip()
        if not text:
            return
        try:
            raw = json.loads(text)
            if not isinstance(raw, dict):
                raise ValueError("stats file is not a JSON object")
            self._stats = RunStats.from_dict(raw)
        except (json.JSONDecodeError, ValueError, TypeError):
            # Stats file corrupted: keep a backup and start fresh
            backup = self._path.with_suffix(self._path.suffix + ".broken")
            backup.write_text(text, encoding="utf-8")
            logger.warning("统计文件损坏，已备份到 %s", backup)
            self._stats = RunStats()

    def get(self) -> RunStats:
        self.load()
        return self._stats

    def record(self, outcome: SessionOutcome, run_date: date) -> RunStats:
        """Fold one finished run into the totals (call flush() to persist)."""

        self.load()
        s = self._stats
        self._stats = replace(
            s,
            total_distance_m=s.total_distance_m + outcome.distance_traveled_m,
            total_runs=s.total_runs + 1,
            longest_run_m=max(s.longest_run_m, outcome.distance_traveled_m),
            total_coins=s.total_coins + outcome.coins_earned,
            last_run_date=run_date.isoformat(),
        )
        return self._stats

    def flush(self) -> None:
        """Persist stats to disk (atomic-ish)."""

        self.load()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(self._stats), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)
