from __future__ import annotations

import argparse
import csv
from datetime import datetime
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo

from slug_chase.models import PositionFix
from slug_chase.synthetic import synthetic_track


TZ: Final[str] = "Asia/Shanghai"


def _rows(fixes: list[PositionFix], speed_kmh: float) -> list[dict[str, str]]:
    """Render fixes in the Path.csv export layout."""

    out: list[dict[str, str]] = []
    for fix in fixes:
        out.append(
            {
                "geoTime": str(fix.time_ms),
                "latitude": f"{fix.latitude:.7f}",
                "longitude": f"{fix.longitude:.7f}",
                "altitude": "0.0",
                "horizontalAccuracy": f"{fix.accuracy_m:.1f}",
                "speed": f"{speed_kmh / 3.6:.2f}",
                "locationType": "1",
            }
        )
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake jogging Path.csv for replay (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/Path.csv", help="Output CSV path")
    p.add_argument("--seconds", type=int, default=900, help="Track duration in seconds")
    p.add_argument("--speed-kmh", type=float, default=8.0, help="Jogging speed")
    p.add_argument("--jitter-m", type=float, default=2.0, help="Random position noise in meters")
    p.add_argument("--jump-probability", type=float, default=0.02, help="Chance of a GPS jump per fix")
    p.add_argument("--dropout-probability", type=float, default=0.03, help="Chance of a missing fix")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 08:00:00",
        help="Start local time in Asia/Shanghai, e.g. '2025-01-01 08:00:00'",
    )
    args = p.parse_args()

    start_local = datetime.fromisoformat(args.start).replace(tzinfo=ZoneInfo(TZ))
    fixes = synthetic_track(
        start_lat=31.2304000,
        start_lon=121.4737000,
        start_ms=int(start_local.timestamp() * 1000),
        seconds=args.seconds,
        speed_kmh=args.speed_kmh,
        jitter_m=args.jitter_m,
        jump_probability=args.jump_probability,
        dropout_probability=args.dropout_probability,
        seed=args.seed,
    )

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = ["geoTime", "latitude", "longitude", "altitude", "horizontalAccuracy", "speed", "locationType"]
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        w.writerows(_rows(fixes, args.speed_kmh))

    print(f"Generated: {out_path} (rows={len(fixes)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
