"""Module entry point: python -m slug_chase ..."""

from __future__ import annotations

from slug_chase.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
