#!/usr/bin/env python3
"""Create both scramble tournaments with a par-72 layout and a handful of demo teams."""

import argparse
import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scramble.db import ensure_schema
from scramble.seed import DEFAULT_MULLIGANS, seed_demo
from scramble.settings import load_settings


async def _run(database_url: str, mulligans: int) -> dict[str, int]:
    await ensure_schema(database_url)
    return await seed_demo(database_url, default_mulligans=mulligans)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo tournaments, teams and players.")
    parser.add_argument(
        "--mulligans",
        type=int,
        default=DEFAULT_MULLIGANS,
        help="Mulligans granted to each player (default: %(default)s).",
    )
    args = parser.parse_args()
    if args.mulligans < 0:
        parser.error("--mulligans cannot be negative")

    created = asyncio.run(_run(load_settings().database_url, args.mulligans))
    for tournament_type, count in created.items():
        print(f"{tournament_type}: created {count} team{'s' if count != 1 else ''}")


if __name__ == "__main__":
    main()
