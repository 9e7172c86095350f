#!/usr/bin/env python3
"""Dump a tournament's leaderboard as JSON."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scramble.leaderboard import get_leaderboard
from scramble.settings import TOURNAMENT_TYPES, load_settings


def export_snapshot(database_url: str, tournament_type: str) -> dict:
    leaderboard = asyncio.run(get_leaderboard(database_url, tournament_type))
    return {
        "tournament": leaderboard.tournament.to_dict() if leaderboard.tournament else None,
        "leaderboard": [standing.to_dict() for standing in leaderboard.standings],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the current leaderboard.")
    parser.add_argument(
        "--type",
        "-t",
        dest="tournament_type",
        choices=TOURNAMENT_TYPES,
        required=True,
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Path to write the JSON export (defaults to stdout).",
    )
    args = parser.parse_args()

    snapshot = export_snapshot(load_settings().database_url, args.tournament_type)
    if snapshot["tournament"] is None:
        raise SystemExit(f"No leaderboard available for {args.tournament_type}.")
    payload = json.dumps(snapshot, default=str, indent=2)

    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Leaderboard saved to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
