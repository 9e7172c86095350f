#!/usr/bin/env python3
"""Delete every recorded score for a tournament."""

import argparse
import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scramble.db import delete_scores, fetch_tournaments
from scramble.settings import TOURNAMENT_TYPES, load_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Clear the scores recorded for a tournament.")
    parser.add_argument("--type", dest="tournament_type", choices=TOURNAMENT_TYPES)
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available tournaments from the database.",
    )
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Required to actually delete scores.",
    )
    args = parser.parse_args()
    settings = load_settings()

    if args.list:
        tournaments = asyncio.run(fetch_tournaments(settings.database_url))
        if not tournaments:
            print("No tournaments found.")
            return
        print("Tournaments:")
        for entry in tournaments:
            print(f"  {entry.type}: {entry.name}")
        return

    if not args.tournament_type:
        parser.error("--type is required")
    if not args.confirm:
        parser.error("This command deletes scores. Re-run with --confirm to proceed.")

    deleted = asyncio.run(delete_scores(settings.database_url, args.tournament_type))
    print(f"Cleared {deleted} score{'s' if deleted != 1 else ''} for {args.tournament_type}.")


if __name__ == "__main__":
    main()
