#!/usr/bin/env python3
"""Ensure the scoring schema and migrations are applied, then echo the DDL for reference."""

import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scramble.db import SCHEMA_STATEMENTS, ensure_schema
from scramble.migrations import apply_migrations
from scramble.settings import load_settings


async def _run(database_url: str) -> list[str]:
    await ensure_schema(database_url)
    return await apply_migrations(database_url)


def main() -> None:
    settings = load_settings()
    applied = asyncio.run(_run(settings.database_url))
    print("Schema ensured.")
    print(f"Migrations applied this run: {', '.join(applied) if applied else 'none'}")

    print("\nSchema DDL dump:")
    for statement in SCHEMA_STATEMENTS:
        print(statement.strip())


if __name__ == "__main__":
    main()
