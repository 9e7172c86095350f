import asyncio
import logging
from typing import Awaitable, Callable, Tuple

import psycopg

logger = logging.getLogger(__name__)

MigrationTask = Tuple[str, str, Callable[[psycopg.AsyncCursor], Awaitable[None]]]


async def _dedupe_scores(cursor: psycopg.AsyncCursor) -> None:
    await cursor.execute(
        """
        delete from scores s
        using (
            select
                id,
                row_number() over (
                    partition by team_id, hole_number, tournament_type
                    order by created_at desc, id desc
                ) as rank
            from scores
        ) ranked
        where s.id = ranked.id
          and ranked.rank > 1;
        """
    )
    if cursor.rowcount:
        logger.info("Removed %s duplicate score rows", cursor.rowcount)
    await cursor.execute(
        """
        create unique index if not exists scores_team_hole_tournament_idx
        on scores (team_id, hole_number, tournament_type);
        """
    )


async def _index_scores_by_tournament(cursor: psycopg.AsyncCursor) -> None:
    await cursor.execute(
        """
        create index if not exists scores_tournament_team_hole_idx
        on scores (tournament_type, team_id, hole_number);
        """
    )


async def _ensure_migrations_table(cursor: psycopg.AsyncCursor) -> None:
    await cursor.execute(
        """
        create table if not exists schema_migrations (
            id text primary key,
            description text not null,
            applied_at timestamptz not null default now()
        );
        """
    )


MIGRATIONS: list[MigrationTask] = [
    (
        "20250301_scores_unique_triple",
        "Collapse duplicate score rows so each team/hole/tournament has one entry",
        _dedupe_scores,
    ),
    (
        "20250302_scores_tournament_index",
        "Index scores for leaderboard reads",
        _index_scores_by_tournament,
    ),
]


async def apply_migrations(database_url: str) -> list[str]:
    applied: list[str] = []
    async with await psycopg.AsyncConnection.connect(database_url) as connection:
        async with connection.cursor() as cursor:
            await _ensure_migrations_table(cursor)
        await connection.commit()
        for migration_id, description, task in MIGRATIONS:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    "select 1 from schema_migrations where id = %s;",
                    (migration_id,),
                )
                if await cursor.fetchone():
                    continue
                await task(cursor)
                await cursor.execute(
                    """
                    insert into schema_migrations (id, description)
                    values (%s, %s);
                    """,
                    (migration_id, description),
                )
            await connection.commit()
            logger.info("Applied migration %s", migration_id)
            applied.append(migration_id)
    return applied


if __name__ == "__main__":
    from scramble.settings import load_settings

    asyncio.run(apply_migrations(load_settings().database_url))
