from collections import Counter
from typing import Iterable, Optional

import psycopg
from psycopg.types.json import Jsonb

from scramble.models import Player, Score, ScoreInput, Team, Tournament

SCHEMA_STATEMENTS = [
    """
    create table if not exists tournaments (
        type text primary key,
        name text not null,
        default_mulligans integer not null default 0,
        course_pars jsonb not null default '{}'::jsonb
    );
    """,
    """
    create table if not exists players (
        id text primary key default gen_random_uuid()::text,
        name text not null
    );
    """,
    """
    create table if not exists teams (
        id text primary key default gen_random_uuid()::text,
        name text not null,
        handicap integer not null default 0,
        tournament_type text not null references tournaments (type)
    );
    """,
    """
    create table if not exists team_players (
        id text primary key default gen_random_uuid()::text,
        team_id text not null references teams (id) on delete cascade,
        player_id text not null references players (id) on delete cascade,
        unique (team_id, player_id)
    );
    """,
    """
    create table if not exists scores (
        id text primary key default gen_random_uuid()::text,
        team_id text not null references teams (id) on delete cascade,
        hole_number integer not null check (hole_number between 1 and 18),
        strokes integer not null check (strokes > 0),
        drive_player_id text not null references players (id),
        mulligan_player_id text references players (id),
        tournament_type text not null references tournaments (type),
        created_at timestamptz not null default now(),
        constraint scores_team_hole_tournament_key
            unique (team_id, hole_number, tournament_type)
    );
    """,
]

SCORE_COLUMNS = """
    id,
    team_id,
    hole_number,
    strokes,
    drive_player_id,
    mulligan_player_id,
    tournament_type,
    created_at
"""

UPSERT_SCORE_SQL = """
    insert into scores (
        team_id,
        hole_number,
        strokes,
        drive_player_id,
        mulligan_player_id,
        tournament_type,
        created_at
    )
    values (%s, %s, %s, %s, %s, %s, now())
    on conflict (team_id, hole_number, tournament_type) do update
        set strokes = excluded.strokes,
            drive_player_id = excluded.drive_player_id,
            mulligan_player_id = excluded.mulligan_player_id,
            created_at = excluded.created_at
    returning id;
"""

MULLIGAN_USAGE_SQL = """
    select mulligan_player_id, count(*)
    from scores
    where team_id = %s
      and tournament_type = %s
      and mulligan_player_id is not null
      and hole_number <> all(%s)
    group by mulligan_player_id;
"""


class MulliganLimitReached(Exception):
    def __init__(self, player_id: str):
        super().__init__(f"Mulligan player {player_id} has no mulligans remaining")
        self.player_id = player_id


async def ensure_schema(database_url: str) -> None:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                await cur.execute(statement)


def _row_to_tournament(row: tuple) -> Tournament:
    pars = row[3] or {}
    return Tournament(
        type=row[0],
        name=row[1],
        default_mulligans=row[2] or 0,
        course_pars={str(hole): int(par) for hole, par in pars.items()},
    )


def _row_to_team(row: tuple) -> Team:
    return Team(id=row[0], name=row[1], handicap=row[2] or 0, tournament_type=row[3])


def _row_to_score(row: tuple) -> Score:
    return Score(
        id=row[0],
        team_id=row[1],
        hole_number=row[2],
        strokes=row[3],
        drive_player_id=row[4],
        mulligan_player_id=row[5],
        tournament_type=row[6],
        created_at=row[7],
    )


def _score_params(entry: ScoreInput) -> tuple:
    return (
        entry.team_id,
        entry.hole_number,
        entry.strokes,
        entry.drive_player_id,
        entry.mulligan_player_id,
        entry.tournament_type,
    )


async def fetch_tournament(database_url: str, tournament_type: str) -> Optional[Tournament]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                select type, name, default_mulligans, course_pars
                from tournaments
                where type = %s;
                """,
                (tournament_type,),
            )
            row = await cur.fetchone()
            return _row_to_tournament(row) if row else None


async def fetch_tournaments(database_url: str) -> list[Tournament]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                select type, name, default_mulligans, course_pars
                from tournaments
                order by type;
                """
            )
            rows = await cur.fetchall()
            return [_row_to_tournament(row) for row in rows]


async def upsert_tournament(
    database_url: str,
    tournament_type: str,
    name: str,
    default_mulligans: int,
    course_pars: dict[str, int],
) -> None:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                insert into tournaments (type, name, default_mulligans, course_pars)
                values (%s, %s, %s, %s)
                on conflict (type) do update
                    set name = excluded.name,
                        default_mulligans = excluded.default_mulligans,
                        course_pars = excluded.course_pars;
                """,
                (tournament_type, name, default_mulligans, Jsonb(course_pars)),
            )


async def update_course_pars(
    database_url: str, tournament_type: str, course_pars: dict[str, int]
) -> bool:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                update tournaments
                set course_pars = %s
                where type = %s;
                """,
                (Jsonb(course_pars), tournament_type),
            )
            return cur.rowcount > 0


async def fetch_teams(database_url: str, tournament_type: str) -> list[Team]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                select id, name, handicap, tournament_type
                from teams
                where tournament_type = %s
                order by name;
                """,
                (tournament_type,),
            )
            rows = await cur.fetchall()
            return [_row_to_team(row) for row in rows]


async def fetch_team(database_url: str, team_id: str) -> Optional[Team]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                select id, name, handicap, tournament_type
                from teams
                where id = %s;
                """,
                (team_id,),
            )
            row = await cur.fetchone()
            return _row_to_team(row) if row else None


async def insert_team(
    database_url: str, name: str, tournament_type: str, handicap: int = 0
) -> str:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                insert into teams (name, handicap, tournament_type)
                values (%s, %s, %s)
                returning id;
                """,
                (name, handicap, tournament_type),
            )
            row = await cur.fetchone()
            return row[0]


async def insert_player(database_url: str, name: str) -> str:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "insert into players (name) values (%s) returning id;",
                (name,),
            )
            row = await cur.fetchone()
            return row[0]


async def add_team_player(database_url: str, team_id: str, player_id: str) -> None:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                insert into team_players (team_id, player_id)
                values (%s, %s)
                on conflict (team_id, player_id) do nothing;
                """,
                (team_id, player_id),
            )


async def fetch_team_players(database_url: str, team_id: str) -> list[Player]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                select p.id, p.name
                from team_players tp
                join players p on p.id = tp.player_id
                where tp.team_id = %s
                order by p.name;
                """,
                (team_id,),
            )
            rows = await cur.fetchall()
            return [Player(id=row[0], name=row[1]) for row in rows]


async def fetch_team_player_ids(database_url: str, team_id: str) -> set[str]:
    players = await fetch_team_players(database_url, team_id)
    return {player.id for player in players}


async def fetch_rosters(database_url: str, tournament_type: str) -> dict[str, list[Player]]:
    """Return every team's players in one query, keyed by team id."""
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                select tp.team_id, p.id, p.name
                from team_players tp
                join teams t on t.id = tp.team_id
                join players p on p.id = tp.player_id
                where t.tournament_type = %s
                order by tp.team_id, p.name;
                """,
                (tournament_type,),
            )
            rows = await cur.fetchall()
    rosters: dict[str, list[Player]] = {}
    for team_id, player_id, name in rows:
        rosters.setdefault(team_id, []).append(Player(id=player_id, name=name))
    return rosters


async def fetch_scores(database_url: str, tournament_type: str) -> list[Score]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                select {SCORE_COLUMNS}
                from scores
                where tournament_type = %s
                order by team_id, hole_number;
                """,
                (tournament_type,),
            )
            rows = await cur.fetchall()
            return [_row_to_score(row) for row in rows]


async def fetch_team_scores(database_url: str, team_id: str) -> list[Score]:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                select {SCORE_COLUMNS}
                from scores
                where team_id = %s
                order by hole_number;
                """,
                (team_id,),
            )
            rows = await cur.fetchall()
            return [_row_to_score(row) for row in rows]


async def _guard_mulligans(
    cur: psycopg.AsyncCursor, entries: list[ScoreInput], allowance: int
) -> None:
    """Take the team's write lock, then recount mulligans on the holes not being replaced."""
    team_id = entries[0].team_id
    await cur.execute("select pg_advisory_xact_lock(hashtext(%s));", (team_id,))
    final_entries = {entry.hole_number: entry for entry in entries}
    requested = [
        entry.mulligan_player_id
        for entry in final_entries.values()
        if entry.mulligan_player_id
    ]
    if not requested:
        return
    await cur.execute(
        MULLIGAN_USAGE_SQL,
        (team_id, entries[0].tournament_type, list(final_entries)),
    )
    used = Counter({player_id: count for player_id, count in await cur.fetchall()})
    used.update(requested)
    for player_id in requested:
        if used[player_id] > allowance:
            raise MulliganLimitReached(player_id)


async def upsert_score(
    database_url: str, entry: ScoreInput, mulligan_allowance: Optional[int] = None
) -> str:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                if mulligan_allowance is not None:
                    await _guard_mulligans(cur, [entry], mulligan_allowance)
                await cur.execute(UPSERT_SCORE_SQL, _score_params(entry))
                row = await cur.fetchone()
    return row[0]


async def upsert_scores(
    database_url: str,
    entries: Iterable[ScoreInput],
    mulligan_allowance: Optional[int] = None,
) -> list[str]:
    """Upsert a batch inside a single transaction; nothing is kept if any row fails."""
    entries = list(entries)
    ids: list[str] = []
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                if mulligan_allowance is not None and entries:
                    await _guard_mulligans(cur, entries, mulligan_allowance)
                for entry in entries:
                    await cur.execute(UPSERT_SCORE_SQL, _score_params(entry))
                    row = await cur.fetchone()
                    ids.append(row[0])
    return ids


async def delete_scores(database_url: str, tournament_type: str) -> int:
    async with await psycopg.AsyncConnection.connect(database_url) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "delete from scores where tournament_type = %s;",
                (tournament_type,),
            )
            return cur.rowcount
