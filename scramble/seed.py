import logging
from dataclasses import dataclass

from scramble import db
from scramble.formatters import tournament_display_name
from scramble.settings import TOURNAMENT_TYPES, team_size

logger = logging.getLogger(__name__)

DEFAULT_MULLIGANS = 3
# Par 72: 36 out, 36 in.
DEFAULT_PARS = (4, 4, 3, 5, 4, 4, 3, 4, 5, 4, 3, 4, 5, 4, 4, 3, 4, 5)


@dataclass(frozen=True)
class TeamSeed:
    name: str
    handicap: int
    players: tuple[str, ...]


DEMO_TEAMS: dict[str, list[TeamSeed]] = {
    "2-man": [
        TeamSeed("Team Alpha", 5, ("John Smith", "Jane Doe")),
        TeamSeed("Team Beta", 7, ("Mike Johnson", "Sarah Williams")),
        TeamSeed("Team Gamma", 4, ("Chris Lee", "Pat Morgan")),
    ],
    "4-man": [
        TeamSeed("Fairway Four", 8, ("Alex Hart", "Sam Reed", "Jordan Blake", "Casey Quinn")),
        TeamSeed("Sand Savers", 10, ("Riley Shaw", "Drew Ellis", "Taylor Nash", "Morgan Price")),
    ],
}


def default_course_pars() -> dict[str, int]:
    return {str(hole): par for hole, par in enumerate(DEFAULT_PARS, 1)}


def validate_team_seed(tournament_type: str, seed: TeamSeed) -> None:
    expected = team_size(tournament_type)
    if len(seed.players) != expected:
        raise ValueError(
            f"{seed.name} has {len(seed.players)} players; a {tournament_type} team needs {expected}"
        )


async def seed_demo(
    database_url: str,
    teams: dict[str, list[TeamSeed]] | None = None,
    default_mulligans: int = DEFAULT_MULLIGANS,
) -> dict[str, int]:
    """Create both tournaments and any demo teams not already present.

    Returns the number of teams created per tournament type.
    """
    roster = teams if teams is not None else DEMO_TEAMS
    created: dict[str, int] = {}
    for tournament_type in TOURNAMENT_TYPES:
        await db.upsert_tournament(
            database_url,
            tournament_type,
            name=tournament_display_name(tournament_type),
            default_mulligans=default_mulligans,
            course_pars=default_course_pars(),
        )
        existing = {team.name for team in await db.fetch_teams(database_url, tournament_type)}
        created[tournament_type] = 0
        for seed in roster.get(tournament_type, []):
            validate_team_seed(tournament_type, seed)
            if seed.name in existing:
                logger.info("Team '%s' already exists, skipping.", seed.name)
                continue
            team_id = await db.insert_team(database_url, seed.name, tournament_type, seed.handicap)
            for player_name in seed.players:
                player_id = await db.insert_player(database_url, player_name)
                await db.add_team_player(database_url, team_id, player_id)
            created[tournament_type] += 1
            logger.info("Created team '%s' in %s", seed.name, tournament_type)
    return created
