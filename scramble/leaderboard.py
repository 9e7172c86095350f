import asyncio
import logging
from typing import Iterable, Optional

import psycopg

from scramble import db
from scramble.formatters import meets_minimum_drives, minimum_drives_for
from scramble.models import (
    DriveCount,
    Leaderboard,
    MulliganCount,
    Player,
    Score,
    Team,
    TeamStanding,
    Tournament,
)

logger = logging.getLogger(__name__)


def count_drives(scores: Iterable[Score], roster: list[Player]) -> list[DriveCount]:
    counts: dict[str, DriveCount] = {
        player.id: DriveCount(id=player.id, name=player.name) for player in roster
    }
    for score in scores:
        entry = counts.get(score.drive_player_id)
        if entry is None:
            # Driver no longer on the roster; keep the drive visible.
            entry = counts[score.drive_player_id] = DriveCount(
                id=score.drive_player_id, name=score.drive_player_id
            )
        entry.count += 1
    return list(counts.values())


def count_mulligans(
    scores: Iterable[Score], roster: list[Player], default_mulligans: int
) -> list[MulliganCount]:
    counts: dict[str, MulliganCount] = {
        player.id: MulliganCount(id=player.id, name=player.name, remaining=default_mulligans)
        for player in roster
    }
    for score in scores:
        entry = counts.get(score.mulligan_player_id) if score.mulligan_player_id else None
        if entry is None:
            continue
        entry.used += 1
        entry.remaining -= 1
    return list(counts.values())


def relative_to_par(scores: Iterable[Score], tournament: Tournament) -> int:
    total = 0
    for score in scores:
        par = tournament.par_for(score.hole_number)
        if par:
            total += score.strokes - par
    return total


def build_team_standing(
    team: Team, scores: list[Score], roster: list[Player], tournament: Tournament
) -> TeamStanding:
    team_scores = sorted(scores, key=lambda score: score.hole_number)
    gross = relative_to_par(team_scores, tournament)
    mulligan_counts = count_mulligans(team_scores, roster, tournament.default_mulligans)
    return TeamStanding(
        team=team,
        total_strokes=sum(score.strokes for score in team_scores),
        relative_to_par=gross,
        net_relative_to_par=gross - team.handicap,
        holes_completed=len({score.hole_number for score in team_scores}),
        total_remaining_mulligans=sum(entry.remaining for entry in mulligan_counts),
        drive_counts=count_drives(team_scores, roster),
        mulligan_counts=mulligan_counts,
        scores=team_scores,
    )


def _assign_positions(standings: list[TeamStanding]) -> None:
    """Competition ranking (1, 2, 2, 4); teams level on net and gross share a spot."""
    previous_key = None
    position = 0
    for index, standing in enumerate(standings):
        key = (standing.net_relative_to_par, standing.relative_to_par)
        if key != previous_key:
            position = index + 1
        standing.position = position
        previous_key = key

    by_position: dict[int, int] = {}
    for standing in standings:
        by_position[standing.position] = by_position.get(standing.position, 0) + 1
    for standing in standings:
        standing.tied = by_position[standing.position] > 1


def build_leaderboard(
    tournament: Tournament,
    teams: list[Team],
    scores: list[Score],
    rosters: dict[str, list[Player]],
) -> list[TeamStanding]:
    scores_by_team: dict[str, list[Score]] = {}
    for score in scores:
        if score.tournament_type != tournament.type:
            continue
        scores_by_team.setdefault(score.team_id, []).append(score)

    standings = [
        build_team_standing(
            team,
            scores_by_team.get(team.id, []),
            rosters.get(team.id, []),
            tournament,
        )
        for team in teams
    ]
    standings.sort(
        key=lambda item: (
            item.net_relative_to_par,
            item.relative_to_par,
            item.team.name,
        )
    )
    _assign_positions(standings)
    return standings


async def get_leaderboard(database_url: str, tournament_type: str) -> Leaderboard:
    try:
        tournament, teams, scores, rosters = await asyncio.gather(
            db.fetch_tournament(database_url, tournament_type),
            db.fetch_teams(database_url, tournament_type),
            db.fetch_scores(database_url, tournament_type),
            db.fetch_rosters(database_url, tournament_type),
        )
    except psycopg.Error:
        logger.exception("Error generating leaderboard for %s", tournament_type)
        return Leaderboard(tournament=None)

    if tournament is None:
        logger.error("Tournament not found: %s", tournament_type)
        return Leaderboard(tournament=None)

    return Leaderboard(
        tournament=tournament,
        standings=build_leaderboard(tournament, teams, scores, rosters),
    )


async def get_team_summary(database_url: str, team_id: str) -> Optional[dict]:
    team = await db.fetch_team(database_url, team_id)
    if team is None:
        return None

    tournament, roster, scores = await asyncio.gather(
        db.fetch_tournament(database_url, team.tournament_type),
        db.fetch_team_players(database_url, team_id),
        db.fetch_team_scores(database_url, team_id),
    )
    if tournament is None:
        logger.error("Team %s references missing tournament %s", team_id, team.tournament_type)
        return None

    team_scores = [score for score in scores if score.tournament_type == tournament.type]
    standing = build_team_standing(team, team_scores, roster, tournament)
    minimum = minimum_drives_for(tournament.type)
    return {
        "standing": standing,
        "minimum_drives": minimum,
        "meets_minimum_drives": meets_minimum_drives(standing.drive_counts, minimum),
    }
