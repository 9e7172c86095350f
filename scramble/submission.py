import asyncio
import logging
from collections import Counter
from typing import Optional, Sequence

import psycopg
from psycopg import errors

from scramble import db
from scramble.models import Score, ScoreInput, SubmissionResult
from scramble.settings import HOLE_COUNT

logger = logging.getLogger(__name__)

MULLIGAN_PERMISSION_WARNING = (
    "Mulligan could not be saved due to permissions. Score saved without mulligan."
)
BATCH_MULLIGAN_PERMISSION_WARNING = (
    "Mulligans could not be saved due to permissions. Scores saved without mulligans."
)


def validate_entry(entry: ScoreInput) -> Optional[str]:
    if not 1 <= entry.hole_number <= HOLE_COUNT:
        return f"Invalid hole number: {entry.hole_number}"
    if entry.strokes <= 0:
        return f"Invalid strokes for hole {entry.hole_number}: {entry.strokes}"
    return None


def exhausted_mulligan_player(
    existing: Sequence[Score],
    entries: Sequence[ScoreInput],
    allowance: int,
) -> Optional[str]:
    """Return the first player whose mulligans in ``entries`` exceed the allowance.

    Rows for holes being re-submitted are ignored, since the upsert replaces them.
    """
    if not entries:
        return None
    tournament_type = entries[0].tournament_type
    # Later entries for the same hole win, matching the upsert order.
    final_entries = {entry.hole_number: entry for entry in entries}
    used = Counter(
        score.mulligan_player_id
        for score in existing
        if score.mulligan_player_id
        and score.tournament_type == tournament_type
        and score.hole_number not in final_entries
    )
    requested: list[str] = []
    for entry in final_entries.values():
        if entry.mulligan_player_id:
            used[entry.mulligan_player_id] += 1
            requested.append(entry.mulligan_player_id)
    for player_id in requested:
        if used[player_id] > allowance:
            return player_id
    return None


async def _upsert_single(
    database_url: str, entry: ScoreInput, mulligan_allowance: int
) -> SubmissionResult:
    try:
        score_id = await db.upsert_score(database_url, entry, mulligan_allowance)
    except db.MulliganLimitReached as exc:
        logger.info("Refused mulligan for team %s hole %s: %s", entry.team_id, entry.hole_number, exc)
        return SubmissionResult.fail("Mulligan player has no mulligans remaining")
    except errors.InsufficientPrivilege as exc:
        if not entry.mulligan_player_id:
            logger.error("Error submitting score: %s", exc)
            return SubmissionResult.fail(str(exc))
        logger.warning(
            "Permission denied saving mulligan for team %s hole %s, retrying without it: %s",
            entry.team_id,
            entry.hole_number,
            exc,
        )
        try:
            score_id = await db.upsert_score(database_url, entry.without_mulligan())
        except psycopg.Error as retry_exc:
            logger.error("Retry without mulligan failed: %s", retry_exc)
            return SubmissionResult.fail(str(exc))
        return SubmissionResult(
            success=True,
            data={"id": score_id},
            warning=MULLIGAN_PERMISSION_WARNING,
            degraded=True,
        )
    except psycopg.Error as exc:
        logger.error("Error upserting score: %s", exc)
        return SubmissionResult.fail(str(exc))
    return SubmissionResult.ok({"id": score_id})


async def submit_score(database_url: str, entry: ScoreInput) -> SubmissionResult:
    problem = validate_entry(entry)
    if problem:
        return SubmissionResult.fail(problem)

    try:
        team, player_ids, tournament, existing = await asyncio.gather(
            db.fetch_team(database_url, entry.team_id),
            db.fetch_team_player_ids(database_url, entry.team_id),
            db.fetch_tournament(database_url, entry.tournament_type),
            db.fetch_team_scores(database_url, entry.team_id),
        )
    except psycopg.Error as exc:
        logger.error("Error validating score for team %s: %s", entry.team_id, exc)
        return SubmissionResult.fail(str(exc))

    if team is None or tournament is None or team.tournament_type != entry.tournament_type:
        return SubmissionResult.fail(f"Team not found in the {entry.tournament_type} tournament")
    if entry.drive_player_id not in player_ids:
        return SubmissionResult.fail("Drive player not found on this team")
    if entry.mulligan_player_id:
        if entry.mulligan_player_id not in player_ids:
            return SubmissionResult.fail("Mulligan player not found on this team")
        if exhausted_mulligan_player(existing, [entry], tournament.default_mulligans):
            return SubmissionResult.fail("Mulligan player has no mulligans remaining")

    return await _upsert_single(database_url, entry, tournament.default_mulligans)


async def _upsert_batch(
    database_url: str, entries: list[ScoreInput], mulligan_allowance: int
) -> SubmissionResult:
    try:
        ids = await db.upsert_scores(database_url, entries, mulligan_allowance)
    except db.MulliganLimitReached as exc:
        logger.info("Refused mulligans for team %s: %s", entries[0].team_id, exc)
        return SubmissionResult.fail(str(exc))
    except errors.InsufficientPrivilege as exc:
        if not any(entry.mulligan_player_id for entry in entries):
            logger.error("Error submitting scores: %s", exc)
            return SubmissionResult.fail(f"Failed to save scores: {exc}")
        logger.warning(
            "Permission denied saving mulligans for team %s, retrying without them: %s",
            entries[0].team_id,
            exc,
        )
        try:
            ids = await db.upsert_scores(
                database_url, [entry.without_mulligan() for entry in entries]
            )
        except psycopg.Error as retry_exc:
            logger.error("Retry without mulligans failed: %s", retry_exc)
            return SubmissionResult.fail(f"Failed to save scores: {exc}")
        return SubmissionResult(
            success=True,
            data={"ids": ids, "count": len(ids)},
            warning=BATCH_MULLIGAN_PERMISSION_WARNING,
            degraded=True,
        )
    except psycopg.Error as exc:
        logger.error("Error submitting scores: %s", exc)
        return SubmissionResult.fail(f"Failed to save scores: {exc}")
    return SubmissionResult.ok({"ids": ids, "count": len(ids)})


async def submit_scores(database_url: str, entries: Sequence[ScoreInput]) -> SubmissionResult:
    if not entries:
        return SubmissionResult.fail("No scores provided")

    team_id = entries[0].team_id
    tournament_type = entries[0].tournament_type
    if any(
        entry.team_id != team_id or entry.tournament_type != tournament_type
        for entry in entries
    ):
        return SubmissionResult.fail("All scores must be for the same team and tournament")

    for entry in entries:
        problem = validate_entry(entry)
        if problem:
            return SubmissionResult.fail(problem)

    try:
        team, player_ids, tournament, existing = await asyncio.gather(
            db.fetch_team(database_url, team_id),
            db.fetch_team_player_ids(database_url, team_id),
            db.fetch_tournament(database_url, tournament_type),
            db.fetch_team_scores(database_url, team_id),
        )
    except psycopg.Error as exc:
        logger.error("Error validating team players for %s: %s", team_id, exc)
        return SubmissionResult.fail(f"Error validating team players: {exc}")

    if team is None or tournament is None or team.tournament_type != tournament_type:
        return SubmissionResult.fail(
            f"Team {team_id} does not belong to tournament {tournament_type}"
        )

    for entry in entries:
        if entry.drive_player_id not in player_ids:
            return SubmissionResult.fail(
                f"Drive player {entry.drive_player_id} does not belong to team {team_id}"
            )
        if entry.mulligan_player_id and entry.mulligan_player_id not in player_ids:
            return SubmissionResult.fail(
                f"Mulligan player {entry.mulligan_player_id} does not belong to team {team_id}"
            )

    exhausted = exhausted_mulligan_player(existing, entries, tournament.default_mulligans)
    if exhausted:
        return SubmissionResult.fail(f"Mulligan player {exhausted} has no mulligans remaining")

    return await _upsert_batch(database_url, list(entries), tournament.default_mulligans)
