import logging

import psycopg
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from scramble import db
from scramble.formatters import (
    format_relative_to_par,
    format_thru,
    tournament_display_name,
)
from scramble.leaderboard import get_leaderboard, get_team_summary
from scramble.migrations import apply_migrations
from scramble.models import ScoreInput, TeamStanding, Tournament
from scramble.settings import is_valid_tournament_type, load_settings
from scramble.submission import submit_score, submit_scores

settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Scramble Scoring")


class HoleScorePayload(BaseModel):
    hole_number: int
    strokes: int
    drive_player_id: str
    mulligan_player_id: str | None = None


class ScoreSubmissionPayload(BaseModel):
    team_id: str
    tournament_type: str
    hole_number: int | None = None
    strokes: int | None = None
    drive_player_id: str | None = None
    mulligan_player_id: str | None = None
    scores: list[HoleScorePayload] | None = None


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        problems.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "Invalid payload: " + "; ".join(problems)


def _tournament_payload(tournament: Tournament) -> dict:
    data = tournament.to_dict()
    data["display_name"] = tournament_display_name(tournament.type)
    return data


def _standing_payload(standing: TeamStanding) -> dict:
    data = standing.to_dict()
    data["relative_to_par_display"] = format_relative_to_par(standing.relative_to_par)
    data["net_relative_to_par_display"] = format_relative_to_par(standing.net_relative_to_par)
    data["thru"] = format_thru(standing.holes_completed)
    return data


@app.on_event("startup")
async def startup() -> None:
    if settings.auto_create_schema:
        await db.ensure_schema(settings.database_url)
        await apply_migrations(settings.database_url)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "scramble"}


@app.post("/api/scores/submit")
async def api_submit_scores(request: Request):
    try:
        try:
            body = await request.json()
        except ValueError:
            return _error("Request body must be JSON")
        if not isinstance(body, dict):
            return _error("Request body must be a JSON object")

        if not body.get("team_id"):
            return _error("Team ID is required")
        if not is_valid_tournament_type(body.get("tournament_type")):
            return _error("Valid tournament type is required (2-man or 4-man)")

        try:
            payload = ScoreSubmissionPayload.model_validate(body)
        except ValidationError as exc:
            return _error(_describe_validation_error(exc))

        if payload.hole_number is not None:
            if not payload.strokes or payload.strokes <= 0:
                return _error("Valid strokes value is required")
            if not payload.drive_player_id:
                return _error("Drive player ID is required")
            result = await submit_score(
                settings.database_url,
                ScoreInput(
                    team_id=payload.team_id,
                    tournament_type=payload.tournament_type,
                    hole_number=payload.hole_number,
                    strokes=payload.strokes,
                    drive_player_id=payload.drive_player_id,
                    mulligan_player_id=payload.mulligan_player_id or None,
                ),
            )
        else:
            if not payload.scores:
                return _error("Scores array is required for bulk submission")
            entries = [
                ScoreInput(
                    team_id=payload.team_id,
                    tournament_type=payload.tournament_type,
                    hole_number=score.hole_number,
                    strokes=score.strokes,
                    drive_player_id=score.drive_player_id,
                    mulligan_player_id=score.mulligan_player_id or None,
                )
                for score in payload.scores
            ]
            result = await submit_scores(settings.database_url, entries)

        return JSONResponse(result.as_dict(), status_code=200 if result.success else 400)
    except Exception:
        logger.exception("Error handling score submission")
        return _error("Internal server error", 500)


@app.api_route("/api/scores/submit", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def api_submit_scores_method_not_allowed():
    return _error("Method not allowed", 405)


@app.get("/api/tournaments/{tournament_type}")
async def api_tournament(tournament_type: str):
    if not is_valid_tournament_type(tournament_type):
        return _error("Tournament not found", 404)
    try:
        tournament = await db.fetch_tournament(settings.database_url, tournament_type)
    except psycopg.Error as exc:
        logger.error("Error fetching tournament details for %s: %s", tournament_type, exc)
        tournament = None
    if tournament is None:
        return _error("Tournament not found", 404)
    return {"success": True, "tournament": _tournament_payload(tournament)}


@app.get("/api/tournaments/{tournament_type}/teams")
async def api_tournament_teams(tournament_type: str):
    if not is_valid_tournament_type(tournament_type):
        return _error("Tournament not found", 404)
    try:
        teams = await db.fetch_teams(settings.database_url, tournament_type)
    except psycopg.Error as exc:
        logger.error("Error fetching teams for tournament type %s: %s", tournament_type, exc)
        teams = []
    return {"success": True, "teams": [team.to_dict() for team in teams]}


@app.get("/api/tournaments/{tournament_type}/leaderboard")
async def api_leaderboard(tournament_type: str):
    if not is_valid_tournament_type(tournament_type):
        return _error("Tournament not found", 404)
    leaderboard = await get_leaderboard(settings.database_url, tournament_type)
    return {
        "tournament": _tournament_payload(leaderboard.tournament) if leaderboard.tournament else None,
        "leaderboard": [_standing_payload(standing) for standing in leaderboard.standings],
    }


@app.get("/api/teams/{team_id}/players")
async def api_team_players(team_id: str):
    try:
        players = await db.fetch_team_players(settings.database_url, team_id)
    except psycopg.Error as exc:
        logger.error("Error fetching players for team %s: %s", team_id, exc)
        players = []
    return {"success": True, "players": [player.to_dict() for player in players]}


@app.get("/api/teams/{team_id}/scores")
async def api_team_scores(team_id: str):
    try:
        scores = await db.fetch_team_scores(settings.database_url, team_id)
    except psycopg.Error as exc:
        logger.error("Error fetching scores for team %s: %s", team_id, exc)
        scores = []
    return {"success": True, "scores": [score.to_dict() for score in scores]}


@app.get("/api/teams/{team_id}/summary")
async def api_team_summary(team_id: str):
    try:
        summary = await get_team_summary(settings.database_url, team_id)
    except psycopg.Error as exc:
        logger.error("Error building summary for team %s: %s", team_id, exc)
        return _error("Team summary is unavailable", 503)
    if summary is None:
        return _error("Team not found", 404)
    return {
        "success": True,
        "standing": _standing_payload(summary["standing"]),
        "minimum_drives": summary["minimum_drives"],
        "meets_minimum_drives": summary["meets_minimum_drives"],
    }
