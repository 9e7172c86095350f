import asyncio
import logging
from typing import Any

from scramble import db
from scramble.golf_api import GolfApiError, fetch_course
from scramble.settings import HOLE_COUNT

logger = logging.getLogger(__name__)


def _first_tee(course: dict[str, Any], gender: str = "male") -> dict[str, Any] | None:
    tees_payload = course.get("tees") or {}
    for key in (gender, "male", "female"):
        tees = tees_payload.get(key) or []
        if tees:
            return tees[0]
    return None


def course_pars(course: dict[str, Any], gender: str = "male") -> dict[str, int]:
    """Build a {"1": par, ..., "18": par} map from the course's first tee set."""
    tee = _first_tee(course, gender)
    if tee is None:
        raise GolfApiError(f"Course {course.get('id')} has no tee data")

    pars: dict[str, int] = {}
    for idx, hole in enumerate(tee.get("holes") or [], 1):
        hole_number = hole.get("hole_number") or idx
        par = hole.get("par")
        if not par or not 1 <= hole_number <= HOLE_COUNT:
            continue
        pars[str(hole_number)] = int(par)

    if len(pars) != HOLE_COUNT:
        raise GolfApiError(
            f"Course {course.get('id')} lists {len(pars)} holes with par, expected {HOLE_COUNT}"
        )
    return pars


async def import_course_pars(
    database_url: str, tournament_type: str, course_id: int, api_key: str
) -> dict:
    course = await asyncio.to_thread(fetch_course, course_id, api_key)
    pars = course_pars(course)
    updated = await db.update_course_pars(database_url, tournament_type, pars)
    if not updated:
        raise LookupError(f"Tournament {tournament_type} does not exist")
    logger.info(
        "Imported pars for %s from course %s (par %s)",
        tournament_type,
        course_id,
        sum(pars.values()),
    )
    return {
        "tournament_type": tournament_type,
        "course_id": course["id"],
        "course_name": course.get("course_name"),
        "club_name": course.get("club_name"),
        "course_pars": pars,
        "total_par": sum(pars.values()),
    }
