from typing import Iterable

from scramble.models import DriveCount
from scramble.settings import HOLE_COUNT

MINIMUM_DRIVES = {"2-man": 5, "4-man": 3}


def format_relative_to_par(relative_to_par: int) -> str:
    """Format a score against par with its sign, or 'E' for even."""
    if relative_to_par == 0:
        return "E"
    if relative_to_par > 0:
        return f"+{relative_to_par}"
    return str(relative_to_par)


def format_thru(holes_completed: int) -> str:
    if holes_completed >= HOLE_COUNT:
        return "F"
    return str(holes_completed)


def minimum_drives_for(tournament_type: str) -> int:
    return MINIMUM_DRIVES.get(tournament_type, MINIMUM_DRIVES["2-man"])


def meets_minimum_drives(drive_counts: Iterable[DriveCount], min_drives: int) -> bool:
    return all(entry.count >= min_drives for entry in drive_counts)


def tournament_display_name(tournament_type: str) -> str:
    size, _, unit = tournament_type.partition("-")
    if not unit:
        return tournament_type
    return f"{size}-{unit.capitalize()} Scramble"
