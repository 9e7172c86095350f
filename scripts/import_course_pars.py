#!/usr/bin/env python3
"""Load hole pars for a tournament from golfcourseapi.com."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scramble.course_sync import import_course_pars
from scramble.golf_api import search_courses
from scramble.settings import TOURNAMENT_TYPES, load_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Import course pars into a tournament.")
    parser.add_argument("--type", dest="tournament_type", choices=TOURNAMENT_TYPES)
    parser.add_argument("--course-id", type=int, help="golfcourseapi.com course id.")
    parser.add_argument("--search", type=str, help="List courses matching this name and exit.")
    args = parser.parse_args()
    settings = load_settings()

    if args.search:
        courses = search_courses(args.search, settings.golf_api_key)
        if not courses:
            print("No courses found.")
            return
        for course in courses:
            location = ", ".join(filter(None, [course["city"], course["state"]]))
            print(f"  {course['id']}: {course['club_name']} - {course['course_name']} ({location})")
        return

    if not args.tournament_type or not args.course_id:
        parser.error("--type and --course-id are required unless --search is given")

    result = asyncio.run(
        import_course_pars(
            settings.database_url,
            args.tournament_type,
            args.course_id,
            settings.golf_api_key,
        )
    )
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
