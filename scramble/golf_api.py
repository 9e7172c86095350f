import os
from typing import Any

import requests

API_BASE = "https://api.golfcourseapi.com/v1"


class GolfApiError(Exception):
    pass


def _headers(api_key: str) -> dict[str, str]:
    key = api_key or os.getenv("GOLF_API_KEY", "")
    if not key:
        raise GolfApiError("Missing Golf Course API key.")
    return {"Authorization": f"Key {key}"}


def _course_summary(course: dict[str, Any]) -> dict[str, Any]:
    location = course.get("location") or {}
    return {
        "id": course.get("id"),
        "club_name": course.get("club_name", ""),
        "course_name": course.get("course_name", ""),
        "city": location.get("city"),
        "state": location.get("state"),
    }


def search_courses(query: str, api_key: str) -> list[dict[str, Any]]:
    """Return id/name/location summaries for courses matching ``query``."""
    if not query.strip():
        return []
    response = requests.get(
        f"{API_BASE}/search",
        params={"search_query": query.strip()},
        headers=_headers(api_key),
        timeout=15,
    )
    if response.status_code != 200:
        raise GolfApiError(f"Search failed: {response.status_code} {response.text}")
    courses = response.json().get("courses") or []
    return [_course_summary(course) for course in courses if isinstance(course, dict)]


def fetch_course(course_id: int, api_key: str) -> dict[str, Any]:
    response = requests.get(
        f"{API_BASE}/courses/{course_id}",
        headers=_headers(api_key),
        timeout=20,
    )
    if response.status_code != 200:
        raise GolfApiError(f"Course fetch failed: {response.status_code} {response.text}")
    payload = response.json()
    course = payload.get("course") if isinstance(payload, dict) else None
    if not isinstance(course, dict) or "id" not in course:
        raise GolfApiError(f"Unexpected course payload for id {course_id}: {response.text}")
    return course
