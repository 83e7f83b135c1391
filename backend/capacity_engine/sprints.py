"""Sprint calendar generation and sprint-to-quarter mapping.

Sprints are generated deterministically from settings:
    - sprintDurationWeeks (default 3)
    - sprintStartDate (default: first Monday of the year)
    - sprintsPerYear (default 16)
    - byeWeeksAfter (default [8, 12]): a one-week gap follows these sprints
"""

import logging
import re
from datetime import date, timedelta
from typing import Optional

from capacity_engine.calendar import (
    canonical_quarter,
    count_working_days,
    format_date,
    parse_date,
    quarter_for_date,
)

logger = logging.getLogger(__name__)

DEFAULT_SPRINT_DURATION_WEEKS = 3
DEFAULT_SPRINTS_PER_YEAR = 16
DEFAULT_BYE_WEEKS_AFTER = [8, 12]

SPRINT_REFERENCE_PATTERN = re.compile(r"sprint\s*#?\s*(\d+)(?:\s+(\d{4}))?", re.IGNORECASE)


def _first_monday_of_year(year: int) -> date:
    jan_first = date(year, 1, 1)
    return jan_first + timedelta(days=(7 - jan_first.weekday()) % 7)


def _sprint_start_for_year(year: int, sprint_start_date) -> date:
    """Move the configured start date into the requested year."""
    configured = parse_date(sprint_start_date)
    if not configured:
        return _first_monday_of_year(year)

    try:
        return date(year, configured.month, configured.day)
    except ValueError:
        # Feb 29 configured, non-leap target year
        return date(year, configured.month, 28)


def generate_sprints_for_year(year: int, settings: Optional[dict] = None,
                              include_bye_weeks: bool = False) -> list:
    """Generate the sprint calendar for a year.

    Args:
        year: Calendar year to generate
        settings: Planner settings (sprint keys only are read)
        include_bye_weeks: Also emit an entry for each skipped bye week

    Returns:
        List of sprint dicts in date order.
    """
    settings = settings or {}
    duration_weeks = settings.get("sprintDurationWeeks") or DEFAULT_SPRINT_DURATION_WEEKS
    sprints_per_year = settings.get("sprintsPerYear") or DEFAULT_SPRINTS_PER_YEAR
    bye_weeks_after = settings.get("byeWeeksAfter")
    if bye_weeks_after is None:
        bye_weeks_after = DEFAULT_BYE_WEEKS_AFTER

    sprint_length = timedelta(weeks=duration_weeks)
    current = _sprint_start_for_year(year, settings.get("sprintStartDate"))
    sprints = []

    for number in range(1, sprints_per_year + 1):
        end = current + sprint_length - timedelta(days=1)
        sprints.append({
            "id": f"sprint-{number}-{year}",
            "name": f"Sprint {number}",
            "number": number,
            "year": year,
            "startDate": format_date(current),
            "endDate": format_date(end),
            "quarter": quarter_for_date(current),
            "isByeWeek": False
        })
        current += sprint_length

        if number in bye_weeks_after:
            if include_bye_weeks:
                sprints.append({
                    "id": f"bye-{number}-{year}",
                    "name": f"Bye Week (after Sprint {number})",
                    "number": number,
                    "year": year,
                    "startDate": format_date(current),
                    "endDate": format_date(current + timedelta(days=6)),
                    "quarter": quarter_for_date(current),
                    "isByeWeek": True
                })
            current += timedelta(weeks=1)

    return sprints


def generate_sprints(settings: Optional[dict] = None, years_to_generate: int = 2,
                     start_year: Optional[int] = None) -> list:
    """Generate sprints for consecutive years, starting this year by default."""
    first_year = start_year or date.today().year
    all_sprints = []
    for offset in range(years_to_generate):
        all_sprints.extend(generate_sprints_for_year(first_year + offset, settings))
    return all_sprints


def sprints_for_quarter(quarter: str, sprints: list) -> list:
    quarter = canonical_quarter(quarter)
    if not quarter:
        return []
    return [s for s in sprints if canonical_quarter(s.get("quarter")) == quarter]


def working_days_in_sprint(sprint: dict, holidays=None) -> int:
    """Working days in a sprint; bye weeks have none."""
    if sprint.get("isByeWeek"):
        return 0
    return count_working_days(sprint.get("startDate"), sprint.get("endDate"), holidays)


def parse_sprint_reference(text) -> Optional[dict]:
    """Extract a sprint ordinal (and optional year) from a sprint name.

    "Sprint 4" -> {"number": 4, "year": None}
    "Platform Sprint 12 2026" -> {"number": 12, "year": 2026}
    """
    if not isinstance(text, str):
        return None

    match = SPRINT_REFERENCE_PATTERN.search(text)
    if not match:
        return None

    return {
        "number": int(match.group(1)),
        "year": int(match.group(2)) if match.group(2) else None
    }


def map_sprint_name_to_quarter(sprint_name, sprints: list) -> Optional[str]:
    """Resolve a free-text (e.g. Jira) sprint name to a quarter label.

    An exact ordinal match (and year, when the name carries one) wins.
    Otherwise the first sprint whose name is contained in the given name
    (case-insensitively, not followed by another digit), in the order given.
    """
    if not sprint_name or not sprints:
        return None

    reference = parse_sprint_reference(sprint_name)
    if reference:
        for sprint in sprints:
            if sprint.get("isByeWeek") or sprint.get("number") != reference["number"]:
                continue
            if reference["year"] and sprint.get("year") != reference["year"]:
                continue
            return sprint.get("quarter")

    lower = sprint_name.lower()
    for sprint in sprints:
        name = (sprint.get("name") or "").lower()
        if not name or sprint.get("isByeWeek"):
            continue
        if reference and reference["year"] and sprint.get("year") not in (None, reference["year"]):
            continue
        # "Sprint 4" must not match inside "Sprint 40"
        if re.search(re.escape(name) + r"(?!\d)", lower):
            return sprint.get("quarter")

    logger.debug(f"Sprint name '{sprint_name}' did not match any sprint")
    return None


def current_sprint(sprints: list, today: Optional[date] = None) -> Optional[dict]:
    """The sprint containing today, if any."""
    today_str = format_date(today or date.today())
    for sprint in sprints:
        if sprint.get("isByeWeek"):
            continue
        if sprint["startDate"] <= today_str <= sprint["endDate"]:
            return sprint
    return None


def upcoming_sprints(sprints: list, count: int = 6, today: Optional[date] = None) -> list:
    """Sprints starting today or later."""
    today_str = format_date(today or date.today())
    upcoming = [
        s for s in sprints
        if not s.get("isByeWeek") and s["startDate"] >= today_str
    ]
    return upcoming[:count]


def aggregate_sprint_assignments_to_quarter(assignments: list, target_quarter: str) -> float:
    """Sum sprint-level assignment days that roll up to a quarter."""
    target_quarter = canonical_quarter(target_quarter)
    if not target_quarter:
        return 0
    return sum(
        a.get("days") or 0
        for a in assignments
        if canonical_quarter(a.get("quarter")) == target_quarter
    )
