"""Read-only planning snapshot consumed by the capacity engine.

The snapshot arrives as the JSON document the planner UI keeps in its store.
PlanningSnapshot normalizes it once at the boundary:

- settings are merged over DEFAULT_SETTINGS (and any configured defaults)
- assignments are migrated into a single flat store keyed by
  (projectId, phaseId, memberId, quarter), whether they were stored in the
  top-level "assignments" list or nested under each phase
- quarter labels on assignments are rewritten in the "Q1 2026" form
"""

import logging
from datetime import date
from typing import Optional

from capacity_engine.calendar import (
    canonical_quarter,
    holidays_for_country,
    parse_date,
    parse_quarter_label,
)
from capacity_engine.confidence import (
    confidence_settings,
    default_confidence_level,
    normalize_confidence_level,
)
from capacity_engine.sprints import (
    generate_sprints_for_year,
    map_sprint_name_to_quarter,
    parse_sprint_reference,
)

logger = logging.getLogger(__name__)

DEFAULT_BAU_RESERVE_DAYS = 5

DEFAULT_SETTINGS = {
    "bauReserveDays": DEFAULT_BAU_RESERVE_DAYS,
    "defaultCountryId": None,
    "sprintDurationWeeks": 3,
    "sprintStartDate": None,
    "sprintsPerYear": 16,
    "byeWeeksAfter": [8, 12],
}

COMPLETED_PROJECT_STATUS = "completed"


def merge_settings(*layers) -> dict:
    """Merge settings dicts left to right; None values don't override."""
    merged = dict(DEFAULT_SETTINGS)
    confidence = {}
    for layer in layers:
        for key, value in (layer or {}).items():
            if value is None:
                continue
            if key == "confidenceLevels":
                confidence.update({k: v for k, v in value.items() if v is not None})
            else:
                merged[key] = value
    merged["confidenceLevels"] = confidence_settings(confidence)
    return merged


def normalize_assignments(data: dict) -> list:
    """Build the canonical flat assignment list from either storage shape.

    The top-level list wins when present and non-empty; otherwise assignments
    nested under phases are lifted out with their projectId/phaseId.
    Duplicate keys are merged (days summed, jiraSynced if any is synced).
    """
    source = data.get("assignments") or []
    if not source:
        source = []
        for project in data.get("projects") or []:
            for phase in project.get("phases") or []:
                for assignment in phase.get("assignments") or []:
                    source.append({
                        **assignment,
                        "projectId": assignment.get("projectId", project.get("id")),
                        "phaseId": assignment.get("phaseId", phase.get("id")),
                    })

    by_key = {}
    for assignment in source:
        quarter = canonical_quarter(assignment.get("quarter"))
        if quarter:
            assignment = {**assignment, "quarter": quarter}
        key = (
            assignment.get("projectId"),
            assignment.get("phaseId"),
            assignment.get("memberId"),
            assignment.get("quarter"),
        )
        if key in by_key:
            logger.debug(f"Merging duplicate assignment {key}")
            existing = by_key[key]
            existing["days"] = (existing.get("days") or 0) + (assignment.get("days") or 0)
            existing["jiraSynced"] = bool(existing.get("jiraSynced") or assignment.get("jiraSynced"))
        else:
            by_key[key] = dict(assignment)

    return list(by_key.values())


def phase_date_range(phase: dict) -> Optional[tuple]:
    """Effective (start, end) dates of a phase.

    Explicit startDate/endDate win; otherwise the span from the first day of
    startQuarter to the last day of endQuarter. None if neither resolves.
    """
    start = parse_date(phase.get("startDate"))
    end = parse_date(phase.get("endDate"))
    if start and end:
        return start, end

    start_quarter = parse_quarter_label(phase.get("startQuarter"))
    end_quarter = parse_quarter_label(phase.get("endQuarter") or phase.get("startQuarter"))
    if not start_quarter or not end_quarter:
        return None
    return start_quarter["start"], end_quarter["end"]


def is_project_completed(project: dict) -> bool:
    return (project.get("status") or "").lower() == COMPLETED_PROJECT_STATUS


class PlanningSnapshot:
    """Normalized, read-only view over a planning state document."""

    def __init__(self, data: Optional[dict] = None, defaults: Optional[dict] = None,
                 as_of: Optional[date] = None):
        data = data or {}
        defaults = defaults or {}

        # Year-less sprint names resolve against this date's sprint calendar
        self.as_of = as_of or parse_date(data.get("asOfDate")) or date.today()

        self.settings = merge_settings(defaults, data.get("settings"))
        self.jira_settings = {
            **(defaults.get("jiraSettings") or {}),
            **(data.get("jiraSettings") or {}),
        }

        self.team_members = list(data.get("teamMembers") or [])
        self.projects = list(data.get("projects") or [])
        self.assignments = normalize_assignments(data)
        self.public_holidays = list(data.get("publicHolidays") or [])
        self.time_off = list(data.get("timeOff") or [])
        self.skills = list(data.get("skills") or [])
        self.jira_work_items = list(data.get("jiraWorkItems") or [])
        self.sprints = list(data.get("sprints") or [])
        self.business_contacts = list(data.get("businessContacts") or [])
        self.business_assignments = list(data.get("businessAssignments") or [])
        self.business_time_off = list(data.get("businessTimeOff") or [])

        self._members_by_id = {m.get("id"): m for m in self.team_members}
        self._projects_by_id = {p.get("id"): p for p in self.projects}
        self._contacts_by_id = {c.get("id"): c for c in self.business_contacts}
        self._skill_names = {s.get("id"): s.get("name") for s in self.skills}
        self._generated_sprints = {}

    @classmethod
    def from_dict(cls, data: Optional[dict], defaults: Optional[dict] = None,
                  as_of: Optional[date] = None) -> "PlanningSnapshot":
        return cls(data, defaults, as_of)

    # Lookups

    def member(self, member_id) -> Optional[dict]:
        return self._members_by_id.get(member_id)

    def project(self, project_id) -> Optional[dict]:
        return self._projects_by_id.get(project_id)

    def business_contact(self, contact_id) -> Optional[dict]:
        return self._contacts_by_id.get(contact_id)

    def skill_name(self, skill_id) -> str:
        return self._skill_names.get(skill_id) or skill_id

    def holidays_for_member(self, member: dict) -> list:
        """Public holidays for the member's country (or the default country)."""
        country_id = member.get("countryId") or self.settings.get("defaultCountryId")
        return holidays_for_country(country_id, self.public_holidays)

    def active_phases(self):
        """Yield (project, phase) for every phase of non-completed projects."""
        for project in self.projects:
            if is_project_completed(project):
                continue
            for phase in project.get("phases") or []:
                yield project, phase

    def assignments_for_phase(self, project_id, phase_id, member_id=None, quarter=None) -> list:
        if quarter is not None:
            quarter = canonical_quarter(quarter) or quarter
        return [
            a for a in self.assignments
            if a.get("projectId") == project_id
            and a.get("phaseId") == phase_id
            and (member_id is None or a.get("memberId") == member_id)
            and (quarter is None or a.get("quarter") == quarter)
        ]

    # Settings helpers

    @property
    def bau_reserve_days(self) -> float:
        value = self.settings.get("bauReserveDays")
        return DEFAULT_BAU_RESERVE_DAYS if value is None else value

    @property
    def confidence_settings(self) -> dict:
        return self.settings["confidenceLevels"]

    @property
    def default_confidence_level(self) -> str:
        return default_confidence_level(self.confidence_settings)

    @property
    def jira_default_confidence_level(self) -> str:
        return normalize_confidence_level(
            self.jira_settings.get("defaultConfidenceLevel"),
            self.default_confidence_level
        )

    def sprints_for_year(self, year: int) -> list:
        """Stored sprints when the snapshot carries them, else generated ones."""
        if self.sprints:
            return self.sprints
        if year not in self._generated_sprints:
            self._generated_sprints[year] = generate_sprints_for_year(year, self.settings)
        return self._generated_sprints[year]

    def sprint_quarter(self, sprint_name) -> Optional[str]:
        """Quarter a free-text sprint name falls in.

        Stored sprints are searched when the snapshot carries them. Otherwise
        a name with a year uses that year's generated calendar, and a name
        without one uses the calendar for the as-of year, so an item maps to
        a single quarter no matter which quarter is being evaluated.
        """
        if self.sprints:
            return map_sprint_name_to_quarter(sprint_name, self.sprints)

        reference = parse_sprint_reference(sprint_name)
        year = reference["year"] if reference and reference["year"] else self.as_of.year
        return map_sprint_name_to_quarter(sprint_name, self.sprints_for_year(year))
