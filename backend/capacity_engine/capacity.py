"""Capacity calculation engine.

For a member and a quarter, capacity is the quarter's working days (weekends
and the member's country holidays excluded) minus committed days from:

    - the BAU reserve (fixed overhead, always charged)
    - time off falling inside the quarter
    - manual project/phase assignments (confidence-forecast per phase)
    - Jira work items assigned by email (confidence-forecast per item)

Jira items belonging to a phase that already has a jiraSynced assignment are
skipped, since that assignment already represents them.
"""

import logging
import math
from typing import Optional

from capacity_engine.calendar import (
    canonical_quarter,
    count_working_days_clamped_to_quarter,
    count_working_days_in_quarter,
    current_quarter,
    date_ranges_overlap,
    parse_quarter_label,
)
from capacity_engine.confidence import forecasted_days, normalize_confidence_level
from capacity_engine.snapshot import PlanningSnapshot, phase_date_range

logger = logging.getLogger(__name__)

STATUS_NORMAL = "normal"
STATUS_WARNING = "warning"
STATUS_OVERALLOCATED = "overallocated"

# usedPercent strictly above this is a warning; exactly 90 is normal
HIGH_UTILIZATION_PERCENT = 90

JIRA_DONE_STATUS_CATEGORY = "done"


def as_snapshot(snapshot) -> PlanningSnapshot:
    """Accept a PlanningSnapshot or a raw state dict."""
    if isinstance(snapshot, PlanningSnapshot):
        return snapshot
    return PlanningSnapshot(snapshot)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def percent(part: float, whole: float) -> int:
    """Whole-number percentage; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


def _number(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def empty_capacity_result() -> dict:
    return {
        "totalWorkdays": 0,
        "usedDays": 0,
        "availableDays": 0,
        "availableDaysRaw": 0,
        "usedPercent": 0,
        "status": STATUS_NORMAL,
        "breakdown": []
    }


def classify_status(used_days: float, total_workdays: float, used_percent: int) -> str:
    if used_days > total_workdays:
        return STATUS_OVERALLOCATED
    if used_percent > HIGH_UTILIZATION_PERCENT:
        return STATUS_WARNING
    return STATUS_NORMAL


def _phase_overlaps_quarter(phase: dict, quarter: dict) -> bool:
    phase_range = phase_date_range(phase)
    if not phase_range:
        return False
    return date_ranges_overlap(phase_range[0], phase_range[1], quarter["start"], quarter["end"])


def _time_off_days(member_id, quarter_label: str, snapshot: PlanningSnapshot,
                   holidays: list) -> tuple:
    """Working days of time off inside the quarter, plus the reasons seen."""
    total = 0
    reasons = []
    for record in snapshot.time_off:
        if record.get("memberId") != member_id:
            continue

        if record.get("startDate") and record.get("endDate"):
            days = count_working_days_clamped_to_quarter(
                record["startDate"], record["endDate"], quarter_label, holidays
            )
        elif canonical_quarter(record.get("quarter")) == quarter_label:
            # Older records: a day count against a single quarter
            days = _number(record.get("days"))
        else:
            days = 0

        if days > 0:
            total += days
            if record.get("reason"):
                reasons.append(record["reason"])
    return total, reasons


def calculate_capacity(member_id, quarter: str, snapshot) -> dict:
    """Calculate a member's capacity for a quarter.

    Args:
        member_id: Team member id
        quarter: Quarter label, e.g. "Q1 2026"
        snapshot: PlanningSnapshot (or raw state dict)

    Returns:
        Dict with totalWorkdays, usedDays, availableDays (never negative),
        availableDaysRaw (may be negative), usedPercent, status and a
        breakdown list tagged bau | timeoff | project | jira.
    """
    snapshot = as_snapshot(snapshot)
    member = snapshot.member(member_id)
    if not member:
        logger.debug(f"Unknown member {member_id}, returning empty capacity")
        return empty_capacity_result()
    quarter = canonical_quarter(quarter) or quarter

    holidays = snapshot.holidays_for_member(member)
    total_workdays = count_working_days_in_quarter(quarter, holidays)
    quarter_range = parse_quarter_label(quarter)

    used_days = 0
    breakdown = []

    # BAU reserve
    bau_days = snapshot.bau_reserve_days
    used_days += bau_days
    breakdown.append({"type": "bau", "days": bau_days})

    # Time off
    time_off_days, reasons = _time_off_days(member_id, quarter, snapshot, holidays)
    if time_off_days > 0:
        used_days += time_off_days
        entry = {"type": "timeoff", "days": time_off_days}
        if reasons:
            entry["reason"] = ", ".join(reasons)
        breakdown.append(entry)

    # Manual project/phase assignments
    jira_synced_phases = set()
    if quarter_range:
        for project, phase in snapshot.active_phases():
            if not _phase_overlaps_quarter(phase, quarter_range):
                continue

            assignments = snapshot.assignments_for_phase(
                project.get("id"), phase.get("id"), member_id, quarter
            )
            if not assignments:
                continue

            level = normalize_confidence_level(
                phase.get("confidenceLevel"), snapshot.default_confidence_level
            )
            raw_total = 0
            phase_days = 0
            for assignment in assignments:
                raw = _number(assignment.get("days"))
                raw_total += raw
                phase_days += forecasted_days(raw, level, snapshot.confidence_settings)
                if assignment.get("jiraSynced"):
                    jira_synced_phases.add((project.get("id"), phase.get("id")))

            used_days += phase_days
            breakdown.append({
                "type": "project",
                "projectId": project.get("id"),
                "projectName": project.get("name"),
                "phaseId": phase.get("id"),
                "phaseName": phase.get("name"),
                "confidenceLevel": level,
                "rawDays": raw_total,
                "days": phase_days
            })

    # Jira work items assigned to this member
    email = (member.get("email") or "").strip().lower()
    if email and snapshot.jira_work_items and quarter_range:
        for item in snapshot.jira_work_items:
            if (item.get("mappedProjectId"), item.get("mappedPhaseId")) in jira_synced_phases:
                continue
            if (item.get("statusCategory") or "").lower() == JIRA_DONE_STATUS_CATEGORY:
                continue
            points = _number(item.get("storyPoints"))
            if points <= 0:
                continue
            if (item.get("assigneeEmail") or "").strip().lower() != email:
                continue
            if snapshot.sprint_quarter(item.get("sprintName")) != quarter:
                continue

            level = normalize_confidence_level(
                item.get("confidenceLevel"), snapshot.jira_default_confidence_level
            )
            item_days = forecasted_days(points, level, snapshot.confidence_settings)
            used_days += item_days
            breakdown.append({
                "type": "jira",
                "jiraKey": item.get("jiraKey"),
                "summary": item.get("summary"),
                "sprintName": item.get("sprintName"),
                "confidenceLevel": level,
                "rawDays": points,
                "days": item_days
            })

    available_days_raw = total_workdays - used_days
    used_percent = percent(used_days, total_workdays)

    return {
        "totalWorkdays": total_workdays,
        "usedDays": used_days,
        "availableDays": max(0, available_days_raw),
        "availableDaysRaw": available_days_raw,
        "usedPercent": used_percent,
        "status": classify_status(used_days, total_workdays, used_percent),
        "breakdown": breakdown
    }


def member_project_count(member_id, quarter: str, snapshot) -> int:
    """Distinct non-completed projects the member is assigned to in a quarter."""
    snapshot = as_snapshot(snapshot)
    quarter_range = parse_quarter_label(quarter)
    if not quarter_range:
        return 0
    quarter = canonical_quarter(quarter)

    projects = set()
    for project, phase in snapshot.active_phases():
        if project.get("id") in projects or not _phase_overlaps_quarter(phase, quarter_range):
            continue
        if snapshot.assignments_for_phase(project.get("id"), phase.get("id"), member_id, quarter):
            projects.add(project.get("id"))
    return len(projects)


def check_skill_match(member_id, required_skill_ids: list, snapshot) -> dict:
    """Check whether a member has every required skill.

    Unknown members are reported as missing all required skills.
    """
    snapshot = as_snapshot(snapshot)
    required_skill_ids = required_skill_ids or []
    member = snapshot.member(member_id)

    if not member:
        return {
            "matched": False,
            "missingSkillNames": [snapshot.skill_name(s) for s in required_skill_ids]
        }

    member_skills = set(member.get("skillIds") or [])
    missing = [s for s in required_skill_ids if s not in member_skills]
    return {
        "matched": not missing,
        "missingSkillNames": [snapshot.skill_name(s) for s in missing]
    }


def collect_warnings(snapshot, as_of_quarter: Optional[str] = None) -> dict:
    """Collect team-wide allocation warnings for a quarter.

    Args:
        snapshot: PlanningSnapshot (or raw state dict)
        as_of_quarter: Quarter to evaluate; defaults to the current quarter

    Returns:
        Dict with overallocated, highUtilization, tooManyProjects and
        skillMismatch lists.
    """
    snapshot = as_snapshot(snapshot)
    quarter = canonical_quarter(as_of_quarter) or as_of_quarter or current_quarter()
    warnings = {
        "overallocated": [],
        "highUtilization": [],
        "tooManyProjects": [],
        "skillMismatch": []
    }

    for member in snapshot.team_members:
        cap = calculate_capacity(member.get("id"), quarter, snapshot)

        if cap["status"] == STATUS_OVERALLOCATED:
            warnings["overallocated"].append({
                "member": member,
                "usedDays": cap["usedDays"],
                "totalDays": cap["totalWorkdays"],
                "quarter": quarter
            })
        elif cap["status"] == STATUS_WARNING:
            warnings["highUtilization"].append({
                "member": member,
                "usedDays": cap["usedDays"],
                "totalDays": cap["totalWorkdays"],
                "usedPercent": cap["usedPercent"],
                "quarter": quarter
            })

        max_projects = member.get("maxConcurrentProjects")
        if max_projects is not None:
            count = member_project_count(member.get("id"), quarter, snapshot)
            if count > max_projects:
                warnings["tooManyProjects"].append({
                    "member": member,
                    "count": count,
                    "max": max_projects
                })

    for project, phase in snapshot.active_phases():
        required = phase.get("requiredSkillIds") or []
        if not required:
            continue

        for assignment in snapshot.assignments_for_phase(project.get("id"), phase.get("id")):
            member = snapshot.member(assignment.get("memberId"))
            if not member:
                continue

            match = check_skill_match(member.get("id"), required, snapshot)
            if not match["matched"]:
                warnings["skillMismatch"].append({
                    "member": member,
                    "projectId": project.get("id"),
                    "projectName": project.get("name"),
                    "phaseId": phase.get("id"),
                    "phaseName": phase.get("name"),
                    "quarter": assignment.get("quarter"),
                    "missingSkills": match["missingSkillNames"]
                })

    return warnings


def team_utilization_summary(quarter: str, snapshot) -> dict:
    """Aggregate member capacity statuses and average utilization."""
    snapshot = as_snapshot(snapshot)
    counts = {STATUS_OVERALLOCATED: 0, STATUS_WARNING: 0, STATUS_NORMAL: 0}
    total_utilization = 0

    for member in snapshot.team_members:
        cap = calculate_capacity(member.get("id"), quarter, snapshot)
        total_utilization += cap["usedPercent"]
        counts[cap["status"]] += 1

    total_members = len(snapshot.team_members)
    return {
        "totalMembers": total_members,
        "overallocated": counts[STATUS_OVERALLOCATED],
        "highUtilization": counts[STATUS_WARNING],
        "normal": counts[STATUS_NORMAL],
        "averageUtilization": round_half_up(total_utilization / total_members) if total_members else 0
    }


def member_capacity_grid(quarters: list, snapshot) -> list:
    """Capacity results per member for each of the given quarters."""
    snapshot = as_snapshot(snapshot)
    return [
        {
            "memberId": member.get("id"),
            "memberName": member.get("name"),
            "countryId": member.get("countryId"),
            "quarters": {
                quarter: calculate_capacity(member.get("id"), quarter, snapshot)
                for quarter in quarters
            }
        }
        for member in snapshot.team_members
    ]


def project_allocation_summary(project_id, snapshot) -> dict:
    """Raw assigned days for a project, totalled by quarter and by member."""
    snapshot = as_snapshot(snapshot)
    summary = {"totalDays": 0, "byQuarter": {}, "byMember": {}}
    if not snapshot.project(project_id):
        return summary

    for assignment in snapshot.assignments:
        if assignment.get("projectId") != project_id:
            continue
        days = _number(assignment.get("days"))
        quarter = assignment.get("quarter")
        member_id = assignment.get("memberId")

        summary["totalDays"] += days
        summary["byQuarter"][quarter] = summary["byQuarter"].get(quarter, 0) + days
        summary["byMember"][member_id] = summary["byMember"].get(member_id, 0) + days

    return summary
