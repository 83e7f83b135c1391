"""Business-contact capacity (informational only).

Business stakeholders are tracked alongside the IT team but never feed member
status or warnings. Their assignments are lump sums of days over a phase or
a quarter, spread into any window by working-day proportion.
"""

import logging
from datetime import timedelta
from typing import Optional

from capacity_engine.calendar import (
    count_working_days,
    format_date,
    holiday_dates,
    holidays_for_country,
    is_weekend,
    parse_date,
    parse_quarter_label,
    prorate_to_window,
)
from capacity_engine.capacity import percent
from capacity_engine.snapshot import phase_date_range

logger = logging.getLogger(__name__)


def empty_business_cell() -> dict:
    return {
        "workingDays": 0,
        "timeOffDays": 0,
        "availableDays": 0,
        "allocatedDays": 0,
        "usedPercent": 0,
        "isTimeOff": False,
        "isPublicHoliday": False,
        "allocations": []
    }


def _find_phase(phase_id, projects: list, project_id=None) -> Optional[dict]:
    for project in projects or []:
        if project_id and project.get("id") != project_id:
            continue
        for phase in project.get("phases") or []:
            if phase.get("id") == phase_id:
                return phase
    return None


def resolve_business_assignment_range(assignment: dict, projects: list) -> Optional[tuple]:
    """Date range a business assignment's days are spread over.

    A linked phase (phaseId) wins; otherwise the declared quarter.
    """
    if assignment.get("phaseId"):
        phase = _find_phase(assignment["phaseId"], projects, assignment.get("projectId"))
        if phase:
            return phase_date_range(phase)

    quarter = parse_quarter_label(assignment.get("quarter"))
    if quarter:
        return quarter["start"], quarter["end"]
    return None


def _time_off_working_dates(contact_id, window_start, window_end,
                            business_time_off: list, excluded: set) -> set:
    """Distinct working dates in the window covered by the contact's time off."""
    covered = set()
    for record in business_time_off or []:
        if record.get("contactId") != contact_id:
            continue
        start = parse_date(record.get("startDate"))
        end = parse_date(record.get("endDate"))
        if not start or not end:
            continue

        current = max(start, window_start)
        last = min(end, window_end)
        while current <= last:
            if not is_weekend(current) and format_date(current) not in excluded:
                covered.add(current)
            current += timedelta(days=1)
    return covered


def business_capacity_for_window(contact: dict, window_start, window_end,
                                 business_assignments: list,
                                 business_time_off: list,
                                 holidays: list,
                                 projects: list) -> dict:
    """Compute a business contact's allocation for a window (e.g. a week).

    Args:
        contact: Business contact dict (id, countryId)
        window_start: First day of the window (ISO string or date)
        window_end: Last day of the window, inclusive
        business_assignments: All business assignments
        business_time_off: All business time-off records
        holidays: Public holidays; filtered to the contact's country when set
        projects: Projects with phases, to resolve phase-linked assignments

    Returns:
        Dict with workingDays, timeOffDays, availableDays, allocatedDays,
        usedPercent, isTimeOff, isPublicHoliday and per-assignment allocations.
    """
    start = parse_date(window_start)
    end = parse_date(window_end)
    if not contact or not start or not end or start > end:
        return empty_business_cell()

    if contact.get("countryId"):
        holidays = holidays_for_country(contact["countryId"], holidays)

    working_days = count_working_days(start, end, holidays)
    time_off_dates = _time_off_working_dates(
        contact.get("id"), start, end, business_time_off, holiday_dates(holidays)
    )
    time_off_days = len(time_off_dates)
    available_days = max(0, working_days - time_off_days)

    allocated_days = 0
    allocations = []
    for assignment in business_assignments or []:
        if assignment.get("contactId") != contact.get("id"):
            continue

        assignment_range = resolve_business_assignment_range(assignment, projects)
        if not assignment_range:
            logger.debug(f"Business assignment {assignment.get('id')} has no resolvable range")
            continue

        share = prorate_to_window(
            assignment.get("days") or 0,
            assignment_range[0], assignment_range[1],
            start, end,
            holidays
        )
        if share <= 0:
            continue

        allocated_days += share
        allocations.append({
            "assignmentId": assignment.get("id"),
            "projectId": assignment.get("projectId"),
            "phaseId": assignment.get("phaseId"),
            "quarter": assignment.get("quarter"),
            "days": share
        })

    return {
        "workingDays": working_days,
        "timeOffDays": time_off_days,
        "availableDays": available_days,
        "allocatedDays": allocated_days,
        "usedPercent": percent(allocated_days, available_days),
        "isTimeOff": working_days > 0 and time_off_days >= working_days,
        "isPublicHoliday": working_days == 0,
        "allocations": allocations
    }


def business_capacity_for_quarter(contact: dict, quarter: str,
                                  business_assignments: list,
                                  business_time_off: list,
                                  holidays: list,
                                  projects: list) -> dict:
    """Business capacity with the window set to a whole quarter."""
    quarter_range = parse_quarter_label(quarter)
    if not quarter_range:
        return empty_business_cell()

    return business_capacity_for_window(
        contact,
        quarter_range["start"], quarter_range["end"],
        business_assignments, business_time_off, holidays, projects
    )
