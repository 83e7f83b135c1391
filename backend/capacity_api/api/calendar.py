"""Calendar endpoints: quarters, working days and the sprint calendar."""

from flask import Blueprint, current_app, jsonify, request

from capacity_engine.calendar import (
    count_working_days,
    count_working_days_in_quarter,
    generate_quarters,
    parse_date,
    parse_quarter_label,
    work_weeks_in_quarter,
)
from capacity_engine.snapshot import merge_settings
from capacity_engine.sprints import generate_sprints_for_year

bp = Blueprint("calendar", __name__, url_prefix="/api/calendar")

MAX_QUARTER_COUNT = 40


@bp.route("/quarters", methods=["GET"])
def quarters():
    """Consecutive quarter labels.

    Query params:
        - count: Number of quarters (default 8, at most MAX_QUARTER_COUNT)
        - start: First quarter label (default: current quarter)
    """
    count = min(request.args.get("count", 8, type=int), MAX_QUARTER_COUNT)
    start = request.args.get("start")
    if start and not parse_quarter_label(start):
        return jsonify({"error": f"Invalid quarter: {start!r}"}), 400

    return jsonify({"data": generate_quarters(count, start)})


@bp.route("/workdays", methods=["POST"])
def workdays():
    """Count working days in a date range or a quarter.

    Expects JSON body with either:
        - startDate, endDate: ISO dates (inclusive)
        - quarter: Quarter label
    and optionally:
        - holidays: Holiday dicts or ISO date strings to exclude
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Missing request body"}), 400

    holidays = data.get("holidays") or []

    if data.get("quarter"):
        quarter = data["quarter"]
        if not parse_quarter_label(quarter):
            return jsonify({"error": f"Invalid quarter: {quarter!r}"}), 400
        return jsonify({"data": {
            "quarter": quarter,
            "workingDays": count_working_days_in_quarter(quarter, holidays),
            "workWeeks": work_weeks_in_quarter(quarter, holidays)
        }})

    start = parse_date(data.get("startDate"))
    end = parse_date(data.get("endDate"))
    if not start or not end:
        return jsonify({"error": "Provide startDate and endDate, or quarter"}), 400

    return jsonify({"data": {
        "startDate": data["startDate"],
        "endDate": data["endDate"],
        "workingDays": count_working_days(start, end, holidays)
    }})


@bp.route("/sprints/<int:year>", methods=["GET"])
def sprints(year):
    """Generated sprint calendar for a year.

    Sprint settings come from the configured defaults, overridden by query
    params sprint_duration_weeks, sprints_per_year and sprint_start_date.

    Query params:
        - include_bye_weeks: "true" to include bye-week entries
    """
    overrides = {
        "sprintDurationWeeks": request.args.get("sprint_duration_weeks", type=int),
        "sprintsPerYear": request.args.get("sprints_per_year", type=int),
        "sprintStartDate": request.args.get("sprint_start_date"),
    }
    settings = merge_settings(current_app.config.get("PLANNER_DEFAULTS"), overrides)
    include_bye_weeks = request.args.get("include_bye_weeks", "false").lower() == "true"

    return jsonify({"data": generate_sprints_for_year(year, settings, include_bye_weeks)})
