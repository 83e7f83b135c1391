"""Capacity API endpoints.

Every endpoint takes the current planning snapshot in the JSON body; the
snapshot is read, never stored.
"""

from flask import Blueprint, current_app, jsonify, request

from capacity_engine.business import business_capacity_for_quarter, business_capacity_for_window
from capacity_engine.calendar import generate_quarters, parse_quarter_label
from capacity_engine.capacity import (
    calculate_capacity,
    collect_warnings,
    member_capacity_grid,
    project_allocation_summary,
    team_utilization_summary,
)
from capacity_engine.snapshot import PlanningSnapshot
from capacity_engine.suggester import suggest_assignees

bp = Blueprint("capacity", __name__, url_prefix="/api/capacity")


def get_request_snapshot():
    """Parse the request body and build a snapshot from its "snapshot" key.

    Returns:
        Tuple of (body, snapshot), or (None, None) if the body is missing or
        has no snapshot object.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("snapshot"), dict):
        return None, None

    snapshot = PlanningSnapshot.from_dict(
        data["snapshot"],
        defaults=current_app.config.get("PLANNER_DEFAULTS")
    )
    return data, snapshot


def missing_snapshot_response():
    return jsonify({"error": "Missing request body or snapshot"}), 400


def invalid_quarter_response(quarter):
    return jsonify({"error": f"Invalid quarter: {quarter!r}. Expected e.g. 'Q1 2026'"}), 400


@bp.route("/member", methods=["POST"])
def member_capacity():
    """Capacity for one member in one quarter.

    Expects JSON body with:
        - snapshot: Planning state
        - memberId: Team member id
        - quarter: Quarter label, e.g. "Q1 2026"
    """
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    member_id = data.get("memberId")
    quarter = data.get("quarter")
    if not member_id or not quarter:
        return jsonify({"error": "Missing required fields: memberId, quarter"}), 400
    if not parse_quarter_label(quarter):
        return invalid_quarter_response(quarter)

    return jsonify({"data": calculate_capacity(member_id, quarter, snapshot)})


@bp.route("/grid", methods=["POST"])
def capacity_grid():
    """Capacity for every member across quarters.

    Expects JSON body with:
        - snapshot: Planning state
        - quarters: Optional list of quarter labels (default: next 4 from now)
    """
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    quarters = data.get("quarters") or generate_quarters(4)
    invalid = [q for q in quarters if not parse_quarter_label(q)]
    if invalid:
        return invalid_quarter_response(invalid[0])

    return jsonify({"data": {
        "quarters": quarters,
        "members": member_capacity_grid(quarters, snapshot)
    }})


@bp.route("/team-summary", methods=["POST"])
def team_summary():
    """Team utilization summary for a quarter."""
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    quarter = data.get("quarter")
    if not quarter:
        return jsonify({"error": "Missing required field: quarter"}), 400
    if not parse_quarter_label(quarter):
        return invalid_quarter_response(quarter)

    return jsonify({"data": team_utilization_summary(quarter, snapshot)})


@bp.route("/warnings", methods=["POST"])
def warnings():
    """Team-wide allocation warnings.

    Expects JSON body with:
        - snapshot: Planning state
        - asOfQuarter: Optional quarter (default: current quarter)
    """
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    as_of_quarter = data.get("asOfQuarter")
    if as_of_quarter and not parse_quarter_label(as_of_quarter):
        return invalid_quarter_response(as_of_quarter)

    return jsonify({"data": collect_warnings(snapshot, as_of_quarter)})


@bp.route("/project-summary", methods=["POST"])
def project_summary():
    """Assigned days for a project by quarter and by member."""
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    project_id = data.get("projectId")
    if not project_id:
        return jsonify({"error": "Missing required field: projectId"}), 400

    return jsonify({"data": project_allocation_summary(project_id, snapshot)})


@bp.route("/business", methods=["POST"])
def business_capacity():
    """Informational capacity for a business contact.

    Expects JSON body with:
        - snapshot: Planning state
        - contactId: Business contact id
        - windowStart, windowEnd: ISO dates of the window, or
        - quarter: Quarter label to use as the window
    """
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    contact = snapshot.business_contact(data.get("contactId"))
    if not contact:
        return jsonify({"error": "Business contact not found"}), 404

    args = (
        snapshot.business_assignments,
        snapshot.business_time_off,
        snapshot.public_holidays,
        snapshot.projects,
    )

    if data.get("windowStart") and data.get("windowEnd"):
        result = business_capacity_for_window(
            contact, data["windowStart"], data["windowEnd"], *args
        )
    elif data.get("quarter"):
        if not parse_quarter_label(data["quarter"]):
            return invalid_quarter_response(data["quarter"])
        result = business_capacity_for_quarter(contact, data["quarter"], *args)
    else:
        return jsonify({"error": "Provide windowStart and windowEnd, or quarter"}), 400

    return jsonify({"data": result})


@bp.route("/suggestions", methods=["POST"])
def suggestions():
    """Ranked assignee suggestions for a project phase.

    Expects JSON body with:
        - snapshot: Planning state
        - projectId: Project id
        - phaseId: Optional phase id (its own assignments don't count as history)
        - quarter: Quarter label
        - requiredSkillIds: Optional list of skill ids
        - limit: Optional number of suggestions (default 5)
    """
    data, snapshot = get_request_snapshot()
    if not snapshot:
        return missing_snapshot_response()

    project_id = data.get("projectId")
    quarter = data.get("quarter")
    if not project_id or not quarter:
        return jsonify({"error": "Missing required fields: projectId, quarter"}), 400
    if not parse_quarter_label(quarter):
        return invalid_quarter_response(quarter)

    try:
        limit = int(data.get("limit", 5))
    except (TypeError, ValueError):
        return jsonify({"error": "limit must be an integer"}), 400

    ranked = suggest_assignees(
        project_id,
        data.get("phaseId"),
        quarter,
        data.get("requiredSkillIds") or [],
        snapshot,
        limit=limit
    )
    return jsonify({"data": ranked})
