"""Confidence forecast API endpoints."""

import math

from flask import Blueprint, current_app, jsonify, request

from capacity_engine.confidence import (
    CONFIDENCE_LEVELS,
    compute_rollup,
    confidence_label,
    confidence_settings,
    forecasted_days,
    normalize_confidence_level,
)

bp = Blueprint("forecast", __name__, url_prefix="/api/forecast")


def get_confidence_settings(data):
    """Configured confidence percentages, overridden by the request's own."""
    defaults = current_app.config.get("PLANNER_DEFAULTS", {})
    merged = dict(defaults.get("confidenceLevels") or {})
    merged.update(data.get("confidenceLevels") or {})
    return confidence_settings(merged)


@bp.route("/days", methods=["POST"])
def forecast_days():
    """Forecast a raw estimate at a confidence level.

    Expects JSON body with:
        - rawDays: Raw estimate in days
        - confidenceLevel: Optional high | medium | low
        - confidenceLevels: Optional percentage overrides
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Missing request body"}), 400

    raw = data.get("rawDays")
    if (isinstance(raw, bool) or not isinstance(raw, (int, float))
            or not math.isfinite(raw) or raw < 0):
        return jsonify({"error": "rawDays must be a finite non-negative number"}), 400

    settings = get_confidence_settings(data)
    level = normalize_confidence_level(data.get("confidenceLevel"), settings["defaultLevel"])

    return jsonify({"data": {
        "rawDays": raw,
        "confidenceLevel": level,
        "label": confidence_label(level, settings),
        "forecastedDays": forecasted_days(raw, level, settings)
    }})


@bp.route("/rollup", methods=["POST"])
def rollup():
    """Roll story estimates up to features and epics.

    Expects JSON body with:
        - items: Jira work items (jiraKey, parentKey, storyPoints, confidenceLevel)
        - defaultConfidenceLevel: Optional level for items without one
        - confidenceLevels: Optional percentage overrides
        - includeLeaves: Optional, also return leaf rows (default false)
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("items"), list):
        return jsonify({"error": "Missing required field: items"}), 400

    items = [i for i in data["items"] if isinstance(i, dict)]
    settings = get_confidence_settings(data)
    default_level = data.get("defaultConfidenceLevel")
    if isinstance(default_level, str):
        default_level = default_level.strip().lower()
    if default_level is not None and default_level not in CONFIDENCE_LEVELS:
        return jsonify({"error": f"Unknown confidence level: {default_level}"}), 400

    results = compute_rollup(items, default_level, settings)

    if not data.get("includeLeaves"):
        parent_keys = {i.get("parentKey") for i in items if i.get("parentKey")}
        results = {key: value for key, value in results.items() if key in parent_keys}

    return jsonify({"data": results})
