"""Public holiday import endpoints (Nager.Date)."""

from flask import Blueprint, jsonify, request

from capacity_engine import holidays_client

bp = Blueprint("holidays", __name__, url_prefix="/api/holidays")


@bp.route("/<country_code>/<int:year>", methods=["GET"])
def public_holidays(country_code, year):
    """Public holidays for a country and year, as planner holiday dicts.

    Query params:
        - country_id: Planner country id to stamp on each holiday
          (default: the normalized country code)
    """
    holidays = holidays_client.fetch_public_holidays(country_code, year)
    if holidays is None:
        return jsonify({"error": "Failed to fetch holidays from Nager.Date"}), 502

    country_id = request.args.get("country_id") or holidays_client.normalize_country_code(country_code)
    return jsonify({"data": holidays_client.to_public_holidays(holidays, country_id)})


@bp.route("/countries", methods=["GET"])
def countries():
    """Countries Nager.Date has holiday data for."""
    available = holidays_client.fetch_available_countries()
    if available is None:
        return jsonify({"error": "Failed to fetch countries from Nager.Date"}), 502

    return jsonify({"data": available})
