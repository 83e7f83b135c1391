"""Nager.Date public holiday API client.

https://date.nager.at is free and needs no credentials. Holidays fetched here
are converted to planner holiday dicts ({date, countryId, name}) so they can
be stored and fed back to the capacity engine.
"""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

NAGER_BASE_URL = "https://date.nager.at/api/v3"

# Holiday types that take a working day away
WORKDAY_HOLIDAY_TYPES = {"Public", "Bank"}

# Common non-ISO codes mapped to ISO 3166-1 alpha-2
COUNTRY_CODE_ALIASES = {
    "UK": "GB",
    "EN": "GB",
    "ENG": "GB",
}


def normalize_country_code(code: str) -> str:
    upper = (code or "").strip().upper()
    return COUNTRY_CODE_ALIASES.get(upper, upper)


def make_nager_request(endpoint: str, params: dict = None):
    """Make a request to the Nager.Date API.

    Args:
        endpoint: API path, e.g. "/PublicHolidays/2026/GB"
        params: Optional query parameters

    Returns:
        Response JSON or None on error
    """
    try:
        response = requests.get(
            f"{NAGER_BASE_URL}{endpoint}",
            headers={"Accept": "application/json"},
            params=params,
            timeout=30
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        logger.warning(f"Nager.Date request {endpoint} failed: {e}")
        return None
    except ValueError as e:
        logger.warning(f"Nager.Date returned invalid JSON for {endpoint}: {e}")
        return None


def fetch_public_holidays(country_code: str, year: int) -> Optional[list]:
    """Fetch public and bank holidays for a country and year.

    School, optional and observance days are dropped.

    Returns:
        List of Nager holiday objects, or None if the request failed.
    """
    iso_code = normalize_country_code(country_code)
    data = make_nager_request(f"/PublicHolidays/{year}/{iso_code}")
    if data is None:
        return None

    return [
        holiday for holiday in data
        if WORKDAY_HOLIDAY_TYPES.intersection(holiday.get("types") or [])
    ]


def fetch_available_countries() -> Optional[list]:
    """Countries supported by Nager.Date as {countryCode, name}."""
    return make_nager_request("/AvailableCountries")


def to_public_holidays(nager_holidays: list, country_id) -> list:
    """Convert Nager holidays to planner holiday dicts for one country.

    Regional holidays (global=False) are kept; duplicate dates collapse to
    the first entry.
    """
    seen_dates = set()
    holidays = []
    for holiday in nager_holidays or []:
        day = holiday.get("date")
        if not day or day in seen_dates:
            continue
        seen_dates.add(day)
        holidays.append({
            "id": f"{country_id}-{day}",
            "countryId": country_id,
            "date": day,
            "name": holiday.get("name") or holiday.get("localName") or "Public Holiday"
        })
    return holidays
