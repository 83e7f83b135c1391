"""Tests for the Nager.Date holiday client."""

from unittest.mock import Mock, patch

import requests

from capacity_engine.holidays_client import (
    NAGER_BASE_URL,
    fetch_available_countries,
    fetch_public_holidays,
    make_nager_request,
    normalize_country_code,
    to_public_holidays,
)

NAGER_GB_2026 = [
    {"date": "2026-01-01", "localName": "New Year's Day", "name": "New Year's Day",
     "countryCode": "GB", "global": True, "types": ["Public"]},
    {"date": "2026-01-02", "localName": "2 January", "name": "2 January",
     "countryCode": "GB", "global": False, "counties": ["GB-SCT"], "types": ["Bank"]},
    {"date": "2026-03-17", "localName": "Saint Patrick's Day", "name": "Saint Patrick's Day",
     "countryCode": "GB", "global": False, "types": ["Optional"]},
    {"date": "2026-04-03", "localName": "Good Friday", "name": "Good Friday",
     "countryCode": "GB", "global": True, "types": ["Public"]},
]


class TestNormalizeCountryCode:
    """Test country code normalization."""

    def test_uppercases(self):
        assert normalize_country_code("gb") == "GB"

    def test_aliases(self):
        assert normalize_country_code("uk") == "GB"
        assert normalize_country_code(" ENG ") == "GB"

    def test_empty(self):
        assert normalize_country_code(None) == ""


class TestMakeNagerRequest:
    """Test raw API requests."""

    @patch("capacity_engine.holidays_client.requests.get")
    def test_returns_json(self, mock_get):
        mock_get.return_value = Mock(json=lambda: [{"countryCode": "GB"}])

        assert make_nager_request("/AvailableCountries") == [{"countryCode": "GB"}]
        mock_get.assert_called_once_with(
            f"{NAGER_BASE_URL}/AvailableCountries",
            headers={"Accept": "application/json"},
            params=None,
            timeout=30
        )

    @patch("capacity_engine.holidays_client.requests.get")
    def test_connection_error_returns_none(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("offline")
        assert make_nager_request("/AvailableCountries") is None

    @patch("capacity_engine.holidays_client.requests.get")
    def test_http_error_returns_none(self, mock_get):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Not Found")
        mock_get.return_value = response
        assert make_nager_request("/PublicHolidays/2026/XX") is None

    @patch("capacity_engine.holidays_client.requests.get")
    def test_invalid_json_returns_none(self, mock_get):
        response = Mock()
        response.json.side_effect = ValueError("No JSON object could be decoded")
        mock_get.return_value = response
        assert make_nager_request("/AvailableCountries") is None


class TestFetchPublicHolidays:
    """Test holiday fetching and filtering."""

    @patch("capacity_engine.holidays_client.requests.get")
    def test_keeps_public_and_bank_holidays(self, mock_get):
        mock_get.return_value = Mock(json=lambda: NAGER_GB_2026)

        holidays = fetch_public_holidays("uk", 2026)

        assert [h["date"] for h in holidays] == ["2026-01-01", "2026-01-02", "2026-04-03"]
        assert mock_get.call_args[0][0] == f"{NAGER_BASE_URL}/PublicHolidays/2026/GB"

    @patch("capacity_engine.holidays_client.requests.get")
    def test_failure_returns_none(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout("slow")
        assert fetch_public_holidays("GB", 2026) is None

    @patch("capacity_engine.holidays_client.requests.get")
    def test_available_countries(self, mock_get):
        mock_get.return_value = Mock(json=lambda: [{"countryCode": "CA", "name": "Canada"}])
        assert fetch_available_countries() == [{"countryCode": "CA", "name": "Canada"}]


class TestToPublicHolidays:
    """Test conversion to planner holidays."""

    def test_converts_and_stamps_country(self):
        holidays = to_public_holidays(NAGER_GB_2026[:2], "country-uk")
        assert holidays == [
            {"id": "country-uk-2026-01-01", "countryId": "country-uk",
             "date": "2026-01-01", "name": "New Year's Day"},
            {"id": "country-uk-2026-01-02", "countryId": "country-uk",
             "date": "2026-01-02", "name": "2 January"},
        ]

    def test_duplicate_dates_collapse(self):
        duplicated = [
            {"date": "2026-12-28", "name": "Boxing Day (substitute)"},
            {"date": "2026-12-28", "name": "Christmas Day (substitute)"},
        ]
        holidays = to_public_holidays(duplicated, "gb")
        assert [h["name"] for h in holidays] == ["Boxing Day (substitute)"]

    def test_missing_names_and_dates(self):
        holidays = to_public_holidays([{"date": "2026-05-04", "localName": "Early May"}, {"name": "x"}], "gb")
        assert holidays == [{"id": "gb-2026-05-04", "countryId": "gb", "date": "2026-05-04",
                             "name": "Early May"}]

    def test_none_input(self):
        assert to_public_holidays(None, "gb") == []
