"""Tests for informational business-contact capacity."""

from datetime import date, timedelta

import pytest

from capacity_engine.business import (
    business_capacity_for_quarter,
    business_capacity_for_window,
    resolve_business_assignment_range,
)


@pytest.fixture
def contact():
    return {"id": "c-finance", "name": "Finance Lead", "countryId": "gb"}


@pytest.fixture
def discovery_projects():
    """A phase spanning exactly two working weeks."""
    return [{
        "id": "p-erp",
        "name": "ERP Migration",
        "phases": [
            {"id": "ph-discovery", "name": "Discovery",
             "startDate": "2026-01-05", "endDate": "2026-01-16"},
            {"id": "ph-rollout", "name": "Rollout", "startQuarter": "Q2 2026"},
        ]
    }]


@pytest.fixture
def phase_assignment():
    return {"id": "ba-1", "contactId": "c-finance", "projectId": "p-erp",
            "phaseId": "ph-discovery", "days": 10}


class TestResolveAssignmentRange:
    """Test business assignment date ranges."""

    def test_phase_dates(self, phase_assignment, discovery_projects):
        assert resolve_business_assignment_range(phase_assignment, discovery_projects) == (
            date(2026, 1, 5), date(2026, 1, 16)
        )

    def test_phase_quarter_span(self, discovery_projects):
        assignment = {"phaseId": "ph-rollout", "days": 5}
        assert resolve_business_assignment_range(assignment, discovery_projects) == (
            date(2026, 4, 1), date(2026, 6, 30)
        )

    def test_falls_back_to_quarter(self, discovery_projects):
        assignment = {"phaseId": "ph-deleted", "quarter": "Q3 2026", "days": 5}
        assert resolve_business_assignment_range(assignment, discovery_projects) == (
            date(2026, 7, 1), date(2026, 9, 30)
        )

    def test_project_scopes_phase_lookup(self, discovery_projects):
        assignment = {"projectId": "p-other", "phaseId": "ph-discovery"}
        assert resolve_business_assignment_range(assignment, discovery_projects) is None


class TestBusinessCapacityForWindow:
    """Test weekly business capacity."""

    def test_two_week_phase_splits_evenly(self, contact, phase_assignment, discovery_projects):
        """10 days over two equal working weeks is 5 per week."""
        first = business_capacity_for_window(
            contact, "2026-01-05", "2026-01-11", [phase_assignment], [], [], discovery_projects
        )
        second = business_capacity_for_window(
            contact, "2026-01-12", "2026-01-18", [phase_assignment], [], [], discovery_projects
        )

        assert first["allocatedDays"] == pytest.approx(5)
        assert second["allocatedDays"] == pytest.approx(5)
        assert first["workingDays"] == 5
        assert first["usedPercent"] == 100
        assert first["allocations"] == [{
            "assignmentId": "ba-1",
            "projectId": "p-erp",
            "phaseId": "ph-discovery",
            "quarter": None,
            "days": pytest.approx(5)
        }]

    def test_time_off_reduces_available_days(self, contact, phase_assignment, discovery_projects):
        time_off = [{"contactId": "c-finance", "startDate": "2026-01-07", "endDate": "2026-01-08"}]
        cell = business_capacity_for_window(
            contact, "2026-01-05", "2026-01-11", [phase_assignment], time_off, [], discovery_projects
        )
        assert cell["timeOffDays"] == 2
        assert cell["availableDays"] == 3
        assert cell["usedPercent"] == 167
        assert cell["isTimeOff"] is False

    def test_overlapping_time_off_counts_dates_once(self, contact):
        time_off = [
            {"contactId": "c-finance", "startDate": "2026-01-07", "endDate": "2026-01-08"},
            {"contactId": "c-finance", "startDate": "2026-01-08", "endDate": "2026-01-09"},
        ]
        cell = business_capacity_for_window(contact, "2026-01-05", "2026-01-11", [], time_off, [], [])
        assert cell["timeOffDays"] == 3

    def test_full_week_off(self, contact):
        time_off = [{"contactId": "c-finance", "startDate": "2026-01-01", "endDate": "2026-01-31"}]
        cell = business_capacity_for_window(contact, "2026-01-05", "2026-01-11", [], time_off, [], [])
        assert cell["isTimeOff"] is True
        assert cell["availableDays"] == 0
        assert cell["usedPercent"] == 0

    def test_other_contacts_time_off_ignored(self, contact):
        time_off = [{"contactId": "c-other", "startDate": "2026-01-05", "endDate": "2026-01-09"}]
        cell = business_capacity_for_window(contact, "2026-01-05", "2026-01-11", [], time_off, [], [])
        assert cell["timeOffDays"] == 0

    def test_holiday_only_window(self, contact, uk_holidays):
        cell = business_capacity_for_window(contact, "2026-01-01", "2026-01-01", [], [], uk_holidays, [])
        assert cell["workingDays"] == 0
        assert cell["isPublicHoliday"] is True
        assert cell["usedPercent"] == 0

    def test_only_contact_country_holidays_apply(self, contact, ca_holidays):
        cell = business_capacity_for_window(contact, "2026-02-16", "2026-02-20", [], [], ca_holidays, [])
        assert cell["workingDays"] == 5

    def test_contact_without_country_uses_all_holidays(self, ca_holidays):
        cell = business_capacity_for_window({"id": "c-x"}, "2026-02-16", "2026-02-20", [], [], ca_holidays, [])
        assert cell["workingDays"] == 4

    def test_quarter_assignment_prorated_by_working_days(self, uk_holidays):
        contact = {"id": "c-ops", "countryId": "gb"}
        assignment = {"id": "ba-q", "contactId": "c-ops", "quarter": "Q1 2026", "days": 63}
        cell = business_capacity_for_window(contact, "2026-01-05", "2026-01-11", [assignment], [],
                                            uk_holidays, [])
        # 63 days over 63 working days
        assert cell["allocatedDays"] == pytest.approx(5)

    def test_window_outside_assignment(self, contact, phase_assignment, discovery_projects):
        cell = business_capacity_for_window(
            contact, "2026-02-02", "2026-02-08", [phase_assignment], [], [], discovery_projects
        )
        assert cell["allocatedDays"] == 0
        assert cell["allocations"] == []

    def test_invalid_window(self, contact):
        cell = business_capacity_for_window(contact, "2026-01-11", "2026-01-05", [], [], [], [])
        assert cell["workingDays"] == 0
        assert cell["allocations"] == []

    def test_weekly_shares_conserve_total(self, contact, discovery_projects):
        assignment = {"id": "ba-r", "contactId": "c-finance", "phaseId": "ph-rollout", "days": 40}
        mondays = [date(2026, 3, 30) + timedelta(weeks=i) for i in range(15)]
        total = sum(
            business_capacity_for_window(
                contact, monday, monday + timedelta(days=6),
                [assignment], [], [], discovery_projects
            )["allocatedDays"]
            for monday in mondays
        )
        assert total == pytest.approx(40)


class TestBusinessCapacityForQuarter:
    """Test quarter windows."""

    def test_whole_quarter(self, contact, phase_assignment, discovery_projects, uk_holidays):
        cell = business_capacity_for_quarter(
            contact, "Q1 2026", [phase_assignment], [], uk_holidays, discovery_projects
        )
        assert cell["workingDays"] == 63
        assert cell["allocatedDays"] == pytest.approx(10)

    def test_invalid_quarter(self, contact):
        cell = business_capacity_for_quarter(contact, "bad", [], [], [], [])
        assert cell["workingDays"] == 0
