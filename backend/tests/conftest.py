"""Shared fixtures for capacity planner tests."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def uk_holidays():
    """A few 2026 UK public holidays."""
    return [
        {"id": "gb-2026-01-01", "countryId": "gb", "date": "2026-01-01", "name": "New Year's Day"},
        {"id": "gb-2026-04-03", "countryId": "gb", "date": "2026-04-03", "name": "Good Friday"},
        {"id": "gb-2026-04-06", "countryId": "gb", "date": "2026-04-06", "name": "Easter Monday"},
    ]


@pytest.fixture
def ca_holidays():
    """A Canadian holiday that should never affect UK members."""
    return [
        {"id": "ca-2026-02-16", "countryId": "ca", "date": "2026-02-16", "name": "Family Day"},
    ]


@pytest.fixture
def sample_members():
    """Team members across two countries."""
    return [
        {
            "id": "m-alice",
            "name": "Alice",
            "email": "alice@example.com",
            "countryId": "gb",
            "skillIds": ["s-python", "s-sql"],
            "maxConcurrentProjects": 1
        },
        {
            "id": "m-bob",
            "name": "Bob",
            "email": "bob@example.com",
            "countryId": "ca",
            "skillIds": ["s-react"]
        },
    ]


@pytest.fixture
def sample_skills():
    return [
        {"id": "s-python", "name": "Python"},
        {"id": "s-sql", "name": "SQL"},
        {"id": "s-react", "name": "React"},
    ]


@pytest.fixture
def sample_projects():
    """Projects with quarter-spanning and date-bounded phases."""
    return [
        {
            "id": "p-billing",
            "name": "Billing Revamp",
            "status": "active",
            "phases": [
                {
                    "id": "ph-build",
                    "name": "Build",
                    "startQuarter": "Q1 2026",
                    "endQuarter": "Q2 2026",
                    "confidenceLevel": "medium",
                    "requiredSkillIds": ["s-python"]
                },
                {
                    "id": "ph-ui",
                    "name": "UI",
                    "startDate": "2026-02-02",
                    "endDate": "2026-03-13",
                    "confidenceLevel": "low",
                    "requiredSkillIds": ["s-react"]
                },
            ]
        },
        {
            "id": "p-reports",
            "name": "Reporting",
            "status": "active",
            "phases": [
                {
                    "id": "ph-reports",
                    "name": "Delivery",
                    "startQuarter": "Q1 2026",
                    "confidenceLevel": "high"
                },
            ]
        },
        {
            "id": "p-legacy",
            "name": "Legacy Cleanup",
            "status": "Completed",
            "phases": [
                {"id": "ph-legacy", "name": "Cleanup", "startQuarter": "Q1 2026"},
            ]
        },
    ]


@pytest.fixture
def base_state(sample_members, sample_skills, uk_holidays, ca_holidays):
    """Planning state with members and holidays but no work."""
    return {
        "asOfDate": "2026-01-15",
        "settings": {"bauReserveDays": 5},
        "teamMembers": sample_members,
        "skills": sample_skills,
        "publicHolidays": uk_holidays + ca_holidays,
        "projects": [],
        "assignments": [],
        "timeOff": [],
        "jiraWorkItems": []
    }


@pytest.fixture
def planned_state(base_state, sample_projects):
    """Planning state with project assignments for Q1 2026."""
    return {
        **base_state,
        "projects": sample_projects,
        "assignments": [
            {"projectId": "p-billing", "phaseId": "ph-build", "memberId": "m-alice",
             "quarter": "Q1 2026", "days": 10},
            {"projectId": "p-reports", "phaseId": "ph-reports", "memberId": "m-alice",
             "quarter": "Q1 2026", "days": 20},
            {"projectId": "p-billing", "phaseId": "ph-ui", "memberId": "m-bob",
             "quarter": "Q1 2026", "days": 8},
            {"projectId": "p-legacy", "phaseId": "ph-legacy", "memberId": "m-bob",
             "quarter": "Q1 2026", "days": 30},
        ]
    }


@pytest.fixture
def jira_items():
    """Jira work items assigned by email; Sprint 2 2026 falls in Q1 2026."""
    return [
        {
            "jiraKey": "BILL-1",
            "summary": "Invoice export",
            "assigneeEmail": "Alice@Example.com",
            "storyPoints": 4,
            "sprintName": "Billing Sprint 2",
            "statusCategory": "In Progress",
            "confidenceLevel": "high"
        },
        {
            "jiraKey": "BILL-2",
            "summary": "Already shipped",
            "assigneeEmail": "alice@example.com",
            "storyPoints": 8,
            "sprintName": "Billing Sprint 2",
            "statusCategory": "Done"
        },
        {
            "jiraKey": "BILL-3",
            "summary": "Unestimated",
            "assigneeEmail": "alice@example.com",
            "storyPoints": None,
            "sprintName": "Billing Sprint 2"
        },
        {
            "jiraKey": "BILL-4",
            "summary": "Someone else's",
            "assigneeEmail": "bob@example.com",
            "storyPoints": 3,
            "sprintName": "Billing Sprint 2"
        },
        {
            "jiraKey": "BILL-5",
            "summary": "Summer work",
            "assigneeEmail": "alice@example.com",
            "storyPoints": 6,
            "sprintName": "Billing Sprint 10"
        },
    ]


@pytest.fixture
def story_hierarchy():
    """Epic -> two features -> two stories each (3 and 5 points)."""
    return [
        {"jiraKey": "EPIC-1", "storyPoints": 99},
        {"jiraKey": "FEAT-1", "parentKey": "EPIC-1"},
        {"jiraKey": "FEAT-2", "parentKey": "EPIC-1"},
        {"jiraKey": "STORY-1", "parentKey": "FEAT-1", "storyPoints": 3, "confidenceLevel": "medium"},
        {"jiraKey": "STORY-2", "parentKey": "FEAT-1", "storyPoints": 5, "confidenceLevel": "medium"},
        {"jiraKey": "STORY-3", "parentKey": "FEAT-2", "storyPoints": 3, "confidenceLevel": "medium"},
        {"jiraKey": "STORY-4", "parentKey": "FEAT-2", "storyPoints": 5, "confidenceLevel": "medium"},
    ]


@pytest.fixture
def app(monkeypatch, tmp_path):
    """Create Flask test app with no planner config file."""
    monkeypatch.setenv("PLANNER_CONFIG_PATH", str(tmp_path / "missing.json"))

    from capacity_api import create_app
    app = create_app()
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
