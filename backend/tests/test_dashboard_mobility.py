"""
Tests for the dashboard summary and the mobility checklist.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from careerbird.services.dashboard_service import DashboardService, greeting_name, recommend
from careerbird.services.mobility_service import (
    MobilityService,
    departure_date,
    days_to_departure,
    upcoming_events,
)


def _days(now, offset):
    return (now + timedelta(days=offset)).date()


OXFORD = {"name": "University of Oxford", "city": "Oxford", "country": "United Kingdom"}
ETH = {"name": "ETH Zurich", "city": "Zurich", "country": "Switzerland"}


@pytest.mark.parametrize("profile, expected", [
    ({"first_name": " Ada ", "full_name": "Augusta Ada King"}, "Ada"),
    ({"first_name": "", "full_name": "Alan Mathison Turing"}, "Alan"),
    ({}, "there"),
    (None, "there"),
])
def test_greeting_name(profile, expected):
    assert greeting_name(profile) == expected


class TestDashboard:

    def test_counts_come_from_statuses_and_deadlines(self, now):
        applications = [
            {"id": 1, "status": "under_review", "grant": {"title": "A", "deadline": _days(now, 2)}},
            {"id": 2, "status": "interview", "grant": {"title": "B", "deadline": _days(now, 10)}},
            {"id": 3, "status": "submitted", "grant": {"title": "C", "deadline": None}},
        ]

        summary = DashboardService.build({"first_name": "Ada"}, applications, now=now)

        assert summary.greeting_name == "Ada"
        assert summary.applications_sent == 3
        assert summary.pending_review == 1
        assert summary.interviews == 1
        assert summary.deadlines_this_week == 1
        assert [item.title for item in summary.this_week] == ["A"]

    def test_profile_strength_uses_dashboard_weighting(self, now):
        profile = {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "bio": "Mathematician",
            "current_degree": "phd",
            "field_of_study": "Mathematics",
            "gpa": 3.9,
            "research_interests": "unsplit text",
        }

        summary = DashboardService.build(profile, [], now=now)

        assert summary.profile_strength == 86
        assert summary.missing_profile_fields == ["research_interests"]

    def test_saved_grants_are_capped_at_three(self, now):
        saved = [{"id": i} for i in range(5)]

        summary = DashboardService.build(None, [], saved_grants=saved, now=now)

        assert [grant["id"] for grant in summary.saved_grants] == [0, 1, 2]
        assert summary.profile_strength == 0
        assert summary.recommendation is None


class TestRecommend:

    def test_best_open_grant_wins(self, now):
        profile = {"first_name": "Ada", "field_of_study": "Mathematics"}
        grants = [
            {"id": 1, "title": "Closed", "deadline": _days(now, -1), "fields_of_study": ["Mathematics"]},
            {"id": 2, "title": "History Prize", "deadline": _days(now, 20), "fields_of_study": ["History"]},
            {"id": 3, "title": "Maths Award", "deadline": _days(now, 20), "fields_of_study": ["Mathematics"]},
            {"id": 4, "title": "Rolling", "deadline": None, "fields_of_study": ["Mathematics"]},
        ]

        result = recommend(profile, grants, now)

        assert result.grant["id"] == 3
        assert result.match_score == 100
        assert result.is_fallback is False

    def test_no_open_grants(self, now):
        assert recommend({}, [{"deadline": _days(now, -3)}], now) is None


class TestMobility:

    def test_departure_prefers_start_date(self):
        assert departure_date({"start_date": date(2026, 10, 1), "deadline": date(2026, 3, 15)}) == date(2026, 10, 1)

    def test_departure_falls_back_to_three_months_after_deadline(self):
        assert departure_date({"deadline": date(2026, 11, 30)}) == date(2027, 2, 28)
        assert departure_date({}) is None

    def test_countdown_never_goes_negative(self, now):
        assert days_to_departure({"start_date": _days(now, -10)}, now) == 0
        assert days_to_departure({"start_date": _days(now, 45)}, now) == 45
        assert days_to_departure(None, now) == 0

    def test_no_acceptance_locks_the_journey(self, now):
        checklist = MobilityService.build(None, [{"id": 1, "status": "interview", "grant": None}], now=now)

        assert checklist.first_name == "Student"
        assert checklist.destination == "Your Destination University"
        assert checklist.days_to_departure == 0
        assert [step.status for step in checklist.journey] == ["pending", "locked", "locked", "locked"]

    def test_latest_acceptance_sets_the_destination(self, now):
        applications = [
            {
                "id": 1, "status": "accepted",
                "decision_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
                "grant": {"title": "Old", "start_date": _days(now, 200), "university": ETH},
            },
            {
                "id": 2, "status": "accepted",
                "decision_at": datetime(2026, 2, 5, 9, 0),
                "grant": {"title": "New", "start_date": _days(now, 120), "university": OXFORD},
            },
            {"id": 3, "status": "rejected", "decision_at": datetime(2026, 3, 1, tzinfo=timezone.utc), "grant": None},
        ]
        profile = {
            "first_name": "Ada", "last_name": "Lovelace", "nationality": "United Kingdom",
            "current_country": "Nigeria", "field_of_study": "Mathematics",
        }

        checklist = MobilityService.build(profile, applications, document_count=2, now=now)

        assert checklist.first_name == "Ada"
        assert checklist.destination == "University of Oxford"
        assert checklist.destination_city == "Oxford"
        assert checklist.days_to_departure == 120
        assert checklist.readiness_score == 76
        assert checklist.journey[0].status == "completed"
        assert "University of Oxford" in checklist.journey[0].description
        assert checklist.journey[1].status == "in-progress"

    def test_upcoming_events_window(self, now):
        applications = [
            {"id": i, "grant": {"title": f"Grant {offset}", "deadline": _days(now, offset)}}
            for i, offset in enumerate((31, 12, -1, 3, 0))
        ]

        events = upcoming_events(applications, now)

        assert [event.days_left for event in events] == [0, 3, 12]
        assert [event.type for event in events] == ["urgent", "urgent", "info"]
        assert events[0].title == "Deadline: Grant 0"
