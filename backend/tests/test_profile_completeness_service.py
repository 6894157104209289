"""
Tests for profile completeness scoring (dashboard and wizard modes).
"""

import pytest

from careerbird.services.profile_completeness_service import ProfileCompletenessService, is_present

DASHBOARD_FIELDS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "bio": "Analyst of engines",
    "current_degree": "phd",
    "field_of_study": "Mathematics",
    "gpa": 3.9,
    "research_interests": ["Computing"],
}


def test_ada_dashboard_scores_71():
    """Research interests typed as text do not count on the dashboard."""
    profile = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "current_degree": "phd",
        "field_of_study": "Mathematics",
        "gpa": 3.9,
        "research_interests": "Computing",
    }

    result = ProfileCompletenessService.evaluate(profile, "dashboard")

    assert result.score == 71
    assert set(result.missing) == {"bio", "research_interests"}


def test_ada_wizard_counts_interest_text():
    profile = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "current_degree": "phd",
        "field_of_study": "Mathematics",
        "gpa": 3.9,
        "research_interests": "Computing",
    }

    assert ProfileCompletenessService.score(profile, "wizard") == 100


def test_missing_profile_scores_zero():
    assert ProfileCompletenessService.score(None, "dashboard") == 0
    assert ProfileCompletenessService.score(None, "wizard") == 0
    result = ProfileCompletenessService.evaluate(None, "dashboard")
    assert len(result.missing) == 7


def test_empty_profile_scores_zero():
    assert ProfileCompletenessService.score({}, "dashboard") == 0
    assert ProfileCompletenessService.score({}, "wizard") == 0


def test_full_dashboard_profile_scores_100():
    assert ProfileCompletenessService.score(DASHBOARD_FIELDS, "dashboard") == 100


def test_full_name_stands_in_for_both_names_on_dashboard():
    profile = {"full_name": "Ada Lovelace"}

    result = ProfileCompletenessService.evaluate(profile, "dashboard")

    assert result.present == ["first_name", "last_name"]
    assert result.score == 29


def test_full_name_does_not_count_in_wizard_mode():
    assert ProfileCompletenessService.score({"full_name": "Ada Lovelace"}, "wizard") == 0


def test_whitespace_only_text_is_absent():
    profile = {"first_name": "   ", "last_name": "\t", "bio": "\n"}

    assert ProfileCompletenessService.score(profile, "dashboard") == 0


def test_zero_gpa_counts_as_present():
    assert ProfileCompletenessService.evaluate({"gpa": 0.0}, "dashboard").present == ["gpa"]


def test_empty_interest_list_is_absent():
    assert ProfileCompletenessService.evaluate({"research_interests": []}, "dashboard").present == []
    assert ProfileCompletenessService.evaluate({"research_interests": ["  "]}, "dashboard").present == []


@pytest.mark.parametrize("mode", ["dashboard", "wizard"])
def test_score_is_monotonic_in_present_fields(mode):
    """Adding any counted field never lowers the score, and it stays in range."""
    profile = {}
    previous = ProfileCompletenessService.score(profile, mode)
    for name, value in DASHBOARD_FIELDS.items():
        profile[name] = value
        current = ProfileCompletenessService.score(profile, mode)
        assert current >= previous
        assert 0 <= current <= 100
        previous = current
    assert previous == 100


def test_orm_like_objects_are_supported():
    class Row:
        first_name = "Ada"
        last_name = "Lovelace"
        bio = None
        current_degree = None
        field_of_study = None
        gpa = None
        research_interests = None

    assert ProfileCompletenessService.score(Row(), "dashboard") == 29


def test_unknown_mode_raises():
    with pytest.raises(ValueError, match="Unknown completeness mode"):
        ProfileCompletenessService.score({}, "sidebar")


def test_is_present():
    assert is_present("x")
    assert not is_present("")
    assert not is_present(None)
    assert is_present(0)
    assert is_present(["a"])
    assert not is_present([])


class TestReadinessScore:

    BASICS = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "nationality": "British",
        "current_country": "United Kingdom",
        "field_of_study": "Mathematics",
    }

    def test_basics_alone_are_worth_60(self):
        assert ProfileCompletenessService.readiness_score(self.BASICS, document_count=0) == 60

    def test_documents_add_eight_each_capped_at_100(self):
        assert ProfileCompletenessService.readiness_score(self.BASICS, document_count=4) == 92
        assert ProfileCompletenessService.readiness_score(self.BASICS, document_count=5) == 100
        assert ProfileCompletenessService.readiness_score(self.BASICS, document_count=9) == 100

    def test_partial_basics(self):
        profile = {"first_name": "Ada", "last_name": "Lovelace", "nationality": "British"}
        assert ProfileCompletenessService.readiness_score(profile, document_count=1) == 44

    def test_no_profile(self):
        assert ProfileCompletenessService.readiness_score(None) == 0
