"""
Tests for match scores and reviewer rankings.
"""

from datetime import datetime, timedelta, timezone

import pytest

from careerbird.core.config import settings
from careerbird.services.matching_service import MatchingService, normalized_gpa

GRANT = {
    "title": "Computing Research Fellowship",
    "description": "Doctoral research in machine learning",
    "fields_of_study": ["Computer Science", "Mathematics"],
    "degree_levels": ["phd"],
    "min_gpa": 3.5,
    "eligible_countries": ["United Kingdom"],
}

STRONG_PROFILE = {
    "field_of_study": "Mathematics",
    "research_interests": ["machine learning"],
    "current_degree": "phd",
    "gpa": 3.9,
    "gpa_scale": 4.0,
    "nationality": "United Kingdom",
}


class TestComputeMatch:

    def test_strong_profile_matches_fully(self):
        result = MatchingService.evaluate_match(STRONG_PROFILE, GRANT)

        assert result.score == 100
        assert result.is_fallback is False
        assert result.gaps == []
        assert set(result.criteria_used) == {"field_of_study", "research_interests", "degree_level", "gpa", "country"}

    def test_no_comparable_fields_uses_legacy_score(self):
        result = MatchingService.evaluate_match({"first_name": "Ada"}, {"title": "Untitled"})

        assert result.score == settings.LEGACY_MATCH_SCORE == 98
        assert result.is_fallback is True

    def test_missing_profile_uses_legacy_score(self):
        assert MatchingService.compute_match(None, GRANT) == 98

    def test_legacy_score_can_be_overridden(self):
        assert MatchingService.compute_match({}, {}, legacy_score=50) == 50

    def test_only_applicable_criteria_count(self):
        """A field mismatch alone scores 0, not 70."""
        profile = {"field_of_study": "History"}
        grant = {"fields_of_study": ["Computer Science"]}

        assert MatchingService.compute_match(profile, grant) == 0

    def test_degree_mismatch_reports_gap(self):
        profile = dict(STRONG_PROFILE, current_degree="bachelors")

        result = MatchingService.evaluate_match(profile, GRANT)

        assert result.score == 80
        assert any("phd" in gap for gap in result.gaps)

    def test_gpa_is_compared_on_the_four_point_scale(self):
        grant = {"min_gpa": 3.5}

        assert MatchingService.compute_match({"gpa": 8.5, "gpa_scale": 10}, grant) == 0
        assert MatchingService.compute_match({"gpa": 9.0, "gpa_scale": 10}, grant) == 100
        assert MatchingService.compute_match({"gpa": 3.5}, grant) == 100

    def test_research_interests_get_partial_credit(self):
        profile = {"research_interests": ["machine learning", "poetry"]}
        grant = {"title": "Health AI Fellowship", "description": "Work on machine learning for health"}

        assert MatchingService.compute_match(profile, grant) == 50

    def test_interest_text_is_split_on_commas(self):
        profile = {"research_interests": "machine learning, poetry"}
        grant = {"title": "Health AI Fellowship", "description": "Work on machine learning for health"}

        assert MatchingService.compute_match(profile, grant) == 50

    def test_short_interest_must_match_a_whole_word(self):
        grant = {"title": "Lab Technician Grant", "description": "Maintain the imaging equipment"}

        assert MatchingService.compute_match({"research_interests": ["AI"]}, grant) == 0
        assert MatchingService.compute_match({"research_interests": ["imaging"]}, grant) == 100
        assert MatchingService.compute_match(
            {"research_interests": ["AI"]}, {"title": "Health AI Fellowship", "description": "Clinical work"}
        ) == 100

    def test_current_country_also_satisfies_eligibility(self):
        profile = {"nationality": "Ghana", "current_country": "united kingdom"}

        assert MatchingService.compute_match(profile, {"eligible_countries": ["United Kingdom"]}) == 100

    def test_score_stays_in_range(self):
        for profile in ({}, STRONG_PROFILE, {"field_of_study": "Art", "gpa": 1.0}):
            assert 0 <= MatchingService.compute_match(profile, GRANT) <= 100


def test_normalized_gpa():
    assert normalized_gpa(None, 4.0) is None
    assert normalized_gpa(5.0, 10.0) == pytest.approx(2.0)
    assert normalized_gpa(3.0, None) == pytest.approx(3.0)
    assert normalized_gpa(3.0, 0) == pytest.approx(3.0)


class TestComputeRank:

    DAY1 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def _app(self, id, r_score, submitted_at=None, status="under_review"):
        return {"id": id, "r_score": r_score, "submitted_at": submitted_at, "status": status}

    def test_tie_goes_to_earlier_submission(self):
        later = self._app(1, 90, self.DAY1 + timedelta(days=1))
        earlier = self._app(2, 90, self.DAY1)

        ranked = MatchingService.compute_rank([later, earlier])

        assert [(entry.application["id"], entry.rank) for entry in ranked] == [(2, 1), (1, 2)]

    def test_higher_score_ranks_first(self):
        ranked = MatchingService.compute_rank([
            self._app(1, 70, self.DAY1),
            self._app(2, 95, self.DAY1 + timedelta(days=3)),
            self._app(3, 80, self.DAY1),
        ])

        assert [entry.application["id"] for entry in ranked] == [2, 3, 1]
        assert [entry.rank for entry in ranked] == [1, 2, 3]

    def test_unscored_and_unreviewed_applications_are_excluded(self):
        ranked = MatchingService.compute_rank([
            self._app(1, None),
            self._app(2, 90, status="draft"),
            self._app(3, 90, status="submitted"),
            self._app(4, 60, status="shortlisted"),
            self._app(5, 50, status="rejected"),
            self._app(6, 40, status=None),
        ])

        assert [entry.application["id"] for entry in ranked] == [4, 5, 6]

    def test_full_tie_falls_back_to_id(self):
        ranked = MatchingService.compute_rank([
            self._app(9, 80, self.DAY1),
            self._app(3, 80, self.DAY1),
        ])

        assert [entry.application["id"] for entry in ranked] == [3, 9]

    def test_missing_submission_time_loses_ties(self):
        ranked = MatchingService.compute_rank([
            self._app(1, 80, None),
            self._app(2, 80, self.DAY1),
        ])

        assert [entry.application["id"] for entry in ranked] == [2, 1]

    def test_naive_and_aware_timestamps_mix(self):
        naive = self._app(1, 80, datetime(2026, 1, 2, 9, 0))
        aware = self._app(2, 80, self.DAY1)

        ranked = MatchingService.compute_rank([naive, aware])

        assert [entry.application["id"] for entry in ranked] == [2, 1]

    def test_ranks_form_a_permutation(self):
        applications = [
            self._app(i, (i * 37) % 101, self.DAY1 + timedelta(hours=(i * 13) % 7))
            for i in range(1, 40)
        ]

        ranked = MatchingService.compute_rank(applications)

        assert [entry.rank for entry in ranked] == list(range(1, len(applications) + 1))
        scores = [entry.r_score for entry in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_empty_input(self):
        assert MatchingService.compute_rank([]) == []
