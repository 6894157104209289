"""
Dashboard Service - the numbers on the student dashboard.

Everything here is computed on read from the student's profile,
applications, bookmarks and the open grants; nothing is stored.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from careerbird.services import deadline_service
from careerbird.services.deadline_service import DateLike, ThisWeekItem
from careerbird.services.matching_service import MatchingService
from careerbird.services.profile_completeness_service import ProfileCompletenessService, field_value, is_present


@dataclass
class Recommendation:
    grant: Any
    match_score: int
    is_fallback: bool


@dataclass
class DashboardSummary:
    greeting_name: str
    applications_sent: int
    pending_review: int
    interviews: int
    deadlines_this_week: int
    profile_strength: int
    missing_profile_fields: List[str] = field(default_factory=list)
    this_week: List[ThisWeekItem] = field(default_factory=list)
    saved_grants: List[Any] = field(default_factory=list)
    recommendation: Optional[Recommendation] = None


def greeting_name(profile: Any) -> str:
    """First name, else the first word of the full name, else "there"."""
    first_name = field_value(profile, "first_name")
    if is_present(first_name):
        return first_name.strip()
    full_name = field_value(profile, "full_name")
    if is_present(full_name):
        return full_name.split()[0]
    return "there"


def recommend(profile: Any, grants: Iterable[Any], now: Optional[DateLike] = None) -> Optional[Recommendation]:
    """
    Best-matching grant that is still open.

    Grants without a deadline count as open. Ties keep the first grant in
    the given order.
    """
    best = None
    for grant in grants:
        deadline = field_value(grant, "deadline")
        if deadline and deadline_service.days_until(deadline, now) < 0:
            continue
        result = MatchingService.evaluate_match(profile, grant)
        if best is None or result.score > best.match_score:
            best = Recommendation(grant=grant, match_score=result.score, is_fallback=result.is_fallback)
    return best


class DashboardService:

    @staticmethod
    def build(
        profile: Any,
        applications: List[Any],
        saved_grants: Optional[List[Any]] = None,
        open_grants: Optional[List[Any]] = None,
        now: Optional[DateLike] = None,
    ) -> DashboardSummary:
        statuses = [field_value(app, "status") for app in applications]
        completeness = ProfileCompletenessService.evaluate(profile, "dashboard")

        return DashboardSummary(
            greeting_name=greeting_name(profile),
            applications_sent=len(applications),
            pending_review=sum(1 for s in statuses if s == "under_review"),
            interviews=sum(1 for s in statuses if s == "interview"),
            deadlines_this_week=deadline_service.count_this_week(applications, now),
            profile_strength=completeness.score,
            missing_profile_fields=completeness.missing,
            this_week=deadline_service.this_week(applications, now),
            saved_grants=list(saved_grants or [])[:3],
            recommendation=recommend(profile, open_grants or [], now),
        )
