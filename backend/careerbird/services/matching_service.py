"""
Matching Service - profile/grant match scores and reviewer rankings.

Match score (student facing, 0-100):
    Weighted comparison of the fields a profile and a grant both describe.
    Only comparable criteria count; the score is earned weight over the
    weight of the criteria that applied. When nothing is comparable the
    legacy display constant is returned instead of a made-up number.

Ranking (professor facing):
    Applications to one grant are ordered by descending r_score, earlier
    submission first on ties, and numbered 1..N. Only applications that
    reached review and carry an r_score are ranked.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging
import re

from careerbird.core.config import settings
from careerbird.services.application_status import is_reviewed
from careerbird.services.profile_completeness_service import field_value, is_present

logger = logging.getLogger(__name__)

# Criterion weights, summing to 100
MATCH_WEIGHTS: Dict[str, int] = {
    "field_of_study": 30,
    "research_interests": 25,
    "degree_level": 20,
    "gpa": 15,
    "country": 10,
}

# Grant minimum GPAs are expressed on this scale
REFERENCE_GPA_SCALE = 4.0

_STOP_WORDS = {"with", "from", "into", "that", "this", "their", "studies", "study", "research"}


@dataclass
class MatchResult:
    """Result of comparing one profile with one grant."""
    score: int  # 0-100
    strong_matches: List[str] = field(default_factory=list)
    gaps: List[str] = field(default_factory=list)
    criteria_used: List[str] = field(default_factory=list)
    is_fallback: bool = False


@dataclass
class RankedApplication:
    """An application with its 1-based position in the review queue."""
    application: Any
    rank: int
    r_score: int


def _lower_set(values: Any) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip().lower() for v in values if is_present(v)]


def _interests(profile: Any) -> List[str]:
    """Research interests from a saved tag list or comma-separated form text."""
    raw = field_value(profile, "research_interests")
    if isinstance(raw, str):
        raw = raw.split(",")
    return _lower_set(raw)


def _keywords(text: str) -> set:
    return {w for w in re.findall(r'\b\w{4,}\b', text.lower()) if w not in _STOP_WORDS}


def _mentions(text: str, phrase: str) -> bool:
    """Whole-word, case-insensitive occurrence of phrase in text."""
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text, re.IGNORECASE) is not None


def _text_matches(needle: str, haystack: List[str]) -> bool:
    """Case-insensitive equality or containment either way."""
    return any(needle == item or needle in item or item in needle for item in haystack)


def normalized_gpa(gpa: Optional[float], scale: Optional[float]) -> Optional[float]:
    """Convert a GPA to the 4.0 reference scale."""
    if gpa is None:
        return None
    scale = scale or settings.DEFAULT_GPA_SCALE
    if scale <= 0:
        return None
    return float(gpa) / float(scale) * REFERENCE_GPA_SCALE


class MatchingService:
    """Deterministic match scoring and rank assignment."""

    @staticmethod
    def evaluate_match(profile: Any, grant: Any, legacy_score: Optional[int] = None) -> MatchResult:
        """
        Compare a profile with a grant.

        Each criterion applies only when both sides carry data for it.
        """
        if legacy_score is None:
            legacy_score = settings.LEGACY_MATCH_SCORE

        if profile is None or grant is None:
            return MatchResult(score=legacy_score, is_fallback=True)

        applicable = 0
        earned = 0.0
        strong_matches = []
        gaps = []
        used = []

        # Field of study
        student_field = (field_value(profile, "field_of_study") or "").strip().lower()
        grant_fields = _lower_set(field_value(grant, "fields_of_study"))
        if student_field and grant_fields:
            weight = MATCH_WEIGHTS["field_of_study"]
            applicable += weight
            used.append("field_of_study")
            if _text_matches(student_field, grant_fields):
                earned += weight
                strong_matches.append(f"Field of study: {field_value(profile, 'field_of_study')}")
            else:
                gaps.append("Field of study is not among the grant's eligible fields")

        # Research interests against everything the grant says about itself
        interests = _interests(profile)
        grant_text = " ".join(
            [field_value(grant, "title") or "", field_value(grant, "description") or ""] + grant_fields
        )
        grant_keywords = _keywords(grant_text)
        if interests and grant_keywords:
            weight = MATCH_WEIGHTS["research_interests"]
            applicable += weight
            used.append("research_interests")
            matched = [
                interest for interest in interests
                if _mentions(grant_text, interest) or _keywords(interest) & grant_keywords
            ]
            earned += weight * len(matched) / len(interests)
            if matched:
                strong_matches.append(f"Research interests: {', '.join(matched[:3])}")
            else:
                gaps.append("No research interest overlaps the grant's focus")

        # Degree level
        degree = (field_value(profile, "current_degree") or "").strip().lower()
        degree_levels = _lower_set(field_value(grant, "degree_levels"))
        if degree and degree_levels:
            weight = MATCH_WEIGHTS["degree_level"]
            applicable += weight
            used.append("degree_level")
            if degree in degree_levels:
                earned += weight
                strong_matches.append(f"Degree level: {degree}")
            else:
                gaps.append(f"Grant is open to {', '.join(degree_levels)}")

        # GPA against the minimum
        gpa = normalized_gpa(field_value(profile, "gpa"), field_value(profile, "gpa_scale"))
        min_gpa = field_value(grant, "min_gpa")
        if gpa is not None and min_gpa is not None:
            weight = MATCH_WEIGHTS["gpa"]
            applicable += weight
            used.append("gpa")
            if gpa >= float(min_gpa):
                earned += weight
                strong_matches.append(f"GPA meets the {min_gpa} minimum")
            else:
                gaps.append(f"GPA below the {min_gpa} minimum")

        # Country eligibility
        countries = _lower_set(field_value(grant, "eligible_countries"))
        student_countries = _lower_set([
            field_value(profile, "nationality"),
            field_value(profile, "current_country"),
        ])
        if countries and student_countries:
            weight = MATCH_WEIGHTS["country"]
            applicable += weight
            used.append("country")
            if any(country in countries for country in student_countries):
                earned += weight
                strong_matches.append("Eligible country")
            else:
                gaps.append("Country not listed as eligible")

        if applicable == 0:
            logger.debug("No comparable fields between profile and grant; using legacy match score")
            return MatchResult(score=legacy_score, is_fallback=True)

        score = int(round(earned / applicable * 100))
        return MatchResult(
            score=max(0, min(100, score)),
            strong_matches=strong_matches,
            gaps=gaps,
            criteria_used=used,
        )

    @staticmethod
    def compute_match(profile: Any, grant: Any, legacy_score: Optional[int] = None) -> int:
        """Match percentage (0-100) between a profile and a grant."""
        return MatchingService.evaluate_match(profile, grant, legacy_score).score

    @staticmethod
    def is_rankable(application: Any) -> bool:
        """
        Reviewed-or-later applications with an r_score.

        Rows without a status (plain score records) are judged on r_score alone.
        """
        if field_value(application, "r_score") is None:
            return False
        status = field_value(application, "status")
        return status is None or is_reviewed(status)

    @staticmethod
    def compute_rank(applications: Iterable[Any]) -> List[RankedApplication]:
        """
        Order one grant's applications for review and number them 1..N.

        Higher r_score first; ties go to the earlier submission, then the lower id
        so the order is total.
        """
        far_future = datetime.max.replace(tzinfo=timezone.utc)

        def submitted_key(application: Any) -> datetime:
            submitted = field_value(application, "submitted_at")
            if submitted is None:
                return far_future
            if submitted.tzinfo is None:
                submitted = submitted.replace(tzinfo=timezone.utc)
            return submitted

        def id_key(application: Any):
            identifier = field_value(application, "id")
            return (identifier is None, str(identifier) if identifier is not None else "")

        candidates = [app for app in applications if MatchingService.is_rankable(app)]
        candidates.sort(key=lambda app: (
            -field_value(app, "r_score"),
            submitted_key(app),
            id_key(app),
        ))

        return [
            RankedApplication(application=app, rank=position, r_score=field_value(app, "r_score"))
            for position, app in enumerate(candidates, start=1)
        ]
