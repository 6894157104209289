"""
Search Service - browse filters, filter facets, profile search results and
the review-queue search box.

Grant filtering itself runs in GrantRepository.search; matches_any is the
list-column rule it applies to loaded rows.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from careerbird.services.profile_completeness_service import field_value


@dataclass
class GrantFilters:
    """Browse filters; empty selections mean "no restriction"."""
    q: Optional[str] = None
    degree_levels: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)


@dataclass
class GrantFacets:
    countries: List[str]
    fields: List[str]


def _fold(value: Any) -> str:
    return str(value).strip().lower() if value is not None else ""


def _fold_all(values: Optional[Iterable[Any]]) -> List[str]:
    return [_fold(v) for v in (values or []) if _fold(v)]


def grant_country(grant: Any) -> Optional[str]:
    return field_value(field_value(grant, "university"), "country")


def matches_any(selected: Sequence[str], values: Optional[Iterable[Any]]) -> bool:
    """True when nothing is selected or any selected value is in the grant's list."""
    wanted = _fold_all(selected)
    if not wanted:
        return True
    available = set(_fold_all(values))
    return any(value in available for value in wanted)


def extract_facets(grants: Iterable[Any]) -> GrantFacets:
    """Unique university countries and fields of study, for the filter sidebar."""
    countries = set()
    fields_of_study = set()
    for grant in grants:
        country = grant_country(grant)
        if country:
            countries.add(country)
        for name in field_value(grant, "fields_of_study") or []:
            if name:
                fields_of_study.add(name)
    return GrantFacets(countries=sorted(countries), fields=sorted(fields_of_study))


MIN_PROFILE_QUERY_LENGTH = 2
PROFILE_SEARCH_LIMIT = 10


@dataclass
class ProfileCard:
    """One row of the claim-your-profile search results."""
    id: int
    name: str
    title: str
    department: str
    university: str


def profile_card(profile: Any) -> ProfileCard:
    first = field_value(profile, "first_name") or ""
    last = field_value(profile, "last_name") or ""
    return ProfileCard(
        id=field_value(profile, "id"),
        name=f"{first} {last}".strip() or "Unknown",
        title=field_value(profile, "title") or "Professor",
        department=field_value(profile, "department") or "",
        university=field_value(field_value(profile, "university"), "name") or "Unknown University",
    )


def candidate_search_text(candidate: Any) -> List[str]:
    """Strings a professor can search a review-queue row by."""
    values = [
        field_value(candidate, "name"),
        field_value(candidate, "candidate_id"),
        field_value(candidate, "origin"),
        field_value(candidate, "university"),
        field_value(candidate, "status"),
    ]
    values.extend(field_value(candidate, "research_interests") or [])
    return [_fold(value) for value in values if value is not None]


def filter_candidates(candidates: Iterable[Any], query: Optional[str]) -> List[Any]:
    candidates = list(candidates)
    needle = _fold(query)
    if not needle:
        return candidates
    return [c for c in candidates if any(needle in text for text in candidate_search_text(c))]
