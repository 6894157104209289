"""
Profile Completeness Service

Computes how complete a student profile is, as a 0-100 percentage.

Two weightings are in use:
- dashboard: 7 fields, shown on the "Profile Strength" card. Research
  interests count only as a saved list of tags.
- wizard: 6 fields, shown in the profile builder's progress bar. Research
  interests count when the comma-separated form text is non-empty.

Every counted field is binary (present or absent). The score is always
recomputed from current values and never stored.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

CompletenessMode = Literal["dashboard", "wizard"]

# Fields behind the mobility readiness score
READINESS_FIELDS = ("first_name", "last_name", "nationality", "current_country", "field_of_study")


def field_value(profile: Any, name: str) -> Any:
    """Read a field from a dict-like profile or an ORM row."""
    if profile is None:
        return None
    if isinstance(profile, dict):
        return profile.get(name)
    return getattr(profile, name, None)


def is_present(value: Any) -> bool:
    """
    Presence test shared by all scorers.

    Text counts when non-empty after trimming, collections when non-empty,
    numbers whenever they are set.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(is_present(item) for item in value)
    return True


def _either(*names: str) -> Callable[[Any], bool]:
    return lambda profile: any(is_present(field_value(profile, name)) for name in names)


def _tags(name: str) -> Callable[[Any], bool]:
    # Saved profiles hold tags as a list; unsplit form text does not count here
    def check(profile: Any) -> bool:
        value = field_value(profile, name)
        return isinstance(value, (list, tuple, set, frozenset)) and is_present(value)
    return check


# (label, predicate) pairs per mode
_DASHBOARD_CHECKS: Tuple[Tuple[str, Callable[[Any], bool]], ...] = (
    ("first_name", _either("first_name", "full_name")),
    ("last_name", _either("last_name", "full_name")),
    ("bio", _either("bio")),
    ("current_degree", _either("current_degree")),
    ("field_of_study", _either("field_of_study")),
    ("gpa", _either("gpa")),
    ("research_interests", _tags("research_interests")),
)

_WIZARD_CHECKS: Tuple[Tuple[str, Callable[[Any], bool]], ...] = (
    ("first_name", _either("first_name")),
    ("last_name", _either("last_name")),
    ("current_degree", _either("current_degree")),
    ("field_of_study", _either("field_of_study")),
    ("gpa", _either("gpa")),
    ("research_interests", _either("research_interests")),
)

_CHECKS: Dict[str, Tuple[Tuple[str, Callable[[Any], bool]], ...]] = {
    "dashboard": _DASHBOARD_CHECKS,
    "wizard": _WIZARD_CHECKS,
}


@dataclass
class CompletenessResult:
    """Result of a completeness evaluation."""
    score: int  # 0-100
    mode: CompletenessMode
    present: List[str]
    missing: List[str]


class ProfileCompletenessService:
    """Pure scoring of profile completeness."""

    @staticmethod
    def evaluate(profile: Optional[Any], mode: CompletenessMode = "dashboard") -> CompletenessResult:
        """
        Evaluate which counted fields are filled in.

        A missing profile scores 0 with every field reported missing.
        """
        if mode not in _CHECKS:
            raise ValueError(f"Unknown completeness mode '{mode}'")

        checks = _CHECKS[mode]
        present = []
        missing = []
        for label, check in checks:
            if profile is not None and check(profile):
                present.append(label)
            else:
                missing.append(label)

        score = round(len(present) / len(checks) * 100)
        return CompletenessResult(score=score, mode=mode, present=present, missing=missing)

    @staticmethod
    def score(profile: Optional[Any], mode: CompletenessMode = "dashboard") -> int:
        """Completion percentage (0-100) for the given mode."""
        return ProfileCompletenessService.evaluate(profile, mode).score

    @staticmethod
    def readiness_score(profile: Optional[Any], document_count: int = 0) -> int:
        """
        Mobility readiness: profile basics are worth 60 points, each uploaded
        document 8 more, capped at 100.
        """
        filled = sum(1 for name in READINESS_FIELDS if is_present(field_value(profile, name)))
        raw = round(filled / len(READINESS_FIELDS) * 60 + max(0, document_count) * 8)
        return min(100, raw)
