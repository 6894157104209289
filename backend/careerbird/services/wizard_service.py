"""
Wizard Service - the profile builder and the tryout deliverables flow.

Profile wizard steps run in a fixed order:

    introduction -> personal -> academic -> research -> documents -> review

next() validates the current step, saves the accumulated form through the
profile store and only then moves on. Any failure (validation, missing
session, store error) raises and leaves the wizard on the same step with the
form data kept, so the user can fix it and retry. back() and jump_to() never
validate or save.

The tryout wizard collects a proposal, a video and an optional portfolio;
submitting is a no-op until both the proposal and the video are attached.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple
import logging

from careerbird.core.config import settings
from careerbird.core.exceptions import PersistenceError, WizardValidationError
from careerbird.core.security import SessionContext
from careerbird.db.models import DEGREE_LEVELS
from careerbird.services.profile_completeness_service import ProfileCompletenessService, is_present

logger = logging.getLogger(__name__)


class ProfileStep(str, Enum):
    INTRODUCTION = "introduction"
    PERSONAL = "personal"
    ACADEMIC = "academic"
    RESEARCH = "research"
    DOCUMENTS = "documents"
    REVIEW = "review"


class WizardAction(str, Enum):
    NEXT = "next"
    BACK = "back"


PROFILE_STEPS: Tuple[ProfileStep, ...] = tuple(ProfileStep)


def _build_transitions() -> Dict[Tuple[ProfileStep, WizardAction], Optional[ProfileStep]]:
    table = {}
    for index, step in enumerate(PROFILE_STEPS):
        # None marks completion: next() on review finishes the wizard
        table[(step, WizardAction.NEXT)] = PROFILE_STEPS[index + 1] if index + 1 < len(PROFILE_STEPS) else None
        table[(step, WizardAction.BACK)] = PROFILE_STEPS[max(index - 1, 0)]
    return table


TRANSITIONS = _build_transitions()

REQUIRED_FIELDS: Dict[ProfileStep, Tuple[str, ...]] = {
    ProfileStep.INTRODUCTION: ("first_name", "last_name", "email"),
    ProfileStep.PERSONAL: (),
    ProfileStep.ACADEMIC: ("university_id", "current_degree", "field_of_study"),
    ProfileStep.RESEARCH: (),
    ProfileStep.DOCUMENTS: (),
    ProfileStep.REVIEW: (),
}

# Fields each step edits
STEP_FIELDS: Dict[ProfileStep, Tuple[str, ...]] = {
    ProfileStep.INTRODUCTION: ("first_name", "last_name", "email", "phone"),
    ProfileStep.PERSONAL: ("nationality", "current_country", "current_city", "date_of_birth", "bio"),
    ProfileStep.ACADEMIC: ("university_id", "current_degree", "field_of_study", "gpa", "gpa_scale", "graduation_year"),
    ProfileStep.RESEARCH: ("research_interests", "gre_verbal", "gre_quant", "gre_awa", "toefl_score"),
    ProfileStep.DOCUMENTS: (),
    ProfileStep.REVIEW: (),
}

# title and department are set on professor profiles from the edit page
PROFILE_FIELDS: Tuple[str, ...] = tuple(name for names in STEP_FIELDS.values() for name in names) + ("title", "department")

FIELD_LABELS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "university_id": "University",
    "current_degree": "Degree level",
    "field_of_study": "Field of study",
    "gpa": "GPA",
    "gpa_scale": "GPA scale",
    "graduation_year": "Graduation year",
}

# (min, max) for integer test scores
SCORE_RANGES = {
    "gre_verbal": (130, 170),
    "gre_quant": (130, 170),
    "toefl_score": (0, 120),
}

GRADUATION_YEAR_RANGE = (1900, 2100)


class ProfileStore(Protocol):
    def get_profile(self, user_id: str) -> Optional[Any]: ...

    def upsert_profile(self, user_id: str, fields: Dict[str, Any]) -> Any: ...


class ApplicationStore(Protocol):
    def submit_tryout(self, user_id: str, grant_id: int, fields: Dict[str, Any], match_score: Optional[int] = None) -> Any: ...


def _label(name: str) -> str:
    return FIELD_LABELS.get(name, name.replace("_", " ").capitalize())


def split_interests(value: Any) -> List[str]:
    """Comma-separated form text (or a list) into trimmed, non-empty tags."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(tag).strip() for tag in value if is_present(tag)]


def _parse_float(name: str, value: Any) -> Optional[float]:
    if not is_present(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise WizardValidationError([name], f"{_label(name)} must be a number")


def _parse_int(name: str, value: Any) -> Optional[int]:
    if not is_present(value):
        return None
    if isinstance(value, float) and not value.is_integer():
        raise WizardValidationError([name], f"{_label(name)} must be a whole number")
    try:
        return int(str(value).strip()) if not isinstance(value, (int, float)) else int(value)
    except (TypeError, ValueError):
        raise WizardValidationError([name], f"{_label(name)} must be a whole number")


def _parse_date(name: str, value: Any) -> Optional[date]:
    if not is_present(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise WizardValidationError([name], f"{_label(name)} must be a date (YYYY-MM-DD)")


def normalize_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn raw form values into profile column values.

    Blank text becomes None, numbers are parsed, the GPA scale defaults to
    4.0 and research interests are split on commas. Malformed numbers raise
    WizardValidationError naming the field.
    """
    values: Dict[str, Any] = {}
    for name in PROFILE_FIELDS:
        if name not in form:
            continue
        raw = form[name]
        if isinstance(raw, str):
            raw = raw.strip() or None
        values[name] = raw

    for name in ("gpa", "gpa_scale", "gre_awa"):
        if name in values:
            values[name] = _parse_float(name, values[name])
    for name in ("university_id", "graduation_year", "gre_verbal", "gre_quant", "toefl_score"):
        if name in values:
            values[name] = _parse_int(name, values[name])
    if "date_of_birth" in values:
        values["date_of_birth"] = _parse_date("date_of_birth", values["date_of_birth"])
    if "current_degree" in values and values["current_degree"] is not None:
        values["current_degree"] = str(values["current_degree"]).lower()
    if "research_interests" in values:
        values["research_interests"] = split_interests(values["research_interests"])

    if "gpa" in values or "gpa_scale" in values:
        values["gpa_scale"] = values.get("gpa_scale") or settings.DEFAULT_GPA_SCALE

    return values


def check_numeric_fields(values: Dict[str, Any], fields: Tuple[str, ...]) -> None:
    """Range checks for the named parsed values."""
    if "gpa_scale" in fields and values.get("gpa_scale") is not None and values["gpa_scale"] <= 0:
        raise WizardValidationError(["gpa_scale"], "GPA scale must be greater than 0")

    if "gpa" in fields and values.get("gpa") is not None:
        scale = values.get("gpa_scale") or settings.DEFAULT_GPA_SCALE
        if not 0 <= values["gpa"] <= scale:
            raise WizardValidationError(["gpa"], f"GPA must be between 0 and {scale:g}")

    if "graduation_year" in fields and values.get("graduation_year") is not None:
        low, high = GRADUATION_YEAR_RANGE
        if not low <= values["graduation_year"] <= high:
            raise WizardValidationError(["graduation_year"], "Graduation year must be a four-digit year")

    if "current_degree" in fields and values.get("current_degree") is not None:
        if values["current_degree"] not in DEGREE_LEVELS:
            raise WizardValidationError(
                ["current_degree"], f"Degree level must be one of: {', '.join(DEGREE_LEVELS)}"
            )

    for name, (low, high) in SCORE_RANGES.items():
        if name in fields and values.get(name) is not None and not low <= values[name] <= high:
            raise WizardValidationError([name], f"{_label(name)} must be between {low} and {high}")

    if "gre_awa" in fields and values.get("gre_awa") is not None and not 0 <= values["gre_awa"] <= 6:
        raise WizardValidationError(["gre_awa"], "GRE analytical writing must be between 0 and 6")


def validate_step(step: ProfileStep, form: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate one step against the accumulated form.

    Returns the normalized values on success; raises WizardValidationError
    listing the missing required fields otherwise. Value checks cover every
    field in the form, since next() saves the whole form from any step.
    """
    missing = [name for name in REQUIRED_FIELDS[step] if not is_present(form.get(name))]
    if missing:
        raise WizardValidationError(
            missing,
            f"Please complete the required fields: {', '.join(_label(name) for name in missing)}",
        )

    values = normalize_form(form)
    check_numeric_fields(values, tuple(values))
    return values


@dataclass
class WizardResult:
    """Outcome of a wizard action, returned to the caller (and the API)."""
    step: str
    completed: bool = False
    redirect_to: Optional[str] = None
    saved: bool = False
    completion: int = 0


class ProfileWizard:
    """
    Linear profile-building wizard for one signed-in user.

    The session is passed in explicitly; nothing is looked up ambiently.
    """

    def __init__(
        self,
        store: ProfileStore,
        session: SessionContext,
        form: Optional[Dict[str, Any]] = None,
        step: ProfileStep = ProfileStep.INTRODUCTION,
        completion_redirect: Optional[str] = None,
    ):
        self.store = store
        self.session = session
        self.form: Dict[str, Any] = dict(form or {})
        self.step = ProfileStep(step)
        self.completed = False
        self.completion_redirect = completion_redirect or settings.COMPLETION_REDIRECT

    @classmethod
    def resume(cls, store: ProfileStore, session: SessionContext, step: ProfileStep = ProfileStep.INTRODUCTION) -> "ProfileWizard":
        """Start a wizard pre-filled from the saved profile, if there is one."""
        form = {}
        if session.is_authenticated:
            profile = store.get_profile(session.user_id)
            if profile is not None:
                for name in PROFILE_FIELDS:
                    value = profile.get(name) if isinstance(profile, dict) else getattr(profile, name, None)
                    if name == "research_interests" and isinstance(value, list):
                        value = ", ".join(value)
                    if value is not None:
                        form[name] = value
        if session.email and not form.get("email"):
            form["email"] = session.email
        return cls(store, session, form=form, step=step)

    @property
    def completion(self) -> int:
        """Progress bar percentage, recomputed from the current form."""
        return ProfileCompletenessService.score(self.form, "wizard")

    def update(self, fields: Optional[Dict[str, Any]] = None) -> None:
        """Merge edited fields into the in-memory form without saving."""
        if fields:
            self.form.update(fields)

    def _result(self, saved: bool = False) -> WizardResult:
        return WizardResult(
            step=self.step.value,
            completed=self.completed,
            redirect_to=self.completion_redirect if self.completed else None,
            saved=saved,
            completion=self.completion,
        )

    def next(self, fields: Optional[Dict[str, Any]] = None) -> WizardResult:
        """
        Validate, save and advance.

        Order matters: validation never reaches the store, and the step only
        moves once the store has confirmed the save.
        """
        self.update(fields)

        try:
            values = validate_step(self.step, self.form)
        except WizardValidationError as e:
            logger.info(f"Wizard step '{self.step.value}' rejected: {e.fields}")
            raise

        user_id = self.session.require_user()

        try:
            self.store.upsert_profile(user_id, values)
        except TimeoutError as e:
            logger.error(f"Profile save timed out on step '{self.step.value}' for user {user_id}")
            raise PersistenceError() from e
        except PersistenceError:
            logger.error(f"Profile save failed on step '{self.step.value}' for user {user_id}", exc_info=True)
            raise

        target = TRANSITIONS[(self.step, WizardAction.NEXT)]
        if target is None:
            self.completed = True
            logger.info(f"Profile wizard completed for user {user_id}")
        else:
            self.step = target
        return self._result(saved=True)

    def back(self) -> WizardResult:
        self.step = TRANSITIONS[(self.step, WizardAction.BACK)]
        self.completed = False
        return self._result()

    def jump_to(self, step: Any) -> WizardResult:
        """Move straight to any step; earlier steps are not checked."""
        try:
            self.step = ProfileStep(step)
        except ValueError:
            allowed = ", ".join(s.value for s in PROFILE_STEPS)
            raise WizardValidationError(["step"], f"Unknown step '{step}'. Expected one of: {allowed}")
        self.completed = False
        return self._result()


class TryoutStep(str, Enum):
    PROPOSAL_UPLOAD = "proposal_upload"
    VIDEO_UPLOAD = "video_upload"
    PORTFOLIO_UPLOAD = "portfolio_upload"
    SUBMITTED = "submitted"


@dataclass
class TryoutResult:
    submitted: bool
    step: str
    application_id: Optional[int] = None
    missing: List[str] = field(default_factory=list)


class TryoutWizard:
    """Deliverables upload for one application; the portfolio never gates submission."""

    def __init__(
        self,
        store: ApplicationStore,
        session: SessionContext,
        grant_id: int,
        proposal_url: Optional[str] = None,
        video_url: Optional[str] = None,
        portfolio_url: Optional[str] = None,
    ):
        self.store = store
        self.session = session
        self.grant_id = grant_id
        self.proposal_url = proposal_url
        self.video_url = video_url
        self.portfolio_url = portfolio_url
        self.submitted = False
        self.application_id: Optional[int] = None

    def attach(self, kind: str, reference: Optional[str]) -> None:
        """Record (or clear, with None) the stored reference for one deliverable."""
        if kind not in ("proposal", "video", "portfolio"):
            raise ValueError(f"Unknown deliverable '{kind}'")
        setattr(self, f"{kind}_url", reference or None)

    @property
    def missing(self) -> List[str]:
        return [kind for kind in ("proposal", "video") if not is_present(getattr(self, f"{kind}_url"))]

    @property
    def can_submit(self) -> bool:
        return not self.missing

    @property
    def step(self) -> TryoutStep:
        if self.submitted:
            return TryoutStep.SUBMITTED
        if not is_present(self.proposal_url):
            return TryoutStep.PROPOSAL_UPLOAD
        if not is_present(self.video_url):
            return TryoutStep.VIDEO_UPLOAD
        return TryoutStep.PORTFOLIO_UPLOAD

    def submit(self, match_score: Optional[int] = None) -> TryoutResult:
        """
        Submit the deliverables.

        Does nothing while the proposal or the video is missing. Otherwise
        the application and its tryout row are saved together.
        """
        if not self.can_submit:
            return TryoutResult(submitted=False, step=self.step.value, missing=self.missing)

        user_id = self.session.require_user()
        fields = {
            "proposal_url": self.proposal_url,
            "video_url": self.video_url,
            "portfolio_url": self.portfolio_url,
            "status": "submitted",
            "submitted_at": datetime.now(timezone.utc),
        }

        try:
            application = self.store.submit_tryout(user_id, self.grant_id, fields, match_score=match_score)
            application_id = application["id"] if isinstance(application, dict) else application.id
        except TimeoutError as e:
            logger.error(f"Tryout submission timed out for user {user_id}, grant {self.grant_id}")
            raise PersistenceError() from e
        except PersistenceError:
            logger.error(f"Tryout submission failed for user {user_id}, grant {self.grant_id}", exc_info=True)
            raise

        self.application_id = application_id
        self.submitted = True
        logger.info(f"Tryout submitted for application {application_id}")
        return TryoutResult(submitted=True, step=self.step.value, application_id=application_id)
