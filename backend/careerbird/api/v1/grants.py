"""
Grant endpoints: browsing, professor management, bookmarks and the review queue.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from careerbird.api.v1.auth import get_session, get_current_session, require_professor
from careerbird.core.exceptions import WizardValidationError
from careerbird.core.sanitization import sanitize_html, sanitize_tags, sanitize_text, sanitize_url
from careerbird.core.security import SessionContext
from careerbird.db import models
from careerbird.db.database import get_db
from careerbird.db.repositories import ApplicationRepository, GrantRepository, ProfileRepository
from careerbird.services import deadline_service
from careerbird.services.application_status import ApplicationStatus
from careerbird.services.matching_service import MatchingService
from careerbird.services.search_service import GrantFilters, extract_facets, filter_candidates
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


class UniversityResponse(BaseModel):
    id: int
    name: str
    country: Optional[str] = None
    city: Optional[str] = None
    logo_url: Optional[str] = None

    class Config:
        from_attributes = True


class UrgencyResponse(BaseModel):
    days_remaining: int
    tier: str
    this_week: bool
    label: str
    badge: Optional[str] = None


class GrantResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    grant_type: str
    university: Optional[UniversityResponse] = None
    degree_levels: Optional[List[str]] = None
    fields_of_study: Optional[List[str]] = None
    eligible_countries: Optional[List[str]] = None
    min_gpa: Optional[float] = None
    funding_amount: Optional[str] = None
    stipend_monthly: Optional[str] = None
    covers_tuition: bool = False
    covers_living: bool = False
    deadline: Optional[date] = None
    start_date: Optional[date] = None
    duration_months: Optional[int] = None
    language: Optional[str] = None
    application_url: Optional[str] = None
    is_featured: bool = False
    # Derived on read, never stored
    urgency: Optional[UrgencyResponse] = None
    match_score: Optional[int] = None
    is_saved: bool = False

    class Config:
        from_attributes = True


class GrantListResponse(BaseModel):
    grants: List[GrantResponse]
    countries: List[str]
    fields: List[str]


class GrantCreate(BaseModel):
    title: str
    description: Optional[str] = None
    grant_type: str = "scholarship"
    university_id: Optional[int] = None
    degree_levels: Optional[List[str]] = None
    fields_of_study: Optional[List[str]] = None
    eligible_countries: Optional[List[str]] = None
    min_gpa: Optional[float] = None
    funding_amount: Optional[str] = None
    stipend_monthly: Optional[str] = None
    covers_tuition: bool = False
    covers_living: bool = False
    deadline: Optional[date] = None
    start_date: Optional[date] = None
    duration_months: Optional[int] = None
    language: Optional[str] = None
    application_url: Optional[str] = None
    is_featured: bool = False

    @field_validator("grant_type")
    @classmethod
    def check_grant_type(cls, value: str) -> str:
        if value not in models.GRANT_TYPES:
            raise ValueError(f"grant_type must be one of: {', '.join(models.GRANT_TYPES)}")
        return value

    @field_validator("degree_levels")
    @classmethod
    def check_degree_levels(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        value = [level.lower() for level in value]
        unknown = [level for level in value if level not in models.DEGREE_LEVELS]
        if unknown:
            raise ValueError(f"Unknown degree levels: {', '.join(unknown)}")
        return value

    @field_validator("min_gpa")
    @classmethod
    def check_min_gpa(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not 0 <= value <= 4.0:
            raise ValueError("min_gpa is on a 4.0 scale")
        return value


class GrantUpdate(GrantCreate):
    title: Optional[str] = None
    grant_type: Optional[str] = None

    @field_validator("grant_type")
    @classmethod
    def check_grant_type(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in models.GRANT_TYPES:
            raise ValueError(f"grant_type must be one of: {', '.join(models.GRANT_TYPES)}")
        return value


class SavedResponse(BaseModel):
    grant_id: int
    is_saved: bool


class CandidateResponse(BaseModel):
    application_id: int
    candidate_id: str
    name: str
    origin: Optional[str] = None
    university: Optional[str] = None
    research_interests: List[str] = []
    status: str
    r_score: Optional[int] = None
    global_rank: Optional[int] = None
    match_score: Optional[int] = None
    submitted_at: Optional[datetime] = None


def _clean_grant_fields(fields: dict) -> dict:
    """Sanitize professor-entered grant data."""
    for name in ("title", "funding_amount", "stipend_monthly", "language"):
        if fields.get(name):
            fields[name] = sanitize_text(fields[name])
    if fields.get("description"):
        fields["description"] = sanitize_html(fields["description"])
    for name in ("fields_of_study", "eligible_countries"):
        if fields.get(name) is not None:
            fields[name] = sanitize_tags(fields[name])
    if fields.get("application_url"):
        try:
            fields["application_url"] = sanitize_url(fields["application_url"])
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid or dangerous URL: {str(e)}"
            )
    if "title" in fields and not fields["title"]:
        raise WizardValidationError(["title"], "Title is required")
    return fields


def _urgency(grant: models.Grant) -> Optional[UrgencyResponse]:
    if grant.deadline is None:
        return None
    result = deadline_service.classify(grant.deadline)
    return UrgencyResponse(
        days_remaining=result.days_remaining,
        tier=result.tier.value,
        this_week=result.this_week,
        label=result.label,
        badge=deadline_service.due_badge(result.days_remaining),
    )


def _grant_response(grant: models.Grant, profile=None, saved_ids=()) -> GrantResponse:
    response = GrantResponse.model_validate(grant)
    response.urgency = _urgency(grant)
    response.is_saved = grant.id in saved_ids
    if profile is not None:
        response.match_score = MatchingService.compute_match(profile, grant)
    return response


def _require_owner(grant: models.Grant, session: SessionContext) -> None:
    if grant.created_by != session.user_id and session.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the grant's creator can change it"
        )


@router.get("/", response_model=GrantListResponse)
async def list_grants(
    q: Optional[str] = None,
    degree: Optional[List[str]] = Query(None),
    country: Optional[List[str]] = Query(None),
    field: Optional[List[str]] = Query(None),
    skip: int = 0,
    limit: int = Query(100, le=200),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db)
):
    """Browse grants; signed-in students also get match scores and bookmarks."""
    repo = GrantRepository(db)
    filters = GrantFilters(q=q, degree_levels=degree or [], countries=country or [], fields=field or [])
    grants = repo.search(filters, skip=skip, limit=limit)
    facets = extract_facets(repo.search(limit=10_000))

    profile = None
    saved_ids = set()
    if session.is_authenticated:
        profile = ProfileRepository(db).get_profile(session.user_id)
        saved_ids = set(repo.saved_grant_ids(session.user_id))

    return GrantListResponse(
        grants=[_grant_response(grant, profile, saved_ids) for grant in grants],
        countries=facets.countries,
        fields=facets.fields,
    )


@router.get("/saved", response_model=List[GrantResponse])
async def list_saved_grants(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    grants = GrantRepository(db).saved_grants(session.user_id)
    saved_ids = {grant.id for grant in grants}
    return [_grant_response(grant, saved_ids=saved_ids) for grant in grants]


@router.post("/", response_model=GrantResponse, status_code=status.HTTP_201_CREATED)
async def create_grant(
    grant_data: GrantCreate,
    session: SessionContext = Depends(require_professor),
    db: Session = Depends(get_db)
):
    """Post a new grant (professors only)."""
    fields = _clean_grant_fields(grant_data.model_dump())
    grant = GrantRepository(db).create(fields, created_by=session.user_id)
    return _grant_response(grant)


@router.get("/{grant_id}", response_model=GrantResponse)
async def get_grant(
    grant_id: int,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db)
):
    repo = GrantRepository(db)
    grant = repo.get(grant_id)
    profile = None
    saved_ids = set()
    if session.is_authenticated:
        profile = ProfileRepository(db).get_profile(session.user_id)
        saved_ids = set(repo.saved_grant_ids(session.user_id))
    return _grant_response(grant, profile, saved_ids)


@router.patch("/{grant_id}", response_model=GrantResponse)
async def update_grant(
    grant_id: int,
    grant_data: GrantUpdate,
    session: SessionContext = Depends(require_professor),
    db: Session = Depends(get_db)
):
    """Edit a grant (its creator only)."""
    repo = GrantRepository(db)
    grant = repo.get(grant_id)
    _require_owner(grant, session)
    fields = _clean_grant_fields(grant_data.model_dump(exclude_unset=True))
    return _grant_response(repo.update(grant, fields))


@router.post("/{grant_id}/save", response_model=SavedResponse)
async def save_grant(
    grant_id: int,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    is_saved = GrantRepository(db).save(session.require_user(), grant_id)
    return SavedResponse(grant_id=grant_id, is_saved=is_saved)


@router.delete("/{grant_id}/save", response_model=SavedResponse)
async def unsave_grant(
    grant_id: int,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    is_saved = GrantRepository(db).unsave(session.require_user(), grant_id)
    return SavedResponse(grant_id=grant_id, is_saved=is_saved)


@router.get("/{grant_id}/ranking", response_model=List[CandidateResponse])
async def grant_ranking(
    grant_id: int,
    q: Optional[str] = None,
    session: SessionContext = Depends(require_professor),
    db: Session = Depends(get_db)
):
    """
    Review queue for one grant.

    Ranked applicants come first in rank order; submitted but not yet
    ranked applicants follow, earliest submission first. Drafts are hidden.
    """
    grant = GrantRepository(db).get(grant_id)
    _require_owner(grant, session)

    applications = [
        app for app in ApplicationRepository(db).list_for_grant(grant_id)
        if app.status != ApplicationStatus.DRAFT.value
    ]
    profiles = ProfileRepository(db).profiles_by_user([app.user_id for app in applications])

    ranked_ids = [entry.application.id for entry in MatchingService.compute_rank(applications)]
    positions = {application_id: index for index, application_id in enumerate(ranked_ids)}
    applications.sort(key=lambda app: (
        positions.get(app.id, len(positions)),
        app.submitted_at is None,
        app.submitted_at or datetime.max,
        app.id,
    ))

    candidates = []
    for app in applications:
        profile = profiles.get(app.user_id)
        name = " ".join(filter(None, [
            getattr(profile, "first_name", None), getattr(profile, "last_name", None)
        ])) or getattr(profile, "full_name", None) or "Applicant"
        candidates.append(CandidateResponse(
            application_id=app.id,
            candidate_id=app.user_id,
            name=name,
            origin=getattr(profile, "nationality", None),
            university=profile.university.name if profile is not None and profile.university else None,
            research_interests=getattr(profile, "research_interests", None) or [],
            status=app.status,
            r_score=app.r_score,
            global_rank=app.global_rank,
            match_score=app.match_score,
            submitted_at=app.submitted_at,
        ))
    return filter_candidates(candidates, q)
