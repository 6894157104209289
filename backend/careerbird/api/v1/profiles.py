"""
Profile endpoints: the edit page, the step-by-step profile builder, resume
scanning and the claim-your-profile search.
"""

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerbird.api.v1.auth import get_current_session, get_session
from careerbird.core.exceptions import NotFoundError, WizardValidationError
from careerbird.core.middleware import get_rate_limiter
from careerbird.core.sanitization import sanitize_filename, sanitize_text
from careerbird.core.security import SessionContext
from careerbird.db.database import get_db
from careerbird.db.repositories import ProfileRepository
from careerbird.services.profile_completeness_service import ProfileCompletenessService
from careerbird.services.resume_service import parse_resume, suggest_profile_fields
from careerbird.services.search_service import MIN_PROFILE_QUERY_LENGTH, PROFILE_SEARCH_LIMIT, profile_card
from careerbird.services.storage_service import StorageService, check_upload
from careerbird.services.wizard_service import (
    PROFILE_FIELDS,
    ProfileStep,
    ProfileWizard,
    WizardResult,
    check_numeric_fields,
    normalize_form,
)
import logging

logger = logging.getLogger(__name__)

limiter = get_rate_limiter()
router = APIRouter()

DOCUMENT_TYPES = ("cv", "transcript", "recommendation", "sop")


class ProfileResponse(BaseModel):
    id: int
    user_id: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    current_country: Optional[str] = None
    current_city: Optional[str] = None
    date_of_birth: Optional[date] = None
    bio: Optional[str] = None
    title: Optional[str] = None
    department: Optional[str] = None
    university_id: Optional[int] = None
    current_degree: Optional[str] = None
    field_of_study: Optional[str] = None
    gpa: Optional[float] = None
    gpa_scale: Optional[float] = None
    graduation_year: Optional[int] = None
    gre_verbal: Optional[int] = None
    gre_quant: Optional[int] = None
    gre_awa: Optional[float] = None
    toefl_score: Optional[int] = None
    research_interests: Optional[List[str]] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileEnvelope(BaseModel):
    profile: ProfileResponse
    completion: int  # Dashboard "Profile Strength"
    missing_fields: List[str]


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    current_country: Optional[str] = None
    current_city: Optional[str] = None
    date_of_birth: Optional[date] = None
    bio: Optional[str] = None
    title: Optional[str] = None
    department: Optional[str] = None
    university_id: Optional[int] = None
    current_degree: Optional[str] = None
    field_of_study: Optional[str] = None
    gpa: Optional[float] = None
    gpa_scale: Optional[float] = None
    graduation_year: Optional[int] = None
    gre_verbal: Optional[int] = None
    gre_quant: Optional[int] = None
    gre_awa: Optional[float] = None
    toefl_score: Optional[int] = None
    research_interests: Optional[Any] = None  # List of tags or comma-separated text


class WizardNextRequest(BaseModel):
    step: ProfileStep
    fields: Dict[str, Any] = Field(default_factory=dict)


class WizardNavigateRequest(BaseModel):
    step: ProfileStep
    target: Optional[ProfileStep] = None  # Required for jump


class WizardStateResponse(BaseModel):
    step: str
    completed: bool
    redirect_to: Optional[str] = None
    saved: bool
    completion: int  # Profile builder progress bar


class DocumentResponse(BaseModel):
    id: int
    name: str
    document_type: str
    storage_path: Optional[str]
    warnings: List[str] = []


class ProfileSearchResult(BaseModel):
    id: int
    name: str
    title: str
    department: str
    university: str


class ProfileSearchResponse(BaseModel):
    results: List[ProfileSearchResult]


class ResumeScanResponse(BaseModel):
    skills: List[str]
    bio: str
    suggested_fields: Dict[str, Any]  # Values the profile form can pre-fill


def _sanitize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Strip markup from user text before it reaches validation or the store."""
    cleaned = {}
    for name, value in fields.items():
        if name not in PROFILE_FIELDS:
            continue
        if isinstance(value, str):
            value = sanitize_text(value)
        elif isinstance(value, list):
            value = [sanitize_text(item) if isinstance(item, str) else item for item in value]
        cleaned[name] = value
    return cleaned


def _envelope(profile) -> ProfileEnvelope:
    result = ProfileCompletenessService.evaluate(profile, "dashboard")
    return ProfileEnvelope(
        profile=ProfileResponse.model_validate(profile),
        completion=result.score,
        missing_fields=result.missing,
    )


def _wizard_state(result: WizardResult) -> WizardStateResponse:
    return WizardStateResponse(
        step=result.step,
        completed=result.completed,
        redirect_to=result.redirect_to,
        saved=result.saved,
        completion=result.completion,
    )


def get_storage() -> StorageService:
    return StorageService()


@router.get("/me", response_model=ProfileEnvelope)
async def read_my_profile(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Current user's profile with its completion score."""
    profile = ProfileRepository(db).get_profile(session.user_id)
    if profile is None:
        raise NotFoundError("Profile", session.user_id)
    return _envelope(profile)


@router.put("/me", response_model=ProfileEnvelope)
async def update_my_profile(
    profile_data: ProfileUpdate,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Save the whole edit form at once (no step gating, same value checks)."""
    repo = ProfileRepository(db)
    fields = _sanitize_fields(profile_data.model_dump(exclude_unset=True))
    if fields.get("gpa") is not None and "gpa_scale" not in fields:
        # A GPA edited on its own is read on the scale already saved
        existing = repo.get_profile(session.user_id)
        if existing is not None:
            fields["gpa_scale"] = existing.gpa_scale
    values = normalize_form(fields)
    check_numeric_fields(values, PROFILE_FIELDS)
    profile = repo.upsert_profile(session.require_user(), values)
    return _envelope(profile)


@router.post("/wizard/next", response_model=WizardStateResponse)
@limiter.limit("60/minute")
async def wizard_next(
    request: Request,
    payload: WizardNextRequest,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Validate and save the current step, then advance (or finish on review)."""
    wizard = ProfileWizard.resume(ProfileRepository(db), session, step=payload.step)
    result = wizard.next(_sanitize_fields(payload.fields))
    return _wizard_state(result)


@router.post("/wizard/back", response_model=WizardStateResponse)
async def wizard_back(
    payload: WizardNavigateRequest,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    wizard = ProfileWizard.resume(ProfileRepository(db), session, step=payload.step)
    return _wizard_state(wizard.back())


@router.post("/wizard/jump", response_model=WizardStateResponse)
async def wizard_jump(
    payload: WizardNavigateRequest,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Go straight to any step from the step list."""
    if payload.target is None:
        raise WizardValidationError(["target"], "Choose a step to jump to")
    wizard = ProfileWizard.resume(ProfileRepository(db), session, step=payload.step)
    return _wizard_state(wizard.jump_to(payload.target))


@router.post("/me/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/hour")
async def upload_document(
    request: Request,
    document_type: str = Form(...),
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Upload a CV, transcript, recommendation or statement of purpose."""
    if document_type not in DOCUMENT_TYPES:
        raise WizardValidationError(
            ["document_type"], f"Document type must be one of: {', '.join(DOCUMENT_TYPES)}"
        )

    user_id = session.require_user()
    data = await file.read()
    kind = "transcript" if document_type == "transcript" else "document"
    warnings = check_upload(kind, file.filename, file.content_type, len(data)).warnings
    path = storage.upload("document", user_id, file.filename, data, file.content_type)

    document = ProfileRepository(db).add_document(
        user_id, sanitize_filename(file.filename), document_type, path
    )
    return DocumentResponse(
        id=document.id,
        name=document.name,
        document_type=document.document_type,
        storage_path=document.storage_path,
        warnings=warnings,
    )


@router.get("/search", response_model=ProfileSearchResponse)
@limiter.limit("30/minute")
async def search_profiles(
    request: Request,
    q: str = Query(""),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db)
):
    """Find a professor profile to claim, by name or title."""
    if len(q.strip()) < MIN_PROFILE_QUERY_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query must be at least {MIN_PROFILE_QUERY_LENGTH} characters"
        )
    profiles = ProfileRepository(db).search_professors(sanitize_text(q), limit=PROFILE_SEARCH_LIMIT)
    return ProfileSearchResponse(
        results=[ProfileSearchResult(**asdict(profile_card(profile))) for profile in profiles]
    )


@router.post("/me/resume", response_model=ResumeScanResponse)
@limiter.limit("20/hour")
async def scan_resume(
    request: Request,
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Read skills and a short bio from a PDF resume; nothing is saved."""
    if file.content_type != "application/pdf" and not (file.filename or "").lower().endswith(".pdf"):
        raise WizardValidationError(["file"], "Please upload a PDF file.")

    draft = parse_resume(await file.read())
    profile = ProfileRepository(db).get_profile(session.user_id)
    return ResumeScanResponse(
        skills=draft.skills,
        bio=draft.bio,
        suggested_fields=suggest_profile_fields(profile, draft),
    )
