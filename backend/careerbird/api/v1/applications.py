"""
Application endpoints: starting an application, tryout deliverables and professor review.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Path, Request, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from careerbird.api.v1.auth import get_current_session, require_professor
from careerbird.api.v1.profiles import get_storage
from careerbird.core.exceptions import NotFoundError
from careerbird.core.middleware import get_rate_limiter
from careerbird.core.sanitization import sanitize_text
from careerbird.core.security import SessionContext
from careerbird.db import models
from careerbird.db.database import get_db
from careerbird.db.repositories import ApplicationRepository, GrantRepository, ProfileRepository
from careerbird.services import deadline_service
from careerbird.services.application_status import ApplicationStatus, progress_of
from careerbird.services.matching_service import MatchingService
from careerbird.services.storage_service import StorageService, check_upload
from careerbird.services.wizard_service import TryoutWizard
import logging

logger = logging.getLogger(__name__)

limiter = get_rate_limiter()
router = APIRouter()


class ApplicationGrantSummary(BaseModel):
    id: int
    title: str
    university: Optional[str] = None
    country: Optional[str] = None
    deadline: Optional[date] = None


class TryoutResponse(BaseModel):
    proposal_url: Optional[str] = None
    video_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None
    due_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: int
    grant: ApplicationGrantSummary
    status: str
    progress: int  # Position in the status order, 0-5
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    decision_at: Optional[datetime] = None
    match_score: Optional[int] = None
    r_score: Optional[int] = None
    global_rank: Optional[int] = None
    due_badge: Optional[str] = None
    tryout: Optional[TryoutResponse] = None


class ApplicationCreate(BaseModel):
    grant_id: int


class TryoutSubmit(BaseModel):
    proposal_url: Optional[str] = None
    video_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class TryoutSubmitResponse(BaseModel):
    submitted: bool
    step: str
    missing: List[str] = []
    application: Optional[ApplicationResponse] = None


class UploadResponse(BaseModel):
    kind: str
    reference: str
    warnings: List[str] = []


class ReviewRequest(BaseModel):
    status: Optional[ApplicationStatus] = None
    r_score: Optional[int] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


def _application_response(application: models.Application) -> ApplicationResponse:
    grant = application.grant
    university = grant.university if grant is not None else None
    badge = None
    if grant is not None and grant.deadline is not None:
        badge = deadline_service.due_badge(deadline_service.days_until(grant.deadline))
    return ApplicationResponse(
        id=application.id,
        grant=ApplicationGrantSummary(
            id=grant.id,
            title=grant.title,
            university=university.name if university else None,
            country=university.country if university else None,
            deadline=grant.deadline,
        ),
        status=application.status,
        progress=progress_of(application.status),
        submitted_at=application.submitted_at,
        reviewed_at=application.reviewed_at,
        decision_at=application.decision_at,
        match_score=application.match_score,
        r_score=application.r_score,
        global_rank=application.global_rank,
        due_badge=badge,
        tryout=TryoutResponse.model_validate(application.tryout) if application.tryout else None,
    )


def _own_application(repo: ApplicationRepository, application_id: int, session: SessionContext) -> models.Application:
    """The caller's application; other users' applications look missing."""
    application = repo.get(application_id)
    if application.user_id != session.user_id:
        raise NotFoundError("Application", application_id)
    return application


@router.get("/", response_model=List[ApplicationResponse])
async def list_applications(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    applications = ApplicationRepository(db).list_for_user(session.user_id)
    return [_application_response(app) for app in applications]


@router.post("/", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def start_application(
    payload: ApplicationCreate,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Begin (or resume) the caller's application to a grant."""
    user_id = session.require_user()
    grant = GrantRepository(db).get(payload.grant_id)
    profile = ProfileRepository(db).get_profile(user_id)
    match_score = MatchingService.compute_match(profile, grant) if profile is not None else None
    application = ApplicationRepository(db).start_application(user_id, grant.id, match_score=match_score)
    return _application_response(application)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: int,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    repo = ApplicationRepository(db)
    application = repo.get(application_id)
    is_owner = application.user_id == session.user_id
    is_reviewer = session.is_professor and (
        application.grant.created_by == session.user_id or session.role == "admin"
    )
    if not (is_owner or is_reviewer):
        raise NotFoundError("Application", application_id)
    return _application_response(application)


@router.post("/{application_id}/files/{kind}", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/hour")
async def upload_tryout_file(
    request: Request,
    application_id: int,
    kind: str = Path(..., pattern="^(proposal|video|portfolio)$"),
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Store one tryout deliverable and return the reference to submit with."""
    application = _own_application(ApplicationRepository(db), application_id, session)
    data = await file.read()
    warnings = check_upload(kind, file.filename, file.content_type, len(data)).warnings
    reference = storage.upload(kind, application.id, file.filename, data, file.content_type)
    return UploadResponse(kind=kind, reference=reference, warnings=warnings)


@router.post("/{application_id}/tryout", response_model=TryoutSubmitResponse)
async def submit_tryout(
    application_id: int,
    payload: TryoutSubmit,
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """
    Submit the tryout deliverables.

    Without both a proposal and a video nothing is saved and the response
    lists what is missing.
    """
    repo = ApplicationRepository(db)
    application = _own_application(repo, application_id, session)
    existing = application.tryout

    wizard = TryoutWizard(
        repo,
        session,
        grant_id=application.grant_id,
        proposal_url=payload.proposal_url or (existing.proposal_url if existing else None),
        video_url=payload.video_url or (existing.video_url if existing else None),
        portfolio_url=payload.portfolio_url or (existing.portfolio_url if existing else None),
    )
    result = wizard.submit(match_score=application.match_score)
    if not result.submitted:
        return TryoutSubmitResponse(submitted=False, step=result.step, missing=result.missing)

    db.expire_all()
    return TryoutSubmitResponse(
        submitted=True,
        step=result.step,
        application=_application_response(repo.get(result.application_id)),
    )


@router.post("/{application_id}/review", response_model=ApplicationResponse)
async def review_application(
    application_id: int,
    payload: ReviewRequest,
    session: SessionContext = Depends(require_professor),
    db: Session = Depends(get_db)
):
    """Set status, r_score and notes; the grant's applicants are re-ranked."""
    repo = ApplicationRepository(db)
    application = repo.get(application_id)
    if application.grant.created_by != session.user_id and session.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the grant's creator can review its applications"
        )

    notes = sanitize_text(payload.notes) if payload.notes is not None else None
    application = repo.review(
        application,
        status=payload.status.value if payload.status is not None else None,
        r_score=payload.r_score,
        notes=notes,
    )
    return _application_response(application)
