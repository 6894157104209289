"""
Student dashboard and mobility checklist endpoints.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from careerbird.api.v1.auth import get_current_session
from careerbird.core.security import SessionContext
from careerbird.db.database import get_db
from careerbird.db.repositories import ApplicationRepository, GrantRepository, ProfileRepository
from careerbird.services.dashboard_service import DashboardService
from careerbird.services.mobility_service import MobilityService

router = APIRouter()


class ThisWeekResponse(BaseModel):
    title: str
    sublabel: str
    deadline: date
    days_remaining: int
    label: str
    urgent: bool
    progress: int


class SavedGrantSummary(BaseModel):
    id: int
    title: str
    university: Optional[str] = None
    country: Optional[str] = None
    deadline: Optional[date] = None


class RecommendationResponse(BaseModel):
    grant_id: int
    title: str
    university: Optional[str] = None
    country: Optional[str] = None
    funding_amount: Optional[str] = None
    stipend_monthly: Optional[str] = None
    language: Optional[str] = None
    match_score: int


class DashboardResponse(BaseModel):
    greeting_name: str
    applications_sent: int
    pending_review: int
    interviews: int
    deadlines_this_week: int
    profile_strength: int
    missing_profile_fields: List[str]
    this_week: List[ThisWeekResponse]
    saved_grants: List[SavedGrantSummary]
    recommendation: Optional[RecommendationResponse] = None


class JourneyStepResponse(BaseModel):
    key: str
    title: str
    description: str
    status: str


class UpcomingEventResponse(BaseModel):
    application_id: Optional[int] = None
    title: str
    date: date
    days_left: int
    type: str


class MobilityResponse(BaseModel):
    first_name: str
    destination: str
    destination_city: Optional[str] = None
    destination_country: Optional[str] = None
    days_to_departure: int
    readiness_score: int
    journey: List[JourneyStepResponse]
    upcoming: List[UpcomingEventResponse]


def _saved_summary(grant) -> SavedGrantSummary:
    university = grant.university
    return SavedGrantSummary(
        id=grant.id,
        title=grant.title,
        university=university.name if university else None,
        country=university.country if university else None,
        deadline=grant.deadline,
    )


@router.get("/dashboard", response_model=DashboardResponse)
async def read_dashboard(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    grants = GrantRepository(db)
    profile = ProfileRepository(db).get_profile(session.user_id)
    applications = ApplicationRepository(db).list_for_user(session.user_id)

    summary = DashboardService.build(
        profile,
        applications,
        saved_grants=grants.saved_grants(session.user_id),
        open_grants=grants.search(),
    )

    recommendation = None
    if summary.recommendation is not None:
        grant = summary.recommendation.grant
        university = grant.university
        recommendation = RecommendationResponse(
            grant_id=grant.id,
            title=grant.title,
            university=university.name if university else None,
            country=university.country if university else None,
            funding_amount=grant.funding_amount,
            stipend_monthly=grant.stipend_monthly,
            language=grant.language,
            match_score=summary.recommendation.match_score,
        )

    return DashboardResponse(
        greeting_name=summary.greeting_name,
        applications_sent=summary.applications_sent,
        pending_review=summary.pending_review,
        interviews=summary.interviews,
        deadlines_this_week=summary.deadlines_this_week,
        profile_strength=summary.profile_strength,
        missing_profile_fields=summary.missing_profile_fields,
        this_week=[ThisWeekResponse(**vars(item)) for item in summary.this_week],
        saved_grants=[_saved_summary(grant) for grant in summary.saved_grants],
        recommendation=recommendation,
    )


@router.get("/mobility", response_model=MobilityResponse)
async def read_mobility(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    profiles = ProfileRepository(db)
    checklist = MobilityService.build(
        profiles.get_profile(session.user_id),
        ApplicationRepository(db).list_for_user(session.user_id),
        document_count=profiles.count_documents(session.user_id),
    )
    return MobilityResponse(
        first_name=checklist.first_name,
        destination=checklist.destination,
        destination_city=checklist.destination_city,
        destination_country=checklist.destination_country,
        days_to_departure=checklist.days_to_departure,
        readiness_score=checklist.readiness_score,
        journey=[JourneyStepResponse(**vars(step)) for step in checklist.journey],
        upcoming=[UpcomingEventResponse(**vars(event)) for event in checklist.upcoming],
    )
