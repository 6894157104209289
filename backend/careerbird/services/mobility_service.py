"""
Mobility Service - pre-departure checklist for accepted students.

Destination and countdown come from the most recent accepted application;
readiness blends profile basics with uploaded documents.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from dateutil.relativedelta import relativedelta

from careerbird.services import deadline_service
from careerbird.services.deadline_service import DateLike
from careerbird.services.profile_completeness_service import ProfileCompletenessService, field_value

# Departure estimate when a grant has no start date
DEPARTURE_MONTHS_AFTER_DEADLINE = 3
UPCOMING_WINDOW_DAYS = 30
UPCOMING_URGENT_DAYS = 7


@dataclass
class JourneyStep:
    key: str
    title: str
    description: str
    status: str  # 'completed', 'in-progress', 'pending', 'locked'


@dataclass
class UpcomingEvent:
    application_id: Any
    title: str
    date: date
    days_left: int
    type: str  # 'urgent' or 'info'


@dataclass
class MobilityChecklist:
    first_name: str
    destination: str
    destination_city: Optional[str]
    destination_country: Optional[str]
    days_to_departure: int
    readiness_score: int
    journey: List[JourneyStep] = field(default_factory=list)
    upcoming: List[UpcomingEvent] = field(default_factory=list)


def departure_date(grant: Any) -> Optional[date]:
    """Grant start date, else three calendar months after the deadline."""
    start = field_value(grant, "start_date")
    if start:
        return deadline_service.to_utc_date(start)
    deadline = field_value(grant, "deadline")
    if deadline:
        return deadline_service.to_utc_date(deadline) + relativedelta(months=DEPARTURE_MONTHS_AFTER_DEADLINE)
    return None


def days_to_departure(grant: Any, now: Optional[DateLike] = None) -> int:
    departure = departure_date(grant) if grant is not None else None
    if departure is None:
        return 0
    return max(0, deadline_service.days_until(departure, now))


def journey_steps(accepted: bool, destination: str) -> List[JourneyStep]:
    if not accepted:
        return [
            JourneyStep("acceptance", "University Acceptance", "Complete your application to unlock this step.", "pending"),
            JourneyStep("visa", "Visa Application", "Unlocks after acceptance.", "locked"),
            JourneyStep("housing", "Housing Hunt", "Unlocks after acceptance.", "locked"),
            JourneyStep("travel", "Travel & Logistics", "Unlocks after acceptance.", "locked"),
        ]
    return [
        JourneyStep("acceptance", "University Acceptance", f"Confirmed placement at {destination}.", "completed"),
        JourneyStep("visa", "Visa Application", "Prepare your visa documents and schedule interview.", "in-progress"),
        JourneyStep("housing", "Housing Hunt", "Research housing options near your university.", "pending"),
        JourneyStep("travel", "Travel & Logistics", "Book flights and arrange transportation.", "pending"),
    ]


def upcoming_events(applications: List[Any], now: Optional[DateLike] = None) -> List[UpcomingEvent]:
    """Application deadlines 0-30 days out, soonest first."""
    events = []
    for application in applications:
        grant = field_value(application, "grant")
        deadline = field_value(grant, "deadline")
        if not deadline:
            continue
        days_left = deadline_service.days_until(deadline, now)
        if 0 <= days_left <= UPCOMING_WINDOW_DAYS:
            events.append(UpcomingEvent(
                application_id=field_value(application, "id"),
                title=f"Deadline: {field_value(grant, 'title') or 'Application'}",
                date=deadline_service.to_utc_date(deadline),
                days_left=days_left,
                type="urgent" if days_left <= UPCOMING_URGENT_DAYS else "info",
            ))
    events.sort(key=lambda event: event.date)
    return events


def _recency(application: Any):
    stamp = field_value(application, "decision_at") or field_value(application, "created_at")
    if stamp is None:
        return (0, datetime.min)
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone(timezone.utc).replace(tzinfo=None)
    return (1, stamp)


def _latest_accepted(applications: List[Any]) -> Optional[Any]:
    accepted = [app for app in applications if field_value(app, "status") == "accepted"]
    if not accepted:
        return None
    return max(accepted, key=_recency)


class MobilityService:

    @staticmethod
    def build(profile: Any, applications: List[Any], document_count: int = 0,
              now: Optional[DateLike] = None) -> MobilityChecklist:
        accepted = _latest_accepted(applications)
        grant = field_value(accepted, "grant")
        university = field_value(grant, "university")
        destination = field_value(university, "name") or "Your Destination University"

        return MobilityChecklist(
            first_name=field_value(profile, "first_name") or "Student",
            destination=destination,
            destination_city=field_value(university, "city"),
            destination_country=field_value(university, "country"),
            days_to_departure=days_to_departure(grant, now),
            readiness_score=ProfileCompletenessService.readiness_score(profile, document_count),
            journey=journey_steps(accepted is not None, destination),
            upcoming=upcoming_events(applications, now),
        )
