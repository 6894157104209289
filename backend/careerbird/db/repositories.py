"""
Repositories over the relational store.

Each method commits its own unit of work. SQLAlchemy failures are rolled
back, logged and re-raised as PersistenceError so callers can tell a failed
save from a validation problem.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from careerbird.core.exceptions import NotFoundError, PersistenceError, WizardValidationError
from careerbird.db import models
from careerbird.services.application_status import ApplicationStatus, check_transition, is_reviewed, is_terminal
from careerbird.services.matching_service import MatchingService
from careerbird.services.search_service import GrantFilters, matches_any

logger = logging.getLogger(__name__)


def _apply_changes(row: Any, fields: Dict[str, Any]) -> bool:
    """Set only the attributes whose value differs; returns True if anything changed."""
    changed = False
    for name, value in fields.items():
        if getattr(row, name) != value:
            setattr(row, name, value)
            changed = True
    return changed


class _Repository:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {action}: {e}", exc_info=True)
            raise PersistenceError() from e


class ProfileRepository(_Repository):
    """Profile reads and the upsert-by-user the wizard saves through."""

    def get_profile(self, user_id: str) -> Optional[models.Profile]:
        try:
            return self.db.query(models.Profile).filter(models.Profile.user_id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load profile for user {user_id}: {e}", exc_info=True)
            raise PersistenceError("Could not load your profile, please retry") from e

    def upsert_profile(self, user_id: str, fields: Dict[str, Any]) -> models.Profile:
        """
        Create or update the user's profile.

        Saving identical values issues no UPDATE, so updated_at stays put.
        An unknown university_id is a validation error, not a failed save.
        """
        university_id = fields.get("university_id")
        if university_id is not None and self.db.get(models.University, university_id) is None:
            raise WizardValidationError(["university_id"], "Please choose a university from the list")

        profile = self.get_profile(user_id)
        if profile is None:
            profile = models.Profile(user_id=user_id, **fields)
            self.db.add(profile)
            try:
                self._commit("profile insert")
            except PersistenceError:
                # Another request for the same user may have inserted first
                profile = self.get_profile(user_id)
                if profile is None:
                    raise
                _apply_changes(profile, fields)
                self._commit("profile update")
        elif _apply_changes(profile, fields):
            self._commit("profile update")

        self.db.refresh(profile)
        return profile

    def count_documents(self, user_id: str) -> int:
        return self.db.query(models.Document).filter(models.Document.user_id == user_id).count()

    def add_document(self, user_id: str, name: str, document_type: str, storage_path: str) -> models.Document:
        document = models.Document(user_id=user_id, name=name, document_type=document_type, storage_path=storage_path)
        self.db.add(document)
        self._commit("document insert")
        self.db.refresh(document)
        return document

    def search_professors(self, query: str, limit: int = 10) -> List[models.Profile]:
        """Professor profiles whose first name, last name or title contains the query."""
        pattern = f"%{query.strip()}%"
        return (
            self.db.query(models.Profile)
            .options(selectinload(models.Profile.university))
            .filter(models.Profile.role == "professor")
            .filter(or_(
                models.Profile.first_name.ilike(pattern),
                models.Profile.last_name.ilike(pattern),
                models.Profile.title.ilike(pattern),
            ))
            .order_by(models.Profile.last_name.asc(), models.Profile.id.asc())
            .limit(limit)
            .all()
        )

    def profiles_by_user(self, user_ids: List[str]) -> Dict[str, models.Profile]:
        if not user_ids:
            return {}
        rows = self.db.query(models.Profile).filter(models.Profile.user_id.in_(user_ids)).all()
        return {row.user_id: row for row in rows}


class GrantRepository(_Repository):
    """Opportunity queries, professor edits and student bookmarks."""

    def _base_query(self):
        return self.db.query(models.Grant).options(selectinload(models.Grant.university))

    def get(self, grant_id: int) -> models.Grant:
        grant = self._base_query().filter(models.Grant.id == grant_id).first()
        if grant is None:
            raise NotFoundError("Grant", grant_id)
        return grant

    def search(self, filters: Optional[GrantFilters] = None, skip: int = 0, limit: int = 100) -> List[models.Grant]:
        """
        Grants matching the browse filters, featured first, then soonest deadline.

        Text and country filter in SQL; the JSON list filters (degree levels,
        fields) run on the loaded rows so they behave the same on every backend.
        """
        filters = filters or GrantFilters()
        query = self._base_query().outerjoin(models.University, models.Grant.university_id == models.University.id)

        q = (filters.q or "").strip()
        if q:
            pattern = f"%{q}%"
            query = query.filter(or_(
                models.Grant.title.ilike(pattern),
                models.Grant.description.ilike(pattern),
                models.University.name.ilike(pattern),
                models.University.country.ilike(pattern),
            ))
        if filters.countries:
            query = query.filter(models.University.country.in_(filters.countries))

        query = query.order_by(
            models.Grant.is_featured.desc(),
            models.Grant.deadline.is_(None),
            models.Grant.deadline.asc(),
            models.Grant.id.asc(),
        )
        grants = [
            grant for grant in query.all()
            if matches_any(filters.degree_levels, grant.degree_levels)
            and matches_any(filters.fields, grant.fields_of_study)
        ]
        return grants[skip:skip + limit]

    def create(self, fields: Dict[str, Any], created_by: str) -> models.Grant:
        if fields.get("university_id") is not None and self.db.get(models.University, fields["university_id"]) is None:
            raise NotFoundError("University", fields["university_id"])
        grant = models.Grant(created_by=created_by, **fields)
        self.db.add(grant)
        self._commit("grant insert")
        self.db.refresh(grant)
        logger.info(f"Grant {grant.id} created by {created_by}")
        return grant

    def update(self, grant: models.Grant, fields: Dict[str, Any]) -> models.Grant:
        if _apply_changes(grant, fields):
            self._commit("grant update")
            self.db.refresh(grant)
        return grant

    def saved_grant_ids(self, user_id: str) -> List[int]:
        rows = self.db.query(models.SavedGrant.grant_id).filter(models.SavedGrant.user_id == user_id).all()
        return [row[0] for row in rows]

    def saved_grants(self, user_id: str) -> List[models.Grant]:
        return (
            self._base_query()
            .join(models.SavedGrant, models.SavedGrant.grant_id == models.Grant.id)
            .filter(models.SavedGrant.user_id == user_id)
            .order_by(models.SavedGrant.created_at.desc())
            .all()
        )

    def save(self, user_id: str, grant_id: int) -> bool:
        """Bookmark a grant; saving twice is a no-op."""
        self.get(grant_id)
        existing = self.db.query(models.SavedGrant).filter(
            models.SavedGrant.user_id == user_id,
            models.SavedGrant.grant_id == grant_id,
        ).first()
        if existing:
            return True
        self.db.add(models.SavedGrant(user_id=user_id, grant_id=grant_id))
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent save of the same bookmark
            self.db.rollback()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save grant {grant_id} for {user_id}: {e}", exc_info=True)
            raise PersistenceError() from e
        return True

    def unsave(self, user_id: str, grant_id: int) -> bool:
        self.db.query(models.SavedGrant).filter(
            models.SavedGrant.user_id == user_id,
            models.SavedGrant.grant_id == grant_id,
        ).delete(synchronize_session=False)
        self._commit("bookmark delete")
        return False


class ApplicationRepository(_Repository):
    """Applications, tryout deliverables and professor review."""

    def _base_query(self):
        return self.db.query(models.Application).options(
            selectinload(models.Application.grant).selectinload(models.Grant.university),
            selectinload(models.Application.tryout),
        )

    def get(self, application_id: int) -> models.Application:
        application = self._base_query().filter(models.Application.id == application_id).first()
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    def find(self, user_id: str, grant_id: int) -> Optional[models.Application]:
        return self._base_query().filter(
            models.Application.user_id == user_id,
            models.Application.grant_id == grant_id,
        ).first()

    def list_for_user(self, user_id: str) -> List[models.Application]:
        return (
            self._base_query()
            .filter(models.Application.user_id == user_id)
            .order_by(models.Application.created_at.desc(), models.Application.id.desc())
            .all()
        )

    def list_for_grant(self, grant_id: int) -> List[models.Application]:
        return self._base_query().filter(models.Application.grant_id == grant_id).all()

    def _insert(self, user_id: str, grant_id: int, **fields) -> models.Application:
        if self.db.get(models.Grant, grant_id) is None:
            raise NotFoundError("Grant", grant_id)
        application = models.Application(user_id=user_id, grant_id=grant_id, **fields)
        self.db.add(application)
        try:
            self.db.commit()
        except IntegrityError:
            # One application per (student, grant): someone got there first
            self.db.rollback()
            existing = self.find(user_id, grant_id)
            if existing is None:
                raise PersistenceError()
            return existing
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create application for {user_id} on grant {grant_id}: {e}", exc_info=True)
            raise PersistenceError() from e
        self.db.refresh(application)
        return application

    def start_application(self, user_id: str, grant_id: int, match_score: Optional[int] = None) -> models.Application:
        """Return the user's application for this grant, creating a draft if needed."""
        existing = self.find(user_id, grant_id)
        if existing is not None:
            return existing
        return self._insert(user_id, grant_id, status=ApplicationStatus.DRAFT.value, match_score=match_score)

    def submit_tryout(
        self,
        user_id: str,
        grant_id: int,
        fields: Dict[str, Any],
        match_score: Optional[int] = None,
    ) -> models.Application:
        """
        Submit the application and save its tryout in one commit.

        A draft is promoted to submitted and a missing application is created;
        later statuses are left as they are. The tryout keeps its first
        submitted_at. Nothing is written unless both rows save together.
        """
        if self.db.get(models.Grant, grant_id) is None:
            raise NotFoundError("Grant", grant_id)

        now = datetime.now(timezone.utc)
        try:
            application = self.find(user_id, grant_id)
            if application is None:
                application = models.Application(
                    user_id=user_id,
                    grant_id=grant_id,
                    status=ApplicationStatus.SUBMITTED.value,
                    submitted_at=now,
                    match_score=match_score,
                )
                self.db.add(application)
            elif application.status == ApplicationStatus.DRAFT.value:
                application.status = check_transition(application.status, ApplicationStatus.SUBMITTED).value
                application.submitted_at = application.submitted_at or now
                if application.match_score is None:
                    application.match_score = match_score
            self.db.flush()

            tryout = self.db.query(models.TryoutSubmission).filter(
                models.TryoutSubmission.application_id == application.id
            ).first()
            if tryout is None:
                self.db.add(models.TryoutSubmission(application_id=application.id, user_id=user_id, **fields))
            else:
                fields = dict(fields)
                if tryout.submitted_at is not None:
                    fields.pop("submitted_at", None)
                _apply_changes(tryout, fields)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Tryout submission failed for {user_id} on grant {grant_id}: {e}", exc_info=True)
            raise PersistenceError() from e

        self._commit("tryout submission")
        self.db.refresh(application)
        return application

    def review(
        self,
        application: models.Application,
        status: Optional[str] = None,
        r_score: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> models.Application:
        """
        Apply a professor's review and re-rank the grant's applicants.

        Raises InvalidTransitionError for backwards moves or changes to a
        decided application.
        """
        now = datetime.now(timezone.utc)
        if status is not None:
            new_status = check_transition(application.status, status)
            application.status = new_status.value
            if application.reviewed_at is None and is_reviewed(new_status):
                application.reviewed_at = now
            if is_terminal(new_status) and application.decision_at is None:
                application.decision_at = now
        if r_score is not None:
            application.r_score = r_score
        if notes is not None:
            application.reviewer_notes = notes

        self._assign_ranks(application.grant_id)
        self._commit("application review")
        self.db.refresh(application)
        logger.info(f"Application {application.id} reviewed: status={application.status}, r_score={application.r_score}")
        return application

    def _assign_ranks(self, grant_id: int) -> None:
        self.db.flush()
        applications = self.db.query(models.Application).filter(models.Application.grant_id == grant_id).all()
        ranked = MatchingService.compute_rank(applications)
        ranks = {entry.application.id: entry.rank for entry in ranked}
        for application in applications:
            application.global_rank = ranks.get(application.id)
