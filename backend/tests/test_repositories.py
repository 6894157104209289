"""
Tests for the repositories against an in-memory SQLite database.
"""

from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from careerbird.core.exceptions import InvalidTransitionError, NotFoundError, PersistenceError, WizardValidationError
from careerbird.db import models
from careerbird.db.repositories import ApplicationRepository, GrantRepository, ProfileRepository
from careerbird.services.search_service import GrantFilters


class TestProfileRepository:

    def test_upsert_creates_then_updates(self, db):
        repo = ProfileRepository(db)

        created = repo.upsert_profile("student-1", {"first_name": "Ada", "gpa": 3.9, "gpa_scale": 4.0})
        updated = repo.upsert_profile("student-1", {"last_name": "Lovelace"})

        assert created.id == updated.id
        assert updated.first_name == "Ada"
        assert updated.last_name == "Lovelace"
        assert db.query(models.Profile).count() == 1

    def test_identical_save_does_not_touch_the_row(self, db):
        repo = ProfileRepository(db)
        fields = {"first_name": "Ada", "research_interests": ["Computing"]}

        repo.upsert_profile("student-1", fields)
        profile = repo.upsert_profile("student-1", dict(fields))

        assert profile.updated_at is None
        assert db.query(models.Profile).count() == 1

    def test_failed_commit_raises_persistence_error(self, db):
        repo = ProfileRepository(db)
        error = OperationalError("INSERT INTO profiles", {}, Exception("database is locked"))

        with patch.object(db, "commit", side_effect=error):
            with pytest.raises(PersistenceError):
                repo.upsert_profile("student-1", {"first_name": "Ada"})

        assert repo.get_profile("student-1") is None

    def test_unknown_university_is_a_validation_error(self, db):
        repo = ProfileRepository(db)

        with pytest.raises(WizardValidationError) as exc_info:
            repo.upsert_profile("student-1", {"first_name": "Ada", "university_id": 404})

        assert exc_info.value.fields == ["university_id"]
        assert repo.get_profile("student-1") is None

    def test_search_professors_by_name_or_title(self, db, university):
        repo = ProfileRepository(db)
        db.add_all([
            models.Profile(user_id="prof-1", role="professor", first_name="Alan", last_name="Turing",
                           title="Reader in Logic", university_id=university.id),
            models.Profile(user_id="prof-2", role="professor", first_name="Grace", last_name="Hopper"),
            models.Profile(user_id="student-1", role="student", first_name="Alana", last_name="Student"),
        ])
        db.commit()

        assert [p.user_id for p in repo.search_professors("ALAN")] == ["prof-1"]
        assert [p.user_id for p in repo.search_professors("logic")] == ["prof-1"]
        assert [p.user_id for p in repo.search_professors("hopp")] == ["prof-2"]
        assert len(repo.search_professors("r", limit=1)) == 1

    def test_documents(self, db):
        repo = ProfileRepository(db)

        repo.add_document("student-1", "cv.pdf", "cv", "documents/student-1/cv.pdf")

        assert repo.count_documents("student-1") == 1
        assert repo.count_documents("student-2") == 0

    def test_profiles_by_user(self, db):
        repo = ProfileRepository(db)
        repo.upsert_profile("student-1", {"first_name": "Ada"})
        repo.upsert_profile("student-2", {"first_name": "Alan"})

        profiles = repo.profiles_by_user(["student-2", "missing"])

        assert list(profiles) == ["student-2"]
        assert repo.profiles_by_user([]) == {}


class TestGrantRepository:

    @pytest.fixture
    def grants(self, db, university, grant):
        eth = models.University(name="ETH Zurich", country="Switzerland", city="Zurich")
        db.add(eth)
        db.commit()
        rows = [
            models.Grant(
                title="Masters Excellence Scholarship", university_id=eth.id, degree_levels=["masters"],
                fields_of_study=["Physics"], deadline=date(2026, 4, 1),
            ),
            models.Grant(title="Rolling Travel Grant", grant_type="travel_grant"),
            models.Grant(
                title="Featured Fellowship", university_id=university.id, is_featured=True,
                degree_levels=["phd", "masters"], deadline=date(2026, 5, 1),
            ),
        ]
        db.add_all(rows)
        db.commit()
        return [grant] + rows

    def test_order_is_featured_then_deadline_with_open_ended_last(self, db, grants):
        titles = [g.title for g in GrantRepository(db).search()]

        assert titles == [
            "Featured Fellowship",
            "Computing Research Fellowship",
            "Masters Excellence Scholarship",
            "Rolling Travel Grant",
        ]

    def test_filters(self, db, grants):
        repo = GrantRepository(db)

        assert [g.title for g in repo.search(GrantFilters(q="zurich"))] == ["Masters Excellence Scholarship"]
        assert [g.title for g in repo.search(GrantFilters(countries=["United Kingdom"]))] == [
            "Featured Fellowship", "Computing Research Fellowship"
        ]
        assert [g.title for g in repo.search(GrantFilters(degree_levels=["masters"]))] == [
            "Featured Fellowship", "Masters Excellence Scholarship"
        ]
        assert [g.title for g in repo.search(GrantFilters(fields=["physics"]))] == ["Masters Excellence Scholarship"]

    def test_text_search_covers_title_description_university_and_country(self, db, grants):
        repo = GrantRepository(db)

        assert [g.title for g in repo.search(GrantFilters(q="ROLLING"))] == ["Rolling Travel Grant"]
        assert [g.title for g in repo.search(GrantFilters(q="doctoral"))] == ["Computing Research Fellowship"]
        assert [g.title for g in repo.search(GrantFilters(q="oxford"))] == [
            "Featured Fellowship", "Computing Research Fellowship"
        ]
        assert [g.title for g in repo.search(GrantFilters(q="kingdom"))] == [
            "Featured Fellowship", "Computing Research Fellowship"
        ]
        assert len(repo.search(GrantFilters(q="   "))) == 4

    def test_filters_combine(self, db, grants):
        filters = GrantFilters(q="scholarship", degree_levels=["phd"])

        assert GrantRepository(db).search(filters) == []

    def test_paging(self, db, grants):
        assert [g.title for g in GrantRepository(db).search(skip=1, limit=1)] == ["Computing Research Fellowship"]

    def test_get_missing_grant(self, db):
        with pytest.raises(NotFoundError):
            GrantRepository(db).get(999)

    def test_create_checks_university(self, db):
        with pytest.raises(NotFoundError):
            GrantRepository(db).create({"title": "Orphan", "university_id": 42}, created_by="prof-1")

    def test_save_and_unsave_are_idempotent(self, db, grant):
        repo = GrantRepository(db)

        assert repo.save("student-1", grant.id) is True
        assert repo.save("student-1", grant.id) is True
        assert repo.saved_grant_ids("student-1") == [grant.id]
        assert [g.id for g in repo.saved_grants("student-1")] == [grant.id]

        assert repo.unsave("student-1", grant.id) is False
        assert repo.unsave("student-1", grant.id) is False
        assert repo.saved_grant_ids("student-1") == []

    def test_update_only_writes_changes(self, db, grant):
        repo = GrantRepository(db)

        repo.update(grant, {"title": grant.title})
        assert grant.updated_at is None

        repo.update(grant, {"funding_amount": "GBP 20,000"})
        assert repo.get(grant.id).funding_amount == "GBP 20,000"


def _deliverables(proposal="proposals/1/a.pdf", submitted_at=None):
    return {
        "proposal_url": proposal,
        "video_url": "videos/1/a.mp4",
        "portfolio_url": None,
        "status": "submitted",
        "submitted_at": submitted_at or datetime.now(timezone.utc),
    }


def _submit(repo, user_id, grant_id, match_score=None):
    return repo.submit_tryout(user_id, grant_id, _deliverables(), match_score=match_score)


class TestApplicationRepository:

    def test_start_then_submit_promotes_the_draft(self, db, grant):
        repo = ApplicationRepository(db)

        draft = repo.start_application("student-1", grant.id, match_score=80)
        again = repo.start_application("student-1", grant.id)
        submitted = _submit(repo, "student-1", grant.id, match_score=10)

        assert draft.id == again.id == submitted.id
        assert submitted.status == "submitted"
        assert submitted.submitted_at is not None
        assert submitted.match_score == 80
        assert submitted.tryout.video_url == "videos/1/a.mp4"
        assert db.query(models.Application).count() == 1

    def test_submit_without_draft_creates_the_application(self, db, grant):
        application = _submit(ApplicationRepository(db), "student-1", grant.id, match_score=64)

        assert application.status == "submitted"
        assert application.match_score == 64
        assert application.tryout is not None

    def test_submit_to_missing_grant(self, db):
        with pytest.raises(NotFoundError):
            _submit(ApplicationRepository(db), "student-1", 404)

    def test_failed_submit_leaves_the_draft_untouched(self, db, grant):
        repo = ApplicationRepository(db)
        draft = repo.start_application("student-1", grant.id)
        error = OperationalError("INSERT INTO tryout_submissions", {}, Exception("disk I/O error"))

        with patch.object(db, "commit", side_effect=error):
            with pytest.raises(PersistenceError):
                _submit(repo, "student-1", grant.id)

        db.expire_all()
        application = repo.get(draft.id)
        assert application.status == "draft"
        assert application.submitted_at is None
        assert application.tryout is None
        assert db.query(models.TryoutSubmission).count() == 0

    def test_application_to_missing_grant(self, db):
        with pytest.raises(NotFoundError):
            ApplicationRepository(db).start_application("student-1", 404)

    def test_resubmission_keeps_first_submission_time(self, db, grant):
        repo = ApplicationRepository(db)
        first = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

        repo.submit_tryout("student-1", grant.id, _deliverables(submitted_at=first))
        application = repo.submit_tryout("student-1", grant.id, _deliverables(
            proposal="proposals/1/b.pdf", submitted_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
        ))

        tryout = application.tryout
        assert tryout.proposal_url == "proposals/1/b.pdf"
        assert tryout.submitted_at.replace(tzinfo=None) == first.replace(tzinfo=None)
        assert db.query(models.TryoutSubmission).count() == 1

    def test_review_stamps_times_and_ranks(self, db, grant):
        repo = ApplicationRepository(db)
        first = _submit(repo, "student-1", grant.id)
        second = _submit(repo, "student-2", grant.id)

        first = repo.review(first, status="under_review", r_score=70)
        assert first.reviewed_at is not None
        assert first.decision_at is None
        assert first.global_rank == 1

        second = repo.review(second, status="shortlisted", r_score=90)
        db.refresh(first)
        assert (second.global_rank, first.global_rank) == (1, 2)

        first = repo.review(first, status="rejected", notes="Not a fit")
        assert first.decision_at is not None
        assert first.reviewer_notes == "Not a fit"

    def test_scored_but_unreviewed_application_is_unranked(self, db, grant):
        repo = ApplicationRepository(db)
        application = _submit(repo, "student-1", grant.id)

        application = repo.review(application, r_score=88)

        assert application.status == "submitted"
        assert application.global_rank is None

    def test_review_rejects_backward_moves(self, db, grant):
        repo = ApplicationRepository(db)
        application = repo.review(_submit(repo, "student-1", grant.id), status="interview")

        with pytest.raises(InvalidTransitionError):
            repo.review(application, status="under_review")

    def test_decided_application_is_final(self, db, grant):
        repo = ApplicationRepository(db)
        application = repo.review(_submit(repo, "student-1", grant.id), status="accepted")

        with pytest.raises(InvalidTransitionError):
            repo.review(application, status="rejected")

    def test_list_for_user(self, db, grant):
        repo = ApplicationRepository(db)
        repo.start_application("student-1", grant.id)
        repo.start_application("student-2", grant.id)

        assert [app.user_id for app in repo.list_for_user("student-1")] == ["student-1"]
        assert len(repo.list_for_grant(grant.id)) == 2
