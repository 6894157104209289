"""
Shared fixtures.

Settings are read once at import time, so the environment is prepared
before anything from careerbird is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-careerbird-0123456789abcdef")
os.environ.setdefault("DEBUG", "true")

from datetime import date, datetime, timezone

import pytest

from careerbird.core.security import SessionContext, create_access_token
from careerbird.db.database import Base, SessionLocal, engine
from careerbird.db import models

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed clock: Tuesday 10 March 2026, 15:30 UTC."""
    return NOW


@pytest.fixture
def db():
    """Fresh schema on the shared in-memory database."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def student_session():
    return SessionContext(user_id="student-1", role="student", email="ada@example.com")


@pytest.fixture
def student_headers():
    token = create_access_token("student-1", role="student", email="ada@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_student_headers():
    token = create_access_token("student-2", role="student")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def professor_headers():
    token = create_access_token("prof-1", role="professor", email="turing@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def university(db):
    row = models.University(name="University of Oxford", country="United Kingdom", city="Oxford")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def grant(db, university):
    row = models.Grant(
        title="Computing Research Fellowship",
        description="Funded doctoral research in machine learning and computing",
        grant_type="fellowship",
        university_id=university.id,
        created_by="prof-1",
        degree_levels=["phd"],
        fields_of_study=["Computer Science", "Mathematics"],
        eligible_countries=["United Kingdom", "Nigeria"],
        min_gpa=3.5,
        funding_amount="Full funding",
        deadline=date(2026, 3, 15),
        start_date=date(2026, 10, 1),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
