"""
Database models.
"""

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Float, Text, ForeignKey, JSON, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import sqlalchemy as sa
from careerbird.db.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONList = JSON().with_variant(JSONB(), "postgresql")

DEGREE_LEVELS = ('bachelors', 'masters', 'phd')
GRANT_TYPES = ('scholarship', 'fellowship', 'research_grant', 'travel_grant')


class University(Base):
    """Institution that hosts grants and that students attend."""
    __tablename__ = "universities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    country = Column(String, nullable=True, index=True)
    city = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    grants = relationship("Grant", back_populates="university")


class Profile(Base):
    """Academic profile, one per account (user_id comes from the auth provider)."""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, default="student")  # 'student', 'professor', 'admin'

    # Personal
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    full_name = Column(String, nullable=True)  # Set by older sign-up flows instead of first/last
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    nationality = Column(String, nullable=True)
    current_country = Column(String, nullable=True)
    current_city = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    bio = Column(Text, nullable=True)
    title = Column(String, nullable=True)  # Professors: "Associate Professor", ...
    department = Column(String, nullable=True)

    # Academic
    university_id = Column(Integer, ForeignKey("universities.id"), nullable=True)
    current_degree = Column(sa.Enum(*DEGREE_LEVELS, name='degree_level'), nullable=True)
    field_of_study = Column(String, nullable=True)
    gpa = Column(Float, nullable=True)
    gpa_scale = Column(Float, nullable=False, default=4.0)
    graduation_year = Column(Integer, nullable=True)

    # Test scores
    gre_verbal = Column(Integer, nullable=True)
    gre_quant = Column(Integer, nullable=True)
    gre_awa = Column(Float, nullable=True)
    toefl_score = Column(Integer, nullable=True)

    research_interests = Column(JSONList, nullable=True)  # List of tags, order irrelevant

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    university = relationship("University")

    __table_args__ = (
        CheckConstraint("gpa IS NULL OR (gpa >= 0 AND gpa <= gpa_scale)", name="ck_profiles_gpa_in_scale"),
    )


class Grant(Base):
    """Funded position (scholarship, fellowship, research or travel grant)."""
    __tablename__ = "grants"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    grant_type = Column(sa.Enum(*GRANT_TYPES, name='grant_type'), nullable=False, default='scholarship')
    university_id = Column(Integer, ForeignKey("universities.id"), nullable=True, index=True)
    created_by = Column(String(64), nullable=True, index=True)  # Professor user id, hidden from students

    # Eligibility
    degree_levels = Column(JSONList, nullable=True)
    fields_of_study = Column(JSONList, nullable=True)
    eligible_countries = Column(JSONList, nullable=True)
    min_gpa = Column(Float, nullable=True)  # On a 4.0 scale

    # Funding (display strings, entered free-form by professors)
    funding_amount = Column(String, nullable=True)
    stipend_monthly = Column(String, nullable=True)
    covers_tuition = Column(Boolean, nullable=False, default=False)
    covers_living = Column(Boolean, nullable=False, default=False)

    # Timeline
    deadline = Column(Date, nullable=True, index=True)
    start_date = Column(Date, nullable=True)
    duration_months = Column(Integer, nullable=True)

    language = Column(String, nullable=True)
    application_url = Column(String, nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    university = relationship("University", back_populates="grants")
    applications = relationship("Application", back_populates="grant")


class SavedGrant(Base):
    """Student bookmark on a grant."""
    __tablename__ = "saved_grants"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    grant_id = Column(Integer, ForeignKey("grants.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    grant = relationship("Grant")

    __table_args__ = (
        UniqueConstraint('user_id', 'grant_id', name='uq_saved_grants_user_grant'),
    )


class Application(Base):
    """A student's pursuit of one grant."""
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    grant_id = Column(Integer, ForeignKey("grants.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft")  # draft → submitted → under_review → shortlisted → interview → accepted | rejected

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    decision_at = Column(DateTime(timezone=True), nullable=True)

    match_score = Column(Integer, nullable=True)  # 0-100, set on submission
    r_score = Column(Integer, nullable=True)  # 0-100, set by reviewer
    global_rank = Column(Integer, nullable=True)  # 1-based position within the grant's reviewed applicants
    reviewer_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    grant = relationship("Grant", back_populates="applications")
    tryout = relationship("TryoutSubmission", back_populates="application", uselist=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'grant_id', name='uq_applications_user_grant'),
        Index('idx_applications_grant_status', 'grant_id', 'status'),
    )


class TryoutSubmission(Base):
    """Proposal, video and portfolio deliverables attached to an application."""
    __tablename__ = "tryout_submissions"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, unique=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    proposal_url = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    portfolio_url = Column(String, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # 'pending', 'submitted', 'reviewed'
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    application = relationship("Application", back_populates="tryout")


class Document(Base):
    """Profile document (CV, transcript, recommendation, statement of purpose)."""
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=False)
    document_type = Column(String(30), nullable=False)  # 'cv', 'transcript', 'recommendation', 'sop'
    storage_path = Column(String, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Audit log for security and compliance."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # 'POST_api_v1_profiles_wizard_next', etc.
    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
    user_agent = Column(Text, nullable=True)
    log_metadata = Column(JSON, nullable=True)  # 'metadata' is reserved by SQLAlchemy
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
