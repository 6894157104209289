"""Initial migration

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    degree_level = postgresql.ENUM('bachelors', 'masters', 'phd', name='degree_level', create_type=False)
    grant_type = postgresql.ENUM('scholarship', 'fellowship', 'research_grant', 'travel_grant', name='grant_type', create_type=False)
    degree_level.create(op.get_bind(), checkfirst=True)
    grant_type.create(op.get_bind(), checkfirst=True)

    # Create universities table
    op.create_table(
        'universities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('logo_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_universities_id'), 'universities', ['id'], unique=False)
    op.create_index(op.f('ix_universities_name'), 'universities', ['name'], unique=False)
    op.create_index(op.f('ix_universities_country'), 'universities', ['country'], unique=False)

    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='student'),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('nationality', sa.String(), nullable=True),
        sa.Column('current_country', sa.String(), nullable=True),
        sa.Column('current_city', sa.String(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('university_id', sa.Integer(), nullable=True),
        sa.Column('current_degree', degree_level, nullable=True),
        sa.Column('field_of_study', sa.String(), nullable=True),
        sa.Column('gpa', sa.Float(), nullable=True),
        sa.Column('gpa_scale', sa.Float(), nullable=False, server_default='4.0'),
        sa.Column('graduation_year', sa.Integer(), nullable=True),
        sa.Column('gre_verbal', sa.Integer(), nullable=True),
        sa.Column('gre_quant', sa.Integer(), nullable=True),
        sa.Column('gre_awa', sa.Float(), nullable=True),
        sa.Column('toefl_score', sa.Integer(), nullable=True),
        sa.Column('research_interests', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['university_id'], ['universities.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('gpa IS NULL OR (gpa >= 0 AND gpa <= gpa_scale)', name='ck_profiles_gpa_in_scale')
    )
    op.create_index(op.f('ix_profiles_id'), 'profiles', ['id'], unique=False)
    op.create_index(op.f('ix_profiles_user_id'), 'profiles', ['user_id'], unique=True)
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=False)

    # Create grants table
    op.create_table(
        'grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('grant_type', grant_type, nullable=False, server_default='scholarship'),
        sa.Column('university_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('degree_levels', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('fields_of_study', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('eligible_countries', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('min_gpa', sa.Float(), nullable=True),
        sa.Column('funding_amount', sa.String(), nullable=True),
        sa.Column('stipend_monthly', sa.String(), nullable=True),
        sa.Column('covers_tuition', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('covers_living', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('deadline', sa.Date(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('duration_months', sa.Integer(), nullable=True),
        sa.Column('language', sa.String(), nullable=True),
        sa.Column('application_url', sa.String(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['university_id'], ['universities.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_grants_id'), 'grants', ['id'], unique=False)
    op.create_index(op.f('ix_grants_title'), 'grants', ['title'], unique=False)
    op.create_index(op.f('ix_grants_university_id'), 'grants', ['university_id'], unique=False)
    op.create_index(op.f('ix_grants_created_by'), 'grants', ['created_by'], unique=False)
    op.create_index(op.f('ix_grants_deadline'), 'grants', ['deadline'], unique=False)

    # Create saved_grants table
    op.create_table(
        'saved_grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('grant_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['grant_id'], ['grants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'grant_id', name='uq_saved_grants_user_grant')
    )
    op.create_index(op.f('ix_saved_grants_id'), 'saved_grants', ['id'], unique=False)
    op.create_index(op.f('ix_saved_grants_user_id'), 'saved_grants', ['user_id'], unique=False)

    # Create applications table
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('grant_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decision_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('match_score', sa.Integer(), nullable=True),
        sa.Column('r_score', sa.Integer(), nullable=True),
        sa.Column('global_rank', sa.Integer(), nullable=True),
        sa.Column('reviewer_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['grant_id'], ['grants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'grant_id', name='uq_applications_user_grant')
    )
    op.create_index(op.f('ix_applications_id'), 'applications', ['id'], unique=False)
    op.create_index(op.f('ix_applications_user_id'), 'applications', ['user_id'], unique=False)
    op.create_index(op.f('ix_applications_grant_id'), 'applications', ['grant_id'], unique=False)
    op.create_index('idx_applications_grant_status', 'applications', ['grant_id', 'status'], unique=False)

    # Create tryout_submissions table
    op.create_table(
        'tryout_submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('proposal_url', sa.String(), nullable=True),
        sa.Column('video_url', sa.String(), nullable=True),
        sa.Column('portfolio_url', sa.String(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tryout_submissions_id'), 'tryout_submissions', ['id'], unique=False)
    op.create_index(op.f('ix_tryout_submissions_application_id'), 'tryout_submissions', ['application_id'], unique=True)
    op.create_index(op.f('ix_tryout_submissions_user_id'), 'tryout_submissions', ['user_id'], unique=False)

    # Create documents table
    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('document_type', sa.String(length=30), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_documents_id'), 'documents', ['id'], unique=False)
    op.create_index(op.f('ix_documents_user_id'), 'documents', ['user_id'], unique=False)

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('log_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_user_id'), 'audit_logs', ['user_id'], unique=False)
    op.create_index(op.f('ix_audit_logs_action'), 'audit_logs', ['action'], unique=False)
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_audit_logs_created_at'), table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_action'), table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_user_id'), table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_id'), table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index(op.f('ix_documents_user_id'), table_name='documents')
    op.drop_index(op.f('ix_documents_id'), table_name='documents')
    op.drop_table('documents')
    op.drop_index(op.f('ix_tryout_submissions_user_id'), table_name='tryout_submissions')
    op.drop_index(op.f('ix_tryout_submissions_application_id'), table_name='tryout_submissions')
    op.drop_index(op.f('ix_tryout_submissions_id'), table_name='tryout_submissions')
    op.drop_table('tryout_submissions')
    op.drop_index('idx_applications_grant_status', table_name='applications')
    op.drop_index(op.f('ix_applications_grant_id'), table_name='applications')
    op.drop_index(op.f('ix_applications_user_id'), table_name='applications')
    op.drop_index(op.f('ix_applications_id'), table_name='applications')
    op.drop_table('applications')
    op.drop_index(op.f('ix_saved_grants_user_id'), table_name='saved_grants')
    op.drop_index(op.f('ix_saved_grants_id'), table_name='saved_grants')
    op.drop_table('saved_grants')
    op.drop_index(op.f('ix_grants_deadline'), table_name='grants')
    op.drop_index(op.f('ix_grants_created_by'), table_name='grants')
    op.drop_index(op.f('ix_grants_university_id'), table_name='grants')
    op.drop_index(op.f('ix_grants_title'), table_name='grants')
    op.drop_index(op.f('ix_grants_id'), table_name='grants')
    op.drop_table('grants')
    op.drop_index(op.f('ix_profiles_email'), table_name='profiles')
    op.drop_index(op.f('ix_profiles_user_id'), table_name='profiles')
    op.drop_index(op.f('ix_profiles_id'), table_name='profiles')
    op.drop_table('profiles')
    op.drop_index(op.f('ix_universities_country'), table_name='universities')
    op.drop_index(op.f('ix_universities_name'), table_name='universities')
    op.drop_index(op.f('ix_universities_id'), table_name='universities')
    op.drop_table('universities')
    sa.Enum(name='grant_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='degree_level').drop(op.get_bind(), checkfirst=True)
