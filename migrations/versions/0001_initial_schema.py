"""Initial schema: users, doctors, reviews, ratings, sessions and activity logs

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-10-01 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1) Accounts
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('username', sa.String(length=30), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('profile_image_url', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='student'),
        sa.Column('student_id', sa.String(length=64), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('verification_token_hash', sa.String(length=64), nullable=True),
        sa.Column('reset_token_hash', sa.String(length=64), nullable=True),
        sa.Column('reset_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.CheckConstraint("role in ('student','teacher','admin')", name='ck_users_role'),
    )
    op.create_index('ix_users_role', 'users', ['role'], unique=False)
    op.create_index('ix_users_created_at', 'users', ['created_at'], unique=False)

    # 2) Doctors and their reviews
    op.create_table(
        'doctors',
        sa.Column('id', sa.Integer(), nullable=False, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('department', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_image_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_doctors_department', 'doctors', ['department'], unique=False)
    op.create_index('ix_doctors_created_at', 'doctors', ['created_at'], unique=False)

    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), nullable=False, primary_key=True, autoincrement=True),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('teaching_quality', sa.Integer(), nullable=False),
        sa.Column('availability', sa.Integer(), nullable=False),
        sa.Column('communication', sa.Integer(), nullable=False),
        sa.Column('knowledge', sa.Integer(), nullable=False),
        sa.Column('fairness', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('teaching_quality BETWEEN 1 AND 5', name='ck_reviews_teaching_quality_range'),
        sa.CheckConstraint('availability BETWEEN 1 AND 5', name='ck_reviews_availability_range'),
        sa.CheckConstraint('communication BETWEEN 1 AND 5', name='ck_reviews_communication_range'),
        sa.CheckConstraint('knowledge BETWEEN 1 AND 5', name='ck_reviews_knowledge_range'),
        sa.CheckConstraint('fairness BETWEEN 1 AND 5', name='ck_reviews_fairness_range'),
    )
    op.create_index('ix_reviews_doctor_id_created_at', 'reviews', ['doctor_id', 'created_at'], unique=False)

    op.create_table(
        'doctor_ratings',
        sa.Column('id', sa.Integer(), nullable=False, primary_key=True, autoincrement=True),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('avg_teaching_quality', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avg_availability', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avg_communication', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avg_knowledge', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avg_fairness', sa.Float(), nullable=False, server_default='0'),
        sa.Column('overall_rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('doctor_id', name='uq_doctor_ratings_doctor_id'),
    )

    # 3) Server-side sessions
    op.create_table(
        'sessions',
        sa.Column('sid', sa.String(length=128), nullable=False, primary_key=True),
        sa.Column('sess', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('expire', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_session_expire', 'sessions', ['expire'], unique=False)

    # 4) Activity log
    op.create_table(
        'activity_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('username', sa.String(length=254), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=True),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_activity_logs_type_created_at', 'activity_logs', ['type', 'created_at'], unique=False)
    op.create_index('ix_activity_logs_user_id_created_at', 'activity_logs', ['user_id', 'created_at'], unique=False)
    op.create_index('ix_activity_logs_ip_address', 'activity_logs', ['ip_address'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_activity_logs_ip_address', table_name='activity_logs')
    op.drop_index('ix_activity_logs_user_id_created_at', table_name='activity_logs')
    op.drop_index('ix_activity_logs_type_created_at', table_name='activity_logs')
    op.drop_table('activity_logs')

    op.drop_index('ix_session_expire', table_name='sessions')
    op.drop_table('sessions')

    op.drop_table('doctor_ratings')
    op.drop_index('ix_reviews_doctor_id_created_at', table_name='reviews')
    op.drop_table('reviews')
    op.drop_index('ix_doctors_created_at', table_name='doctors')
    op.drop_index('ix_doctors_department', table_name='doctors')
    op.drop_table('doctors')

    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
