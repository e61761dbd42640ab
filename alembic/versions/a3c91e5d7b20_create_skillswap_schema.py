"""create skillswap schema

Revision ID: a3c91e5d7b20
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a3c91e5d7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('username', sa.String(length=50), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=False),
    sa.Column('full_name', sa.String(length=255), nullable=True),
    sa.Column('bio', sa.Text(), nullable=True),
    sa.Column('profile_pic', sa.String(length=500), nullable=True),
    sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
    sa.Column('total_swaps', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('rating >= 0 AND rating <= 5', name='ck_users_rating_range'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('username'),
    sa.UniqueConstraint('email')
    )

    op.create_table('skills',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('skill_name', sa.String(length=100), nullable=False),
    sa.Column('skill_type', sa.String(length=10), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('proficiency_level', sa.String(length=20), nullable=False, server_default='Beginner'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint("skill_type IN ('OFFER', 'WANT')", name='ck_skills_type'),
    sa.CheckConstraint(
        "proficiency_level IN ('Beginner', 'Intermediate', 'Advanced', 'Expert')",
        name='ck_skills_proficiency'
    ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_skills_user_type', 'skills', ['user_id', 'skill_type'], unique=False)

    op.create_table('swap_requests',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('requester_id', sa.Integer(), nullable=False),
    sa.Column('receiver_id', sa.Integer(), nullable=False),
    sa.Column('requester_skill_id', sa.Integer(), nullable=False),
    sa.Column('receiver_skill_id', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
    sa.Column('message', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint(
        "status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'CANCELLED')",
        name='ck_swap_requests_status'
    ),
    sa.CheckConstraint('requester_id <> receiver_id', name='ck_swap_requests_distinct_users'),
    sa.ForeignKeyConstraint(['requester_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['requester_skill_id'], ['skills.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['receiver_skill_id'], ['skills.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    # One PENDING request per ordered (requester, receiver) pair
    op.create_index(
        'uq_swap_requests_pending_pair', 'swap_requests', ['requester_id', 'receiver_id'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'")
    )
    op.create_index('idx_swap_requests_receiver', 'swap_requests', ['receiver_id'], unique=False)

    op.create_table('swap_sessions',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('swap_request_id', sa.Integer(), nullable=False),
    sa.Column('user1_id', sa.Integer(), nullable=False),
    sa.Column('user2_id', sa.Integer(), nullable=False),
    sa.Column('user1_skill_id', sa.Integer(), nullable=False),
    sa.Column('user2_skill_id', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
    sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    sa.CheckConstraint("status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')", name='ck_swap_sessions_status'),
    sa.ForeignKeyConstraint(['swap_request_id'], ['swap_requests.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user1_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user2_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user1_skill_id'], ['skills.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user2_skill_id'], ['skills.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('swap_request_id')
    )
    op.create_index('idx_swap_sessions_user1', 'swap_sessions', ['user1_id'], unique=False)
    op.create_index('idx_swap_sessions_user2', 'swap_sessions', ['user2_id'], unique=False)

    op.create_table('sessions',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('swap_session_id', sa.Integer(), nullable=False),
    sa.Column('teacher_id', sa.Integer(), nullable=False),
    sa.Column('student_id', sa.Integer(), nullable=False),
    sa.Column('topic', sa.String(length=255), nullable=False),
    sa.Column('session_type', sa.String(length=10), nullable=False),
    sa.Column('scheduled_date', sa.DateTime(timezone=True), nullable=False),
    sa.Column('duration_hours', sa.Float(), nullable=False, server_default='1.0'),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='SCHEDULED'),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('meeting_link', sa.String(length=500), nullable=True),
    sa.Column('place', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint("session_type IN ('Online', 'Offline')", name='ck_sessions_type'),
    sa.CheckConstraint("status IN ('SCHEDULED', 'COMPLETED', 'CANCELLED')", name='ck_sessions_status'),
    sa.ForeignKeyConstraint(['swap_session_id'], ['swap_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_sessions_swap_date', 'sessions', ['swap_session_id', 'scheduled_date'], unique=False)

    op.create_table('resources',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('swap_session_id', sa.Integer(), nullable=False),
    sa.Column('uploaded_by', sa.Integer(), nullable=False),
    sa.Column('resource_type', sa.String(length=10), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('content', sa.Text(), nullable=True),
    sa.Column('file_path', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint("resource_type IN ('Link', 'PDF', 'Note', 'Other')", name='ck_resources_type'),
    sa.ForeignKeyConstraint(['swap_session_id'], ['swap_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_resources_swap', 'resources', ['swap_session_id'], unique=False)

    op.create_table('messages',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('swap_session_id', sa.Integer(), nullable=False),
    sa.Column('sender_id', sa.Integer(), nullable=False),
    sa.Column('message_text', sa.Text(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['swap_session_id'], ['swap_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_messages_swap_created', 'messages', ['swap_session_id', 'created_at'], unique=False)

    op.create_table('reviews',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('swap_session_id', sa.Integer(), nullable=False),
    sa.Column('reviewer_id', sa.Integer(), nullable=False),
    sa.Column('reviewee_id', sa.Integer(), nullable=False),
    sa.Column('rating', sa.Integer(), nullable=False),
    sa.Column('comment', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
    sa.ForeignKeyConstraint(['swap_session_id'], ['swap_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['reviewer_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['reviewee_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('swap_session_id', 'reviewer_id', 'reviewee_id', name='uq_reviews_session_pair')
    )
    op.create_index('idx_reviews_reviewee', 'reviews', ['reviewee_id'], unique=False)


def downgrade() -> None:
    # Children first so foreign keys never dangle
    op.drop_index('idx_reviews_reviewee', table_name='reviews')
    op.drop_table('reviews')
    op.drop_index('idx_messages_swap_created', table_name='messages')
    op.drop_table('messages')
    op.drop_index('idx_resources_swap', table_name='resources')
    op.drop_table('resources')
    op.drop_index('idx_sessions_swap_date', table_name='sessions')
    op.drop_table('sessions')
    op.drop_index('idx_swap_sessions_user2', table_name='swap_sessions')
    op.drop_index('idx_swap_sessions_user1', table_name='swap_sessions')
    op.drop_table('swap_sessions')
    op.drop_index('idx_swap_requests_receiver', table_name='swap_requests')
    op.drop_index('uq_swap_requests_pending_pair', table_name='swap_requests')
    op.drop_table('swap_requests')
    op.drop_index('idx_skills_user_type', table_name='skills')
    op.drop_table('skills')
    op.drop_table('users')
