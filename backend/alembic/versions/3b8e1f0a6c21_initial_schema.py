"""Initial schema: users, sessions and session children

Revision ID: 3b8e1f0a6c21
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b8e1f0a6c21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', _enum('user', 'admin', name='userrole'), nullable=False),
        sa.Column('is_guest', sa.Boolean(), nullable=False),
        sa.Column('preferred_lang', sa.String(length=16), nullable=False),
        sa.Column('avatar_url', sa.String(length=1024), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('session_type', _enum('live', 'upload', name='sessiontype'), nullable=False),
        sa.Column('source_type', _enum('microphone', 'file', name='sourcetype'), nullable=False),
        sa.Column('source_url', sa.String(length=2048), nullable=True),
        sa.Column('language', sa.String(length=16), nullable=False),
        sa.Column('status', _enum('processing', 'completed', 'failed', name='sessionstatus'), nullable=False),
        sa.Column('duration_sec', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('sentiment', sa.Float(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_deleted_at', 'sessions', ['deleted_at'])

    op.create_table(
        'participants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_participants_session_id', 'participants', ['session_id'])

    op.create_table(
        'transcript_segments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('start_time', sa.Float(), nullable=False),
        sa.Column('end_time', sa.Float(), nullable=False),
        sa.Column('speaker_label', sa.String(length=128), nullable=False),
        sa.Column('transcript', sa.Text(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=True),
        sa.Column('highlights', sa.JSON(), nullable=True),
        sa.Column('is_final', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transcript_segments_session_id', 'transcript_segments', ['session_id'])

    op.create_table(
        'analysis_metrics',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column(
            'metric_type',
            _enum('tone', 'clarity', 'energy', 'sentiment', 'pause', 'speed', name='metrictype'),
            nullable=False,
        ),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.Float(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_analysis_metrics_session_id', 'analysis_metrics', ['session_id'])
    op.create_index('ix_analysis_metrics_metric_type', 'analysis_metrics', ['metric_type'])

    op.create_table(
        'feedback_suggestions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column(
            'type',
            _enum('tone', 'pacing', 'clarity', 'vocabulary', 'pause', 'emphasis', name='suggestiontype'),
            nullable=False,
        ),
        sa.Column('severity', _enum('low', 'medium', 'high', name='severity'), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('start_time', sa.Float(), nullable=True),
        sa.Column('end_time', sa.Float(), nullable=True),
        sa.Column('is_applied', sa.Boolean(), nullable=False),
        sa.Column('is_resolved', sa.Boolean(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_feedback_suggestions_session_id', 'feedback_suggestions', ['session_id'])
    op.create_index('ix_feedback_suggestions_type', 'feedback_suggestions', ['type'])


def downgrade() -> None:
    op.drop_table('feedback_suggestions')
    op.drop_table('analysis_metrics')
    op.drop_table('transcript_segments')
    op.drop_table('participants')
    op.drop_table('sessions')
    op.drop_table('users')
