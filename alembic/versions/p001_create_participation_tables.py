"""Create sessions, session_participants and public_rsvps tables

Revision ID: p001_create_participation_tables
Revises:
Create Date: 2026-10-18

Members and anonymous attendees are stored separately but count against
the session's single capacity. Counts are never stored; they are derived
from the active rows of the two participant tables.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'p001_create_participation_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'sessions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='SCHEDULED'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('capacity >= 1', name='check_session_capacity_positive'),
        sa.CheckConstraint('version >= 0', name='check_session_version_positive'),
    )
    op.create_index('ix_sessions_owner_id', 'sessions', ['owner_id'])

    op.create_table(
        'session_participants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('session_id', sa.String(), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('participant_id', sa.String(), nullable=False),
        sa.Column('state', sa.String(20), nullable=False, server_default='JOINED'),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('left_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('removed_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('session_id', 'participant_id', name='unique_session_participant'),
    )
    op.create_index('ix_session_participants_session_id', 'session_participants', ['session_id'])
    op.create_index('ix_session_participants_participant_id', 'session_participants', ['participant_id'])
    op.create_index(
        'idx_session_participants_session_state',
        'session_participants',
        ['session_id', 'state'],
    )
    # At most one active participation per member per session
    op.create_index(
        'uq_session_participants_active',
        'session_participants',
        ['session_id', 'participant_id'],
        unique=True,
        postgresql_where=sa.text("state = 'JOINED'"),
        sqlite_where=sa.text("state = 'JOINED'"),
    )

    op.create_table(
        'public_rsvps',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('session_id', sa.String(), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendee_token', sa.String(64), nullable=False),
        sa.Column('attending', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('display_name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('phone', sa.String(40), nullable=True),
        sa.Column('message', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('session_id', 'attendee_token', name='unique_public_rsvp_token'),
    )
    op.create_index('ix_public_rsvps_session_id', 'public_rsvps', ['session_id'])
    op.create_index('ix_public_rsvps_attendee_token', 'public_rsvps', ['attendee_token'])
    op.create_index(
        'idx_public_rsvps_session_attending',
        'public_rsvps',
        ['session_id', 'attending'],
    )
    op.create_index(
        'uq_public_rsvps_attending',
        'public_rsvps',
        ['session_id', 'attendee_token'],
        unique=True,
        postgresql_where=sa.text('attending = true'),
        sqlite_where=sa.text('attending = 1'),
    )


def downgrade() -> None:
    op.drop_index('uq_public_rsvps_attending', table_name='public_rsvps')
    op.drop_index('idx_public_rsvps_session_attending', table_name='public_rsvps')
    op.drop_index('ix_public_rsvps_attendee_token', table_name='public_rsvps')
    op.drop_index('ix_public_rsvps_session_id', table_name='public_rsvps')
    op.drop_table('public_rsvps')

    op.drop_index('uq_session_participants_active', table_name='session_participants')
    op.drop_index('idx_session_participants_session_state', table_name='session_participants')
    op.drop_index('ix_session_participants_participant_id', table_name='session_participants')
    op.drop_index('ix_session_participants_session_id', table_name='session_participants')
    op.drop_table('session_participants')

    op.drop_index('ix_sessions_owner_id', table_name='sessions')
    op.drop_table('sessions')
