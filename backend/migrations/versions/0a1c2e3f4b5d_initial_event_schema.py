"""initial event schema: teams, members, presentations, timer, votes, notes

Revision ID: 0a1c2e3f4b5d
Revises:
Create Date: 2025-09-14 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0a1c2e3f4b5d'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'team',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('presentation_order', sa.Integer(), nullable=True),
        sa.Column('has_presented', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_team_presentation_order', 'team', ['presentation_order'])
    op.create_index('ix_team_has_presented', 'team', ['has_presented'])

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('team.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)
    op.create_index('ix_user_team_id', 'user', ['team_id'])

    op.create_table(
        'presentation',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('team.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='upcoming'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_presentation_team_id', 'presentation', ['team_id'])
    op.create_index('ix_presentation_status', 'presentation', ['status'])

    op.create_table(
        'timer_state',
        sa.Column('id', sa.String(length=50), primary_key=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('duration_seconds', sa.Integer(), nullable=False, server_default='300'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('paused_at', sa.DateTime(), nullable=True),
        sa.Column('elapsed_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('presentation_id', sa.Integer(), nullable=True),
    )

    op.create_table(
        'vote',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('team.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_final_vote', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('public_note', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_vote_user_id', 'vote', ['user_id'])
    op.create_index('ix_vote_team_id', 'vote', ['team_id'])
    op.create_index('ix_vote_is_final_vote', 'vote', ['is_final_vote'])
    op.create_index(
        'uq_vote_final_per_user', 'vote', ['user_id'], unique=True,
        sqlite_where=sa.text('is_final_vote = 1'),
        postgresql_where=sa.text('is_final_vote'),
    )
    op.create_index(
        'uq_vote_draft_per_user_team', 'vote', ['user_id', 'team_id'], unique=True,
        sqlite_where=sa.text('is_final_vote = 0'),
        postgresql_where=sa.text('NOT is_final_vote'),
    )

    op.create_table(
        'private_note',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('team.id', ondelete='CASCADE'), nullable=False),
        sa.Column('note', sa.Text(), nullable=False, server_default=''),
        sa.Column('ranking', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'team_id', name='uq_private_note_user_team'),
    )
    op.create_index('ix_private_note_user_id', 'private_note', ['user_id'])
    op.create_index('ix_private_note_team_id', 'private_note', ['team_id'])

    # The timer row exists from the start and is never deleted
    timer_state = sa.table(
        'timer_state',
        sa.column('id', sa.String),
        sa.column('is_active', sa.Boolean),
        sa.column('duration_seconds', sa.Integer),
        sa.column('elapsed_seconds', sa.Integer),
    )
    op.bulk_insert(timer_state, [
        {'id': 'global', 'is_active': False, 'duration_seconds': 300, 'elapsed_seconds': 0},
    ])


def downgrade():
    op.drop_table('private_note')
    op.drop_index('uq_vote_draft_per_user_team', table_name='vote')
    op.drop_index('uq_vote_final_per_user', table_name='vote')
    op.drop_table('vote')
    op.drop_table('timer_state')
    op.drop_table('presentation')
    op.drop_table('user')
    op.drop_table('team')
