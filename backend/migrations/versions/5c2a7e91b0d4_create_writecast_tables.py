"""create user, puzzle, invite, game_session and attempt tables

Revision ID: 5c2a7e91b0d4
Revises:
Create Date: 2025-10-06 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a7e91b0d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('farcaster_id', sa.String(length=128), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=True),
            sa.Column('display_name', sa.String(length=128), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_user_farcaster_id', 'user', ['farcaster_id'], unique=True)
        op.create_index('ix_user_username', 'user', ['username'])

    if 'puzzle' not in existing_tables:
        op.create_table(
            'puzzle',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=16), nullable=False),
            sa.Column('mode', sa.String(length=16), nullable=False),
            sa.Column('body_text', sa.Text(), nullable=False),
            sa.Column('hidden_word', sa.String(length=64), nullable=False),
            sa.Column('author_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=False),
            sa.Column('total_players', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('successful_guesses', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('failed_guesses', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_attempts', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_puzzle_code', 'puzzle', ['code'], unique=True)
        op.create_index('ix_puzzle_author_id', 'puzzle', ['author_id'])

    if 'invite' not in existing_tables:
        op.create_table(
            'invite',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('puzzle_id', sa.Integer(), sa.ForeignKey('puzzle.id'), nullable=False),
            sa.Column('inviter_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('invited_handle', sa.String(length=64), nullable=False),
            sa.Column('invited_player_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
            sa.Column('inviter_earned_points', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('puzzle_id', 'inviter_id', name='uq_invite_puzzle_inviter'),
        )
        op.create_index('ix_invite_puzzle_id', 'invite', ['puzzle_id'])
        op.create_index('ix_invite_inviter_id', 'invite', ['inviter_id'])
        op.create_index('ix_invite_invited_handle', 'invite', ['invited_handle'])

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('puzzle_id', sa.Integer(), sa.ForeignKey('puzzle.id'), nullable=False),
            sa.Column('player_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='in_progress'),
            sa.Column('total_attempts', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('bonus_attempts', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('has_used_invite', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('invite_id', sa.Integer(), sa.ForeignKey('invite.id'), nullable=True),
            sa.Column('started_at', sa.DateTime(), nullable=False),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('puzzle_id', 'player_id', name='uq_game_session_puzzle_player'),
        )
        op.create_index('ix_game_session_puzzle_id', 'game_session', ['puzzle_id'])
        op.create_index('ix_game_session_player_id', 'game_session', ['player_id'])

    if 'attempt' not in existing_tables:
        op.create_table(
            'attempt',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
            sa.Column('guess_text', sa.String(length=128), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=False),
            sa.Column('attempt_number', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('session_id', 'attempt_number', name='uq_attempt_session_number'),
        )
        op.create_index('ix_attempt_session_id', 'attempt', ['session_id'])


def downgrade():
    op.drop_table('attempt')
    op.drop_table('game_session')
    op.drop_table('invite')
    op.drop_table('puzzle')
    op.drop_table('user')
