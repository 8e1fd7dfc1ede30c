"""create user, game_session, game_event and score tables

Revision ID: 3a7c9e1f2b40
Revises:
Create Date: 2025-01-12 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c9e1f2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('mobile', sa.String(length=16), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('password_hash', sa.String(length=128), nullable=False),
        sa.Column('referral_id', sa.String(length=16), nullable=False),
        sa.Column('referral_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('referred_by_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_mobile', 'user', ['mobile'], unique=True)
    op.create_index('ix_user_referral_id', 'user', ['referral_id'], unique=True)
    op.create_index('ix_user_referred_by_id', 'user', ['referred_by_id'])

    op.create_table(
        'game_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=False, unique=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('final_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('client_version', sa.String(length=32), nullable=True),
        sa.Column('device_info', sa.JSON(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('checksum', sa.String(length=64), nullable=True),
    )
    op.create_index('ix_game_session_user_session', 'game_session', ['user_id', 'session_id'])
    op.create_index('ix_game_session_start_time', 'game_session', ['start_time'])

    op.create_table(
        'game_event',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
    )
    op.create_index('ix_game_event_game_session_id', 'game_event', ['game_session_id'])

    op.create_table(
        'score',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, unique=True),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_score_created_at', 'score', ['created_at'])


def downgrade():
    op.drop_table('score')
    op.drop_table('game_event')
    op.drop_table('game_session')
    op.drop_table('user')
