"""add waitlist table

Revision ID: 9d41c6e2f7a3
Revises: 5c2a7e91b0d4
Create Date: 2025-10-09 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9d41c6e2f7a3'
down_revision = '5c2a7e91b0d4'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'waitlist' in set(insp.get_table_names()):
        return
    op.create_table(
        'waitlist',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=254), nullable=True),
        sa.Column('farcaster_username', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('email', name='uq_waitlist_email'),
        sa.UniqueConstraint('farcaster_username', name='uq_waitlist_farcaster_username'),
    )


def downgrade():
    op.drop_table('waitlist')
