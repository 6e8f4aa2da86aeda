"""create pastes table

Revision ID: 001_create_pastes
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_pastes'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'pastes',
        sa.Column('id', sa.String(length=8), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('max_views', sa.Integer(), nullable=True),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('max_views IS NULL OR max_views >= 1', name='ck_pastes_max_views_min_1'),
        sa.CheckConstraint('views >= 0', name='ck_pastes_views_non_negative'),
    )
    # Used by the expiry sweeper.
    op.create_index(op.f('ix_pastes_expires_at'), 'pastes', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_pastes_expires_at'), table_name='pastes')
    op.drop_table('pastes')
