"""Treasury state tables: singleton ledger snapshot and per-module unlocks.

Revision ID: 001_treasury_state
Revises:
Create Date: 2026-10-17

treasury_ledger.version backs the store's optimistic concurrency check.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_treasury_state'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'treasury_ledger',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('snapshot', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        'module_unlocks',
        sa.Column('module_id', sa.String(64), primary_key=True),
        sa.Column('status', sa.String(40), nullable=False, server_default='locked'),
        sa.Column('notified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('auto_unlock_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('suspended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_charged_period', sa.String(7), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('module_unlocks')
    op.drop_table('treasury_ledger')
