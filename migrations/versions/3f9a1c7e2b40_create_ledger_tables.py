"""create ledger tables

Revision ID: 3f9a1c7e2b40
Revises:
Create Date: 2026-03-02 10:12:44.181203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = '3f9a1c7e2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # 1. users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('nickname', sa.String(length=50), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('last_signed_in_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('nickname'),
    )

    # 2. earnings (three parallel minor-unit columns)
    op.create_table(
        'earnings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('gbp_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('eur_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('usd_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'gbp_amount >= 0 AND eur_amount >= 0 AND usd_amount >= 0',
            name='ck_earnings_amounts_non_negative',
        ),
        sa.CheckConstraint('duration_minutes > 0', name='ck_earnings_duration_positive'),
    )
    op.create_index('ix_earnings_user_id', 'earnings', ['user_id'])
    op.create_index('ix_earnings_date', 'earnings', ['date'])
    op.create_index('ix_earnings_user_date', 'earnings', ['user_id', 'date'])

    # 3. top_periods
    op.create_table(
        'top_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('ends_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('closed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_top_periods_user_id', 'top_periods', ['user_id'])
    op.create_index('ix_top_periods_status', 'top_periods', ['status'])
    op.create_index(
        'uq_top_periods_one_active_per_user',
        'top_periods',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # 4. week_snapshots
    op.create_table(
        'week_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('top_id', sa.Integer(), nullable=True),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('week_end', sa.Date(), nullable=False),
        sa.Column('total_gbp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_eur', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_usd', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_duration_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('earnings_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('days_worked', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('details_by_day', JSONB, nullable=False),
        sa.Column('totals_by_payment_method', JSONB, nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['top_id'], ['top_periods.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('top_id', name='uq_week_snapshots_top'),
    )
    op.create_index('ix_week_snapshots_user_id', 'week_snapshots', ['user_id'])
    op.create_index(
        'uq_week_snapshots_user_week_no_top',
        'week_snapshots',
        ['user_id', 'week_start'],
        unique=True,
        postgresql_where=sa.text('top_id IS NULL'),
    )
    op.create_index('ix_week_snapshots_week_start', 'week_snapshots', ['week_start'])

    # 5. audit_logs
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('target_id', sa.String(length=64), nullable=True),
        sa.Column('details', JSONB, nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_index('uq_week_snapshots_user_week_no_top', table_name='week_snapshots')
    op.drop_table('week_snapshots')
    op.drop_index('uq_top_periods_one_active_per_user', table_name='top_periods')
    op.drop_table('top_periods')
    op.drop_table('earnings')
    op.drop_table('users')
