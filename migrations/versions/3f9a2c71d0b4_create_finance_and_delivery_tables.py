"""create categories, transactions_feed, budgets, push_subscriptions, telegram_settings tables

Revision ID: 3f9a2c71d0b4
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a2c71d0b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'categories',
        sa.Column('category_id', sa.Integer(), primary_key=True),
        sa.Column('account_id', sa.Integer(), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('category_type', sa.String(20), nullable=False),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'transactions_feed',
        sa.Column('transaction_id', sa.Integer(), primary_key=True),
        sa.Column('account_id', sa.Integer(), nullable=False, index=True),
        sa.Column('operation_type', sa.String(20), nullable=False, index=True),
        sa.Column('amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('wallet_id', sa.Integer(), nullable=True, index=True),
        sa.Column('category_id', sa.Integer(), nullable=True, index=True),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('exclude_from_report', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('occurred_at', sa.TIMESTAMP(timezone=True), nullable=False, index=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # wallet_id = -1: budget covers all wallets
    op.create_table(
        'budgets',
        sa.Column('budget_id', sa.Integer(), primary_key=True),
        sa.Column('account_id', sa.Integer(), nullable=False, index=True),
        sa.Column('category_id', sa.Integer(), nullable=False, index=True),
        sa.Column('wallet_id', sa.Integer(), nullable=False, server_default='-1'),
        sa.Column('amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('from_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('is_repeating', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'push_subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('endpoint', sa.Text(), nullable=False, unique=True),
        sa.Column('p256dh', sa.Text(), nullable=False),
        sa.Column('auth', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'telegram_settings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False, unique=True),
        sa.Column('chat_id', sa.String(64), nullable=True),
        sa.Column('connected', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('connected_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('telegram_settings')
    op.drop_table('push_subscriptions')
    op.drop_table('budgets')
    op.drop_table('transactions_feed')
    op.drop_table('categories')
