"""create budget_alerts, budget_alert_settings tables

Revision ID: 8b14e6a0c5f2
Revises: 3f9a2c71d0b4
Create Date: 2026-09-14 10:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "8b14e6a0c5f2"
down_revision = "3f9a2c71d0b4"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # budget_alerts: engine inserts, user flips is_read / is_dismissed
    op.create_table(
        "budget_alerts",
        sa.Column("alert_id", sa.String(36), primary_key=True),
        sa.Column("budget_id", sa.Integer, nullable=False, index=True),
        sa.Column("alert_type", sa.String(32), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_dismissed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_notified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    # Dedup lookup: budget + type + day
    op.create_index(
        "ix_budget_alerts_dedup_lookup",
        "budget_alerts",
        ["budget_id", "alert_type", "created_at"],
    )
    op.create_index(
        "ix_budget_alerts_active",
        "budget_alerts",
        ["is_dismissed", "is_read"],
    )

    # budget_alert_settings: budget_id NULL = global row
    op.create_table(
        "budget_alert_settings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("budget_id", sa.Integer, nullable=True, unique=True),
        sa.Column("enable_warning_alerts", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("warning_thresholds", JSONB, nullable=False, server_default="[80, 90, 95]"),
        sa.Column("enable_exceeded_alerts", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("enable_expiring_alerts", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("expiring_days_before", sa.SmallInteger, nullable=False, server_default="3"),
        sa.Column("enable_daily_rate_alerts", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("daily_rate_threshold", sa.Float, nullable=False, server_default="1.5"),
        sa.Column("enable_push_notifications", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("enable_in_app_alerts", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("quiet_hours_start", sa.SmallInteger, nullable=True),
        sa.Column("quiet_hours_end", sa.SmallInteger, nullable=True),
        sa.Column("alert_frequency", sa.String(16), nullable=False, server_default="ONCE_PER_DAY"),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    )


def downgrade() -> None:
    op.drop_table("budget_alert_settings")
    op.drop_index("ix_budget_alerts_active", table_name="budget_alerts")
    op.drop_index("ix_budget_alerts_dedup_lookup", table_name="budget_alerts")
    op.drop_table("budget_alerts")
