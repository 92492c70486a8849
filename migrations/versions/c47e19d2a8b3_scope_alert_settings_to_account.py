"""scope budget_alert_settings to an account

Revision ID: c47e19d2a8b3
Revises: 8b14e6a0c5f2
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "c47e19d2a8b3"
down_revision = "8b14e6a0c5f2"
branch_labels = None
depends_on = None

_SETTINGS_COLUMNS = (
    "enable_warning_alerts, warning_thresholds, enable_exceeded_alerts, "
    "enable_expiring_alerts, expiring_days_before, enable_daily_rate_alerts, "
    "daily_rate_threshold, enable_push_notifications, enable_in_app_alerts, "
    "quiet_hours_start, quiet_hours_end, alert_frequency"
)


def upgrade() -> None:
    op.add_column("budget_alert_settings", sa.Column("account_id", sa.Integer(), nullable=True))

    # Per-budget overrides belong to the budget's owner
    op.execute(
        "UPDATE budget_alert_settings s SET account_id = b.account_id "
        "FROM budgets b WHERE s.budget_id = b.budget_id"
    )
    # The old installation-wide row becomes every budget owner's global row
    op.execute(
        f"INSERT INTO budget_alert_settings (account_id, budget_id, {_SETTINGS_COLUMNS}) "
        f"SELECT owners.account_id, NULL, {_SETTINGS_COLUMNS} "
        "FROM budget_alert_settings s "
        "CROSS JOIN (SELECT DISTINCT account_id FROM budgets) owners "
        "WHERE s.budget_id IS NULL AND s.account_id IS NULL"
    )
    op.execute("DELETE FROM budget_alert_settings WHERE account_id IS NULL")

    op.alter_column("budget_alert_settings", "account_id", nullable=False)
    op.create_index("ix_budget_alert_settings_account_id", "budget_alert_settings", ["account_id"])
    op.create_index(
        "uq_budget_alert_settings_account_global",
        "budget_alert_settings",
        ["account_id"],
        unique=True,
        postgresql_where=sa.text("budget_id IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_budget_alert_settings_account_global", table_name="budget_alert_settings")
    op.drop_index("ix_budget_alert_settings_account_id", table_name="budget_alert_settings")
    # Keep one global row; per-account differences are lost
    op.execute(
        "DELETE FROM budget_alert_settings WHERE budget_id IS NULL AND id NOT IN "
        "(SELECT MIN(id) FROM budget_alert_settings WHERE budget_id IS NULL)"
    )
    op.drop_column("budget_alert_settings", "account_id")
