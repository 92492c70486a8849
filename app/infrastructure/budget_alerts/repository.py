"""
SQL-backed stores for the budget alert engine.

SqlBudgetStore:       active budgets + alert settings rows
SqlTransactionStore:  transactions inside a budget's window and scope
SqlAlertStore:        budget_alerts: engine inserts, inbox reads/updates
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.budget_alert import (
    ALL_WALLETS,
    AlertPersistenceError,
    AlertFrequency,
    AlertSettings,
    AlertSeverity,
    AlertType,
    Budget,
    BudgetAlert,
    Transaction,
    TransactionType,
)
from app.infrastructure.db.models import (
    BudgetAlertModel,
    BudgetAlertSettingsModel,
    BudgetModel,
    CategoryInfo,
    TransactionFeed,
)

# transactions_feed.operation_type → direction; TRANSFER never counts
_OPERATION_DIRECTIONS = {
    "EXPENSE": TransactionType.OUTFLOW,
    "INCOME": TransactionType.INFLOW,
}

# A finished one-off budget stays in the pass this long after end_date, so the
# EXPIRED alert is raised once
EXPIRED_GRACE = timedelta(days=1)


# ---------------------------------------------------------------------------
# Row ↔ domain mapping
# ---------------------------------------------------------------------------

def budget_from_row(row: BudgetModel, category_title: Optional[str]) -> Budget:
    return Budget(
        budget_id=row.budget_id,
        account_id=row.account_id,
        category_id=row.category_id,
        category_title=category_title,
        wallet_id=row.wallet_id,
        amount=Decimal(row.amount),
        from_date=row.from_date,
        end_date=row.end_date,
        is_repeating=row.is_repeating,
    )


def alert_from_row(row: BudgetAlertModel) -> BudgetAlert:
    return BudgetAlert(
        alert_id=row.alert_id,
        budget_id=row.budget_id,
        alert_type=AlertType(row.alert_type),
        severity=AlertSeverity(row.severity),
        message=row.message,
        timestamp=row.created_at,
        is_read=row.is_read,
        is_dismissed=row.is_dismissed,
        is_notified=row.is_notified,
    )


def settings_from_row(row: BudgetAlertSettingsModel) -> AlertSettings:
    return AlertSettings(
        budget_id=row.budget_id,
        enable_warning_alerts=row.enable_warning_alerts,
        warning_thresholds=tuple(int(t) for t in (row.warning_thresholds or [])),
        enable_exceeded_alerts=row.enable_exceeded_alerts,
        enable_expiring_alerts=row.enable_expiring_alerts,
        expiring_days_before=row.expiring_days_before,
        enable_daily_rate_alerts=row.enable_daily_rate_alerts,
        daily_rate_threshold=row.daily_rate_threshold,
        enable_push_notifications=row.enable_push_notifications,
        enable_in_app_alerts=row.enable_in_app_alerts,
        quiet_hours_start=row.quiet_hours_start,
        quiet_hours_end=row.quiet_hours_end,
        alert_frequency=AlertFrequency(row.alert_frequency),
        settings_id=row.id,
    )


def apply_settings(row: BudgetAlertSettingsModel, settings: AlertSettings) -> None:
    row.enable_warning_alerts = settings.enable_warning_alerts
    row.warning_thresholds = list(settings.warning_thresholds)
    row.enable_exceeded_alerts = settings.enable_exceeded_alerts
    row.enable_expiring_alerts = settings.enable_expiring_alerts
    row.expiring_days_before = settings.expiring_days_before
    row.enable_daily_rate_alerts = settings.enable_daily_rate_alerts
    row.daily_rate_threshold = settings.daily_rate_threshold
    row.enable_push_notifications = settings.enable_push_notifications
    row.enable_in_app_alerts = settings.enable_in_app_alerts
    row.quiet_hours_start = settings.quiet_hours_start
    row.quiet_hours_end = settings.quiet_hours_end
    row.alert_frequency = AlertFrequency(settings.alert_frequency).value


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class SqlBudgetStore:
    def __init__(self, db: Session):
        self.db = db

    def list_active_budgets(self, now: Optional[datetime] = None) -> List[Budget]:
        """
        Non-archived budgets. With `now`, finished one-off budgets are left out
        once their end_date is more than EXPIRED_GRACE behind `now`.
        """
        q = (
            self.db.query(BudgetModel, CategoryInfo.title)
            .outerjoin(CategoryInfo, CategoryInfo.category_id == BudgetModel.category_id)
            .filter(BudgetModel.is_archived == False)  # noqa: E712
        )
        if now is not None:
            q = q.filter(or_(
                BudgetModel.is_repeating == True,  # noqa: E712
                BudgetModel.end_date >= now - EXPIRED_GRACE,
            ))
        rows = q.order_by(BudgetModel.budget_id).all()
        return [budget_from_row(row, title) for row, title in rows]

    def get_budget(self, budget_id: int) -> Optional[BudgetModel]:
        return self.db.query(BudgetModel).filter(BudgetModel.budget_id == budget_id).first()

    def _settings_row(self, budget_id: Optional[int], account_id: Optional[int] = None) -> Optional[BudgetAlertSettingsModel]:
        q = self.db.query(BudgetAlertSettingsModel)
        if budget_id is None:
            q = q.filter(
                BudgetAlertSettingsModel.account_id == account_id,
                BudgetAlertSettingsModel.budget_id.is_(None),
            )
        else:
            q = q.filter(BudgetAlertSettingsModel.budget_id == budget_id)
        return q.order_by(BudgetAlertSettingsModel.id).first()

    def get_settings_for(self, budget_id: int) -> Optional[AlertSettings]:
        row = self._settings_row(budget_id)
        return settings_from_row(row) if row else None

    def get_global_settings(self, account_id: int) -> Optional[AlertSettings]:
        row = self._settings_row(None, account_id)
        return settings_from_row(row) if row else None

    def save_settings(self, account_id: int, settings: AlertSettings) -> AlertSettings:
        """Insert or replace the account's settings row for settings.budget_id (None = global)."""
        row = self._settings_row(settings.budget_id, account_id)
        if row is None:
            row = BudgetAlertSettingsModel(account_id=account_id, budget_id=settings.budget_id)
            self.db.add(row)
        apply_settings(row, settings)
        self.db.flush()
        return settings_from_row(row)

    def delete_settings_for(self, budget_id: int) -> int:
        return (
            self.db.query(BudgetAlertSettingsModel)
            .filter(BudgetAlertSettingsModel.budget_id == budget_id)
            .delete()
        )


class SqlTransactionStore:
    def __init__(self, db: Session):
        self.db = db

    def transactions_for_budget(self, budget: Budget) -> List[Transaction]:
        q = self.db.query(TransactionFeed).filter(
            TransactionFeed.account_id == budget.account_id,
            TransactionFeed.category_id == budget.category_id,
            TransactionFeed.operation_type.in_(list(_OPERATION_DIRECTIONS)),
            TransactionFeed.occurred_at >= budget.from_date,
            TransactionFeed.occurred_at <= budget.end_date,
        )
        if budget.wallet_id != ALL_WALLETS:
            q = q.filter(TransactionFeed.wallet_id == budget.wallet_id)

        return [
            Transaction(
                transaction_id=row.transaction_id,
                amount=Decimal(row.amount),
                transaction_type=_OPERATION_DIRECTIONS[row.operation_type],
                category_id=row.category_id,
                wallet_id=row.wallet_id,
                occurred_at=row.occurred_at,
                exclude_from_report=row.exclude_from_report,
            )
            for row in q.order_by(TransactionFeed.occurred_at).all()
        ]


class SqlAlertStore:
    def __init__(self, db: Session):
        self.db = db

    # --- engine side -------------------------------------------------------

    def existing_alerts(self, budget_id: int, since: Optional[datetime] = None) -> List[BudgetAlert]:
        """All alerts of a budget (dismissed included), newest first."""
        q = self.db.query(BudgetAlertModel).filter(BudgetAlertModel.budget_id == budget_id)
        if since is not None:
            q = q.filter(BudgetAlertModel.created_at >= since)
        return [alert_from_row(r) for r in q.order_by(BudgetAlertModel.created_at.desc()).all()]

    def save(self, alert: BudgetAlert) -> None:
        """Insert and commit one alert; a failure leaves other alerts untouched."""
        row = BudgetAlertModel(
            alert_id=alert.alert_id,
            budget_id=alert.budget_id,
            alert_type=AlertType(alert.alert_type).value,
            severity=AlertSeverity(alert.severity).value,
            message=alert.message,
            created_at=alert.timestamp,
            is_read=alert.is_read,
            is_dismissed=alert.is_dismissed,
            is_notified=alert.is_notified,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise AlertPersistenceError(f"Failed to save alert {alert.alert_id}: {exc}") from exc

    # --- inbox side --------------------------------------------------------

    def _account_alerts(self, account_id: int):
        return (
            self.db.query(BudgetAlertModel)
            .join(BudgetModel, BudgetModel.budget_id == BudgetAlertModel.budget_id)
            .filter(BudgetModel.account_id == account_id)
        )

    def get(self, alert_id: str) -> Optional[BudgetAlertModel]:
        return self.db.query(BudgetAlertModel).filter(BudgetAlertModel.alert_id == alert_id).first()

    def active_alerts(self, account_id: int, budget_id: Optional[int] = None) -> List[BudgetAlert]:
        q = self._account_alerts(account_id).filter(BudgetAlertModel.is_dismissed == False)  # noqa: E712
        if budget_id is not None:
            q = q.filter(BudgetAlertModel.budget_id == budget_id)
        return [alert_from_row(r) for r in q.order_by(BudgetAlertModel.created_at.desc()).all()]

    def unread_count(self, account_id: int) -> int:
        return (
            self._account_alerts(account_id)
            .filter(
                BudgetAlertModel.is_dismissed == False,  # noqa: E712
                BudgetAlertModel.is_read == False,  # noqa: E712
            )
            .with_entities(func.count(BudgetAlertModel.alert_id))
            .scalar()
            or 0
        )

    def dismiss_all_for_budget(self, budget_id: int) -> int:
        return (
            self.db.query(BudgetAlertModel)
            .filter(
                BudgetAlertModel.budget_id == budget_id,
                BudgetAlertModel.is_dismissed == False,  # noqa: E712
            )
            .update({BudgetAlertModel.is_dismissed: True}, synchronize_session=False)
        )

    def delete_old_dismissed(self, before: datetime) -> int:
        return (
            self.db.query(BudgetAlertModel)
            .filter(
                BudgetAlertModel.is_dismissed == True,  # noqa: E712
                BudgetAlertModel.created_at < before,
            )
            .delete(synchronize_session=False)
        )
