"""
Budget alert inbox and settings use cases.

Users read, dismiss and configure alerts here; the evaluation engine never
updates an alert after inserting it.
"""
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List

from sqlalchemy.orm import Session

from app.application.alert_settings import SettingsResolver
from app.domain.budget_alert import AlertFrequency, AlertSettings, BudgetAlert
from app.infrastructure.budget_alerts.repository import SqlAlertStore, SqlBudgetStore
from app.infrastructure.db.models import BudgetAlertModel


class BudgetAlertValidationError(ValueError):
    pass


class BudgetAlertNotFound(LookupError):
    pass


def validate_settings(settings: AlertSettings) -> None:
    if not settings.warning_thresholds and settings.enable_warning_alerts:
        raise BudgetAlertValidationError("At least one warning threshold is required")
    for t in settings.warning_thresholds:
        if not 1 <= t <= 100:
            raise BudgetAlertValidationError(f"Warning threshold must be within 1..100, got {t}")
    if len(set(settings.warning_thresholds)) != len(settings.warning_thresholds):
        raise BudgetAlertValidationError("Warning thresholds must be unique")
    if settings.expiring_days_before < 0:
        raise BudgetAlertValidationError("expiring_days_before cannot be negative")
    if settings.daily_rate_threshold <= 0:
        raise BudgetAlertValidationError("daily_rate_threshold must be positive")
    if (settings.quiet_hours_start is None) != (settings.quiet_hours_end is None):
        raise BudgetAlertValidationError("Quiet hours need both start and end")
    for hour in (settings.quiet_hours_start, settings.quiet_hours_end):
        if hour is not None and not 0 <= hour <= 23:
            raise BudgetAlertValidationError(f"Quiet hour must be within 0..23, got {hour}")
    try:
        AlertFrequency(settings.alert_frequency)
    except ValueError:
        raise BudgetAlertValidationError(f"Unknown alert frequency: {settings.alert_frequency}") from None


def get_active_alerts(db: Session, account_id: int, budget_id: int | None = None) -> List[BudgetAlert]:
    return SqlAlertStore(db).active_alerts(account_id, budget_id)


def get_unread_count(db: Session, account_id: int) -> int:
    return SqlAlertStore(db).unread_count(account_id)


def get_effective_settings(db: Session, account_id: int, budget_id: int | None = None) -> AlertSettings:
    """Settings the engine would use for the budget (budget_id=None: the account's global row or defaults)."""
    store = SqlBudgetStore(db)
    if budget_id is None:
        return store.get_global_settings(account_id) or AlertSettings.default()
    return SettingsResolver(store).resolve(budget_id, account_id)


class _AlertUseCase:
    def __init__(self, db: Session):
        self.db = db
        self.alerts = SqlAlertStore(db)
        self.budgets = SqlBudgetStore(db)

    def _owned_alert(self, account_id: int, alert_id: str) -> BudgetAlertModel:
        row = self.alerts.get(alert_id)
        if row is None:
            raise BudgetAlertNotFound(alert_id)
        budget = self.budgets.get_budget(row.budget_id)
        if budget is None or budget.account_id != account_id:
            raise BudgetAlertNotFound(alert_id)
        return row

    def _owned_budget(self, account_id: int, budget_id: int) -> None:
        budget = self.budgets.get_budget(budget_id)
        if budget is None or budget.account_id != account_id:
            raise BudgetAlertNotFound(f"budget {budget_id}")


class MarkAlertReadUseCase(_AlertUseCase):
    def execute(self, account_id: int, alert_id: str) -> None:
        row = self._owned_alert(account_id, alert_id)
        row.is_read = True
        self.db.commit()


class DismissAlertUseCase(_AlertUseCase):
    def execute(self, account_id: int, alert_id: str) -> None:
        row = self._owned_alert(account_id, alert_id)
        row.is_dismissed = True
        self.db.commit()


class DismissBudgetAlertsUseCase(_AlertUseCase):
    def execute(self, account_id: int, budget_id: int) -> int:
        """Returns number of alerts dismissed."""
        self._owned_budget(account_id, budget_id)
        count = self.alerts.dismiss_all_for_budget(budget_id)
        self.db.commit()
        return count


class PurgeDismissedAlertsUseCase(_AlertUseCase):
    """Delete dismissed alerts older than `retention_days`."""

    def execute(self, now: datetime, retention_days: int = 30) -> int:
        count = self.alerts.delete_old_dismissed(now - timedelta(days=retention_days))
        self.db.commit()
        return count


class SaveAlertSettingsUseCase(_AlertUseCase):
    """Save the account's global settings (budget_id=None) or a per-budget override."""

    def execute(self, account_id: int, settings: AlertSettings, budget_id: int | None = None) -> AlertSettings:
        if budget_id is not None:
            self._owned_budget(account_id, budget_id)
        settings = replace(settings, budget_id=budget_id)
        validate_settings(settings)
        saved = self.budgets.save_settings(account_id, settings)
        self.db.commit()
        return saved


class DeleteBudgetAlertSettingsUseCase(_AlertUseCase):
    """Drop a per-budget override so the budget falls back to global settings."""

    def execute(self, account_id: int, budget_id: int) -> bool:
        self._owned_budget(account_id, budget_id)
        deleted = self.budgets.delete_settings_for(budget_id)
        self.db.commit()
        return deleted > 0
