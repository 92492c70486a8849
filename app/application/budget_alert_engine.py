"""
Budget Alert Engine: one evaluation pass over all active budgets.

Architecture:
- Collaborators (Protocols): BudgetStore, TransactionStore, AlertStore, NotificationSink
- Per budget: SettingsResolver → ConsumptionCalculator → AlertRuleEvaluator
  → AlertDeduplicator → AlertDispatchPolicy → AlertStore.save + NotificationSink
- EvaluationPass.run(now): never stops on a single budget; returns EvaluationReport

Re-running a pass on the same day is safe: deduplication drops every
candidate that already has an active alert for today.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

from app.application.alert_dedup import AlertDeduplicator
from app.application.alert_dispatch import AlertDispatchPolicy, notification_title
from app.application.alert_settings import SettingsResolver
from app.application.budget_alert_rules import AlertRuleEvaluator
from app.application.budget_consumption import BudgetDataError, ConsumptionCalculator, validate_budget
from app.domain.budget_alert import (
    AlertEvent,
    AlertPersistenceError,
    AlertSettings,
    AlertSeverity,
    AlertType,
    Budget,
    BudgetAlert,
    Transaction,
)

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"    # evaluated, some alerts failed to save
STATUS_SKIPPED = "skipped"    # all alert channels disabled in settings
STATUS_FAILED = "failed"      # data error, soft
STATUS_ERROR = "error"        # unexpected error

DEFAULT_LOOKBACK = timedelta(days=7)
# ONCE_PER_WEEK needs every push of the current ISO week in the history
MIN_LOOKBACK = timedelta(days=7)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class BudgetStore(Protocol):
    def list_active_budgets(self, now: datetime) -> list[Budget]: ...

    def get_settings_for(self, budget_id: int) -> AlertSettings | None: ...

    def get_global_settings(self, account_id: int) -> AlertSettings | None: ...


class TransactionStore(Protocol):
    def transactions_for_budget(self, budget: Budget) -> list[Transaction]: ...


class AlertStore(Protocol):
    def existing_alerts(self, budget_id: int, since: datetime | None = None) -> list[BudgetAlert]: ...

    def save(self, alert: BudgetAlert) -> None: ...


class NotificationSink(Protocol):
    def notify(
        self,
        budget_id: int,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
    ) -> None: ...


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class BudgetOutcome:
    budget_id: int
    status: str = STATUS_OK
    candidates: list[AlertType] = field(default_factory=list)
    alerts_created: list[str] = field(default_factory=list)
    notifications_sent: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class EvaluationReport:
    started_at: datetime
    outcomes: list[BudgetOutcome] = field(default_factory=list)
    finished_at: datetime | None = None

    @property
    def success(self) -> bool:
        """False only when an unexpected (non-data) error happened."""
        return all(o.status != STATUS_ERROR for o in self.outcomes)

    @property
    def alerts_created(self) -> int:
        return sum(len(o.alerts_created) for o in self.outcomes)

    @property
    def notifications_sent(self) -> int:
        return sum(o.notifications_sent for o in self.outcomes)

    def by_status(self, status: str) -> list[BudgetOutcome]:
        return [o for o in self.outcomes if o.status == status]

    def outcome_for(self, budget_id: int) -> BudgetOutcome | None:
        for o in self.outcomes:
            if o.budget_id == budget_id:
                return o
        return None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class EvaluationPass:
    def __init__(
        self,
        budgets: BudgetStore,
        transactions: TransactionStore,
        alerts: AlertStore,
        sink: NotificationSink | None = None,
        lookback: timedelta = DEFAULT_LOOKBACK,
    ):
        self.budgets = budgets
        self.transactions = transactions
        self.alerts = alerts
        self.sink = sink
        if lookback < MIN_LOOKBACK:
            logger.warning("Budget alert lookback %s is shorter than a week, using %s", lookback, MIN_LOOKBACK)
        self.lookback = max(lookback, MIN_LOOKBACK)
        self.resolver = SettingsResolver(budgets)
        self.calculator = ConsumptionCalculator()
        self.evaluator = AlertRuleEvaluator()
        self.deduplicator = AlertDeduplicator()
        self.policy = AlertDispatchPolicy()

    def run(self, now: datetime | None = None) -> EvaluationReport:
        """Evaluate every active budget at `now`."""
        now = now or datetime.now()
        report = EvaluationReport(started_at=now)

        # An unreachable budget store is fatal for the whole pass
        budgets = self.budgets.list_active_budgets(now)

        for budget in budgets:
            outcome = BudgetOutcome(budget_id=budget.budget_id)
            try:
                self._evaluate_budget(budget, now, outcome)
            except BudgetDataError as exc:
                outcome.status = STATUS_FAILED
                outcome.errors.append(str(exc))
                logger.warning("Budget alert evaluation skipped: %s", exc)
            except Exception as exc:
                outcome.status = STATUS_ERROR
                outcome.errors.append(repr(exc))
                logger.exception("Budget alert evaluation failed for budget_id=%s", budget.budget_id)
            report.outcomes.append(outcome)

        report.finished_at = datetime.now(tz=now.tzinfo)
        logger.info(
            "Budget alert pass: budgets=%d alerts=%d notifications=%d failed=%d errors=%d",
            len(report.outcomes),
            report.alerts_created,
            report.notifications_sent,
            len(report.by_status(STATUS_FAILED)),
            len(report.by_status(STATUS_ERROR)),
        )
        return report

    def _evaluate_budget(self, budget: Budget, now: datetime, outcome: BudgetOutcome) -> None:
        validate_budget(budget)

        settings = self.resolver.resolve(budget.budget_id, budget.account_id)
        if not settings.enable_in_app_alerts and not settings.enable_push_notifications:
            outcome.status = STATUS_SKIPPED
            return

        transactions = self.transactions.transactions_for_budget(budget)
        snapshot = self.calculator.compute(budget, transactions, now)
        candidates = self.evaluator.evaluate(budget, snapshot, settings, now)
        outcome.candidates = [c.alert_type for c in candidates]
        if not candidates:
            return

        history = list(self.alerts.existing_alerts(budget.budget_id, since=now - self.lookback))
        survivors = self.deduplicator.filter(candidates, budget.budget_id, history, now)

        for event in survivors:
            notify = self.policy.should_notify(settings, now, history)
            alert = _new_alert(event, now, notify)
            try:
                self.alerts.save(alert)
            except AlertPersistenceError as exc:
                outcome.status = STATUS_PARTIAL
                outcome.errors.append(str(exc))
                logger.error("Budget alert not saved (budget_id=%s, type=%s): %s",
                             budget.budget_id, event.alert_type.value, exc)
                continue

            history.append(alert)
            outcome.alerts_created.append(alert.alert_id)
            if notify and self._send(budget, alert):
                outcome.notifications_sent += 1

    def _send(self, budget: Budget, alert: BudgetAlert) -> bool:
        """Best effort: the alert is already stored, delivery errors are only logged."""
        if self.sink is None:
            return False
        title = notification_title(alert.alert_type, budget.category_title or f"#{budget.category_id}")
        try:
            self.sink.notify(budget.budget_id, alert.alert_type, alert.severity, title, alert.message)
            return True
        except Exception:
            logger.exception("Budget alert notification failed for budget_id=%s alert_id=%s",
                             budget.budget_id, alert.alert_id)
            return False


def _new_alert(event: AlertEvent, now: datetime, notify: bool) -> BudgetAlert:
    return BudgetAlert(
        alert_id=str(uuid.uuid4()),
        budget_id=event.budget_id,
        alert_type=event.alert_type,
        severity=event.severity,
        message=event.message,
        timestamp=now,
        is_notified=notify,
    )
