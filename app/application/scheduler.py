"""
Background scheduler: runs the budget alert pass inside the FastAPI process.

Jobs:
  - Budget alert evaluation (daily, BUDGET_ALERTS_CRON_HOUR:MINUTE UTC),
    followed by a purge of old dismissed alerts
"""
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def run_budget_alert_pass(db, now: datetime | None = None):
    """
    One full pass with the SQL stores and the push/Telegram notifier.

    Returns the EvaluationReport.
    """
    from app.application.alert_notifier import BudgetAlertNotifier
    from app.application.budget_alert_engine import EvaluationPass
    from app.application.budget_alerts import PurgeDismissedAlertsUseCase
    from app.infrastructure.budget_alerts.repository import (
        SqlAlertStore, SqlBudgetStore, SqlTransactionStore,
    )

    settings = get_settings()
    now = now or datetime.now(tz=ZoneInfo(settings.TIMEZONE))

    engine = EvaluationPass(
        budgets=SqlBudgetStore(db),
        transactions=SqlTransactionStore(db),
        alerts=SqlAlertStore(db),
        sink=BudgetAlertNotifier(db, settings),
        lookback=timedelta(days=settings.BUDGET_ALERT_LOOKBACK_DAYS),
    )
    report = engine.run(now)

    purged = PurgeDismissedAlertsUseCase(db).execute(now, settings.BUDGET_ALERT_RETENTION_DAYS)
    if purged:
        logger.info("Purged %d dismissed budget alerts", purged)
    return report


def _run_budget_alerts():
    from app.application.budget_alert_engine import STATUS_ERROR
    from app.infrastructure.db.session import session_scope

    try:
        with session_scope() as db:
            report = run_budget_alert_pass(db)
        if not report.success:
            logger.error("Budget alert pass finished with errors: %s",
                         [o.budget_id for o in report.by_status(STATUS_ERROR)])
    except Exception:
        logger.exception("Budget alert job failed")


def start_scheduler():
    """Start the background scheduler with the budget alert job."""
    settings = get_settings()
    if not settings.BUDGET_ALERTS_ENABLED:
        logger.info("Budget alerts disabled, scheduler not started")
        return

    scheduler.add_job(
        _run_budget_alerts,
        CronTrigger(
            hour=settings.BUDGET_ALERTS_CRON_HOUR,
            minute=settings.BUDGET_ALERTS_CRON_MINUTE,
            timezone="UTC",
        ),
        id="budget_alerts",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: budget_alerts (%02d:%02d UTC)",
        settings.BUDGET_ALERTS_CRON_HOUR,
        settings.BUDGET_ALERTS_CRON_MINUTE,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
