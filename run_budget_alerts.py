"""
Run one budget alert pass by hand (diagnostics).

    python run_budget_alerts.py

Uses DATABASE_URL from .env; delivers push/Telegram like the scheduled job.
"""
import traceback

from app.application.budget_alert_engine import STATUS_OK
from app.application.scheduler import run_budget_alert_pass
from app.infrastructure.db.session import session_scope

try:
    with session_scope() as db:
        print("Running budget alert pass...")
        report = run_budget_alert_pass(db)

    print(f"✓ Budgets evaluated: {len(report.outcomes)}")
    print(f"✓ Alerts created: {report.alerts_created}")
    print(f"✓ Notifications sent: {report.notifications_sent}")
    for outcome in report.outcomes:
        if outcome.status != STATUS_OK:
            print(f"  - budget {outcome.budget_id}: {outcome.status} {outcome.errors}")

except Exception as e:
    print(f"✗ ERROR: {e}")
    traceback.print_exc()
