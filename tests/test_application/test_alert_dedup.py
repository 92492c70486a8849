"""
Tests for alert deduplication (AlertDeduplicator, window_key).
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.application.alert_dedup import AlertDeduplicator, active_alert_keys, window_key
from app.domain.budget_alert import AlertEvent, AlertSeverity, AlertType, BudgetAlert


NOW = datetime(2026, 3, 10, 9, 0)
dedup = AlertDeduplicator()


def _event(alert_type=AlertType.WARNING_THRESHOLD_90, budget_id=1) -> AlertEvent:
    return AlertEvent(
        budget_id=budget_id,
        alert_type=alert_type,
        severity=AlertSeverity.MEDIUM,
        message="m",
        trigger_value=90.0,
    )


def _alert(alert_type=AlertType.WARNING_THRESHOLD_90, *, budget_id=1, at=NOW, dismissed=False) -> BudgetAlert:
    return BudgetAlert(
        alert_id=f"{alert_type.value}-{at.isoformat()}",
        budget_id=budget_id,
        alert_type=alert_type,
        severity=AlertSeverity.MEDIUM,
        message="m",
        timestamp=at,
        is_dismissed=dismissed,
    )


def test_no_history_keeps_everything():
    candidates = [_event(), _event(AlertType.BUDGET_EXCEEDED)]
    assert dedup.filter(candidates, 1, [], NOW) == candidates


def test_same_type_same_day_dropped():
    existing = [_alert(at=NOW - timedelta(hours=2))]
    assert dedup.filter([_event()], 1, existing, NOW) == []


def test_other_type_kept():
    existing = [_alert(AlertType.WARNING_THRESHOLD_80)]
    assert dedup.filter([_event()], 1, existing, NOW) == [_event()]


def test_previous_day_does_not_block():
    existing = [_alert(at=NOW - timedelta(days=1))]
    assert dedup.filter([_event()], 1, existing, NOW) == [_event()]


def test_dismissed_alert_does_not_block():
    existing = [_alert(dismissed=True)]
    assert dedup.filter([_event()], 1, existing, NOW) == [_event()]


def test_other_budget_does_not_block():
    existing = [_alert(budget_id=2)]
    assert dedup.filter([_event()], 1, existing, NOW) == [_event()]


def test_batch_duplicates_collapse():
    first = _event()
    assert dedup.filter([first, _event()], 1, [], NOW) == [first]


def test_active_alert_keys():
    existing = [_alert(), _alert(AlertType.EXPIRED, dismissed=True)]
    assert active_alert_keys(existing, 1, NOW) == {(AlertType.WARNING_THRESHOLD_90, date(2026, 3, 10))}


class TestWindowKey:
    def test_naive(self):
        assert window_key(datetime(2026, 3, 10, 23, 59)) == date(2026, 3, 10)

    def test_utc_moment_lands_on_local_day(self):
        # 22:30 UTC is already the next day in Moscow
        moment = datetime(2026, 3, 10, 22, 30, tzinfo=timezone.utc)
        ref = datetime(2026, 3, 11, 9, 0, tzinfo=ZoneInfo("Europe/Moscow"))
        assert window_key(moment, ref) == date(2026, 3, 11)

    def test_naive_moment_with_aware_reference(self):
        ref = datetime(2026, 3, 11, 9, 0, tzinfo=timezone.utc)
        assert window_key(datetime(2026, 3, 10, 23, 0), ref) == date(2026, 3, 10)
