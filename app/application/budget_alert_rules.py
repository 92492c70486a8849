"""
Budget alert rules.

AlertRuleEvaluator.evaluate() applies the rules below, in this order, to a
consumption snapshot and returns candidate AlertEvents:

1. warning threshold:  highest crossed threshold only
2. exceeded:           spent >= limit
3. expiring soon:      end_date within expiring_days_before days
4. expired:            window over, budget not repeating
5. daily rate:         HIGH or CRITICAL, never both

Rules are independent: one budget may raise several alert types per pass.
"""
from datetime import datetime, timedelta

from app.application.budget_consumption import align_to
from app.domain.budget_alert import (
    AlertEvent,
    AlertSettings,
    AlertType,
    Budget,
    ConsumptionSnapshot,
    SEVERITY_BY_TYPE,
    WARNING_BUCKETS,
)

# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

_TEMPLATES: dict[AlertType, str] = {
    AlertType.WARNING_THRESHOLD_80: "You have used {value:.0f}% of your «{category}» budget.",
    AlertType.WARNING_THRESHOLD_90: "You have used {value:.0f}% of your «{category}» budget.",
    AlertType.WARNING_THRESHOLD_95: "You have used {value:.0f}% of your «{category}» budget.",
    AlertType.BUDGET_EXCEEDED: "Your «{category}» budget is exceeded: {value:.0f}% spent.",
    AlertType.EXPIRING_SOON: "Your «{category}» budget ends in {value:.0f} day(s).",
    AlertType.EXPIRED: "Your «{category}» budget period has ended.",
    AlertType.DAILY_RATE_HIGH: "Spending on «{category}» runs at {value:.1f}× the planned daily pace.",
    AlertType.DAILY_RATE_CRITICAL: "Spending on «{category}» runs at {value:.1f}× the planned daily pace; the limit will be overrun.",
}


def render_message(alert_type: AlertType, category: str, value: float) -> str:
    return _TEMPLATES[alert_type].format(category=category, value=value)


def warning_bucket(threshold: float) -> AlertType:
    """
    Map a crossed threshold to the largest standard bucket <= it.

    Custom thresholds below the lowest bucket fall back to that bucket.
    """
    eligible = [b for b in WARNING_BUCKETS if b <= threshold]
    if not eligible:
        return WARNING_BUCKETS[min(WARNING_BUCKETS)]
    return WARNING_BUCKETS[max(eligible)]


def _event(budget: Budget, alert_type: AlertType, value: float) -> AlertEvent:
    return AlertEvent(
        budget_id=budget.budget_id,
        alert_type=alert_type,
        severity=SEVERITY_BY_TYPE[alert_type],
        message=render_message(alert_type, budget.category_title or f"#{budget.category_id}", value),
        trigger_value=value,
    )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _warning_rule(budget: Budget, snapshot: ConsumptionSnapshot, settings: AlertSettings) -> AlertEvent | None:
    # round() keeps 0.29 * 100 from landing at 28.999…
    percent = round(snapshot.percent_consumed * 100, 6)
    crossed = [t for t in settings.warning_thresholds if percent >= t]
    if not crossed:
        return None
    return _event(budget, warning_bucket(max(crossed)), percent)


def _exceeded_rule(budget: Budget, snapshot: ConsumptionSnapshot) -> AlertEvent | None:
    if snapshot.percent_consumed < 1.0:
        return None
    return _event(budget, AlertType.BUDGET_EXCEEDED, round(snapshot.percent_consumed * 100, 6))


def _expiring_rule(budget: Budget, settings: AlertSettings, now: datetime) -> AlertEvent | None:
    left = budget.end_date - now
    if left < timedelta(0) or left > timedelta(days=settings.expiring_days_before):
        return None
    return _event(budget, AlertType.EXPIRING_SOON, float(left.days))


def _expired_rule(budget: Budget, now: datetime) -> AlertEvent | None:
    # Repeating budgets roll over to a new window outside the engine
    if now <= budget.end_date or budget.is_repeating:
        return None
    return _event(budget, AlertType.EXPIRED, float((now - budget.end_date).days))


def _daily_rate_rule(budget: Budget, snapshot: ConsumptionSnapshot, settings: AlertSettings) -> AlertEvent | None:
    expected = snapshot.expected_daily_rate
    if expected <= 0 or snapshot.daily_rate <= 0:
        return None
    multiple = snapshot.daily_rate / expected
    high = settings.daily_rate_threshold
    if multiple >= high * 2:
        return _event(budget, AlertType.DAILY_RATE_CRITICAL, multiple)
    if multiple >= high:
        return _event(budget, AlertType.DAILY_RATE_HIGH, multiple)
    return None


class AlertRuleEvaluator:

    def evaluate(
        self,
        budget: Budget,
        snapshot: ConsumptionSnapshot,
        settings: AlertSettings,
        now: datetime,
    ) -> list[AlertEvent]:
        now = align_to(now, budget.end_date)
        candidates: list[AlertEvent | None] = []

        if settings.enable_warning_alerts:
            candidates.append(_warning_rule(budget, snapshot, settings))
        if settings.enable_exceeded_alerts:
            candidates.append(_exceeded_rule(budget, snapshot))
        if settings.enable_expiring_alerts:
            candidates.append(_expiring_rule(budget, settings, now))
            candidates.append(_expired_rule(budget, now))
        if settings.enable_daily_rate_alerts:
            candidates.append(_daily_rate_rule(budget, snapshot, settings))

        return [c for c in candidates if c is not None]
