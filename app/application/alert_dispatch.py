"""
Alert dispatch policy: decides whether a surviving alert is also pushed.

The alert itself is always persisted; this only gates the notification:
  - push disabled in settings        → no
  - inside quiet hours               → no
  - frequency cap for the window hit → no

Quiet hours are hour-of-day, half-open [start, end), and wrap past midnight
when start > end (22 to 7 covers 22:00-06:59).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from app.application.alert_dedup import window_key
from app.domain.budget_alert import AlertFrequency, AlertSettings, AlertType, BudgetAlert


# ---------------------------------------------------------------------------
# Channel table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AlertChannel:
    code: str
    title: str


CHANNEL_WARNING = AlertChannel("budget_warning", "Budget warning: {category}")
CHANNEL_EXCEEDED = AlertChannel("budget_exceeded", "Budget exceeded: {category}")
CHANNEL_EXPIRING = AlertChannel("budget_expiring", "Budget period ending: {category}")
CHANNEL_DAILY_RATE = AlertChannel("budget_daily_rate", "Spending pace: {category}")

CHANNEL_BY_TYPE: dict[AlertType, AlertChannel] = {
    AlertType.WARNING_THRESHOLD_80: CHANNEL_WARNING,
    AlertType.WARNING_THRESHOLD_90: CHANNEL_WARNING,
    AlertType.WARNING_THRESHOLD_95: CHANNEL_WARNING,
    AlertType.BUDGET_EXCEEDED: CHANNEL_EXCEEDED,
    AlertType.EXPIRING_SOON: CHANNEL_EXPIRING,
    AlertType.EXPIRED: CHANNEL_EXPIRING,
    AlertType.DAILY_RATE_HIGH: CHANNEL_DAILY_RATE,
    AlertType.DAILY_RATE_CRITICAL: CHANNEL_DAILY_RATE,
}

# Notifications allowed per frequency window; None = unlimited
FREQUENCY_CAPS: dict[AlertFrequency, int | None] = {
    AlertFrequency.ONCE_PER_DAY: 1,
    AlertFrequency.ONCE_PER_WEEK: 1,
    AlertFrequency.EVERY_TIME: None,
    AlertFrequency.NEVER: 0,
}


def notification_title(alert_type: AlertType, category: str) -> str:
    return CHANNEL_BY_TYPE[alert_type].title.format(category=category)


def in_quiet_hours(hour: int, settings: AlertSettings) -> bool:
    if not settings.has_quiet_hours:
        return False
    start, end = settings.quiet_hours_start, settings.quiet_hours_end
    if start == end:
        return False
    if start < end:
        return start <= hour < end
    # Overnight range (e.g. 22 to 7)
    return hour >= start or hour < end


def frequency_window(moment: datetime, frequency: AlertFrequency, reference: datetime | None = None):
    """Key of the throttle window a moment falls into."""
    day = window_key(moment, reference)
    if frequency == AlertFrequency.ONCE_PER_WEEK:
        iso = day.isocalendar()
        return iso[0], iso[1]
    return day


def notified_in_window(
    history: Iterable[BudgetAlert],
    frequency: AlertFrequency,
    now: datetime,
) -> int:
    current = frequency_window(now, frequency)
    return sum(
        1
        for alert in history
        if alert.is_notified and frequency_window(alert.timestamp, frequency, now) == current
    )


class AlertDispatchPolicy:

    def should_notify(
        self,
        settings: AlertSettings,
        now: datetime,
        history: Iterable[BudgetAlert] = (),
    ) -> bool:
        """
        history: the budget's alerts known so far (stored ones plus those
        created earlier in the same pass); only is_notified ones count.
        """
        if not settings.enable_push_notifications:
            return False
        if in_quiet_hours(now.hour, settings):
            return False
        cap = FREQUENCY_CAPS[AlertFrequency(settings.alert_frequency)]
        if cap is None:
            return True
        return notified_in_window(history, settings.alert_frequency, now) < cap
