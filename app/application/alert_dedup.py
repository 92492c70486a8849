"""
Alert deduplication: at most one active alert per (budget, alert type, day).

Works on an explicitly passed list of existing alerts instead of querying
the store per rule, so a pass is deterministic for a given history.
"""
from datetime import date, datetime
from typing import Iterable

from app.domain.budget_alert import AlertEvent, AlertType, BudgetAlert


def window_key(moment: datetime, reference: datetime | None = None) -> date:
    """
    Calendar day a moment belongs to.

    When both are aware, `moment` is first converted to the timezone of
    `reference` so a UTC timestamp lands on the caller's local day.
    """
    if (
        reference is not None
        and moment.tzinfo is not None
        and reference.tzinfo is not None
    ):
        moment = moment.astimezone(reference.tzinfo)
    return moment.date()


def active_alert_keys(
    existing: Iterable[BudgetAlert],
    budget_id: int,
    now: datetime,
) -> set[tuple[AlertType, date]]:
    keys = set()
    for alert in existing:
        if alert.budget_id != budget_id or alert.is_dismissed:
            continue
        keys.add((AlertType(alert.alert_type), window_key(alert.timestamp, now)))
    return keys


class AlertDeduplicator:

    def filter(
        self,
        candidates: Iterable[AlertEvent],
        budget_id: int,
        existing: Iterable[BudgetAlert],
        now: datetime,
    ) -> list[AlertEvent]:
        """Drop candidates already raised today and still active."""
        seen = active_alert_keys(existing, budget_id, now)
        today = window_key(now)
        survivors = []
        for candidate in candidates:
            key = (candidate.alert_type, today)
            if key in seen:
                continue
            # Same type twice in one batch collapses to the first
            seen.add(key)
            survivors.append(candidate)
        return survivors
