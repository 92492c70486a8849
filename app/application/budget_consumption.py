"""
Budget consumption: how much of a budget is spent and how fast.

ConsumptionCalculator.compute() turns a budget plus its (already filtered)
transactions into a ConsumptionSnapshot at a given moment.
"""
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from app.domain.budget_alert import Budget, ConsumptionSnapshot, Transaction, TransactionType

_DAY_SECONDS = timedelta(days=1).total_seconds()


class BudgetDataError(ValueError):
    """Budget row cannot be evaluated (bad window, missing category, negative limit)."""
    pass


def validate_budget(budget: Budget) -> None:
    """Raise BudgetDataError if the budget is malformed."""
    if budget.from_date > budget.end_date:
        raise BudgetDataError(
            f"budget_id={budget.budget_id}: from_date {budget.from_date} is after end_date {budget.end_date}"
        )
    if budget.category_title is None:
        raise BudgetDataError(
            f"budget_id={budget.budget_id}: category_id={budget.category_id} not found"
        )
    if budget.amount < 0:
        raise BudgetDataError(f"budget_id={budget.budget_id}: negative amount {budget.amount}")


def align_to(moment: datetime, reference: datetime) -> datetime:
    """
    Make `moment` comparable with `reference`.

    SQLite hands back naive timestamps while the scheduler passes an aware
    `now`; both are wall-clock time in the configured timezone.
    """
    if reference.tzinfo is None and moment.tzinfo is not None:
        return moment.replace(tzinfo=None)
    if reference.tzinfo is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment


def spent_amount(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of OUTFLOW amounts that are not excluded from reports."""
    total = Decimal("0")
    for tx in transactions:
        if tx.transaction_type != TransactionType.OUTFLOW or tx.exclude_from_report:
            continue
        total += Decimal(tx.amount)
    return total


class ConsumptionCalculator:

    def compute(
        self,
        budget: Budget,
        transactions: Iterable[Transaction],
        now: datetime,
    ) -> ConsumptionSnapshot:
        now = align_to(now, budget.from_date)
        spent = spent_amount(transactions)
        amount = Decimal(budget.amount)

        # Zero limit counts as fully consumed
        if amount > 0:
            percent = float(spent / amount)
        else:
            percent = 1.0

        period_seconds = (budget.end_date - budget.from_date).total_seconds()
        since_start = (now - budget.from_date).total_seconds()

        if since_start < 0:
            elapsed_fraction = 0.0
        elif period_seconds <= 0 or now > budget.end_date:
            elapsed_fraction = 1.0
        else:
            elapsed_fraction = min(1.0, since_start / period_seconds)

        total_period_days = max(1.0, period_seconds / _DAY_SECONDS)

        if since_start < 0:
            elapsed_days = 0
            daily_rate = 0.0
        else:
            # Spending after end_date is outside the window, so stop counting days there
            counted = min(since_start, max(period_seconds, 0.0))
            elapsed_days = max(1, math.floor(counted / _DAY_SECONDS))
            daily_rate = float(spent) / elapsed_days

        expected_daily_rate = float(amount) / total_period_days

        return ConsumptionSnapshot(
            spent_amount=spent,
            remaining_amount=amount - spent,
            percent_consumed=percent,
            elapsed_fraction=elapsed_fraction,
            elapsed_days=elapsed_days,
            total_period_days=total_period_days,
            daily_rate=daily_rate,
            expected_daily_rate=expected_daily_rate,
            projected_total=daily_rate * total_period_days,
        )
