"""
Tests for budget consumption (ConsumptionCalculator, validate_budget).

Covers:
  - percent consumed, remaining, zero-amount budget
  - elapsed fraction before / inside / after the window
  - daily rate, expected rate, projection
  - INFLOW and excluded transactions do not count as spending
  - malformed budgets raise BudgetDataError
"""
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.application.budget_consumption import (
    BudgetDataError,
    ConsumptionCalculator,
    align_to,
    spent_amount,
    validate_budget,
)
from app.domain.budget_alert import ALL_WALLETS, Budget, Transaction, TransactionType


DAY0 = datetime(2026, 3, 1)


def _budget(amount="1000000", days=30, **kw) -> Budget:
    fields = dict(
        budget_id=1,
        account_id=1,
        category_id=10,
        category_title="Food",
        wallet_id=ALL_WALLETS,
        amount=Decimal(amount),
        from_date=DAY0,
        end_date=DAY0 + timedelta(days=days),
    )
    fields.update(kw)
    return Budget(**fields)


def _tx(amount, tx_type=TransactionType.OUTFLOW, excluded=False, tid=1) -> Transaction:
    return Transaction(
        transaction_id=tid,
        amount=Decimal(amount),
        transaction_type=tx_type,
        category_id=10,
        wallet_id=1,
        occurred_at=DAY0 + timedelta(days=1),
        exclude_from_report=excluded,
    )


calc = ConsumptionCalculator()


def test_mid_period_scenario():
    """1,000,000 limit, 900,000 spent at day 15 of 30."""
    snap = calc.compute(_budget(), [_tx("900000")], DAY0 + timedelta(days=15))

    assert snap.spent_amount == Decimal("900000")
    assert snap.remaining_amount == Decimal("100000")
    assert snap.percent_consumed == pytest.approx(0.9)
    assert snap.elapsed_fraction == pytest.approx(0.5)
    assert snap.elapsed_days == 15
    assert snap.total_period_days == pytest.approx(30.0)
    assert snap.daily_rate == pytest.approx(60000.0)
    assert snap.expected_daily_rate == pytest.approx(33333.333, rel=1e-4)
    assert snap.projected_total == pytest.approx(1800000.0)


def test_zero_amount_is_fully_consumed():
    snap = calc.compute(_budget(amount="0"), [], DAY0 + timedelta(days=2))
    assert snap.percent_consumed == 1.0
    assert snap.expected_daily_rate == 0.0


def test_over_limit_percent_above_one():
    snap = calc.compute(_budget(amount="1000"), [_tx("1200")], DAY0 + timedelta(days=10))
    assert snap.percent_consumed == pytest.approx(1.2)
    assert snap.remaining_amount == Decimal("-200")


def test_before_window_starts():
    snap = calc.compute(_budget(), [], DAY0 - timedelta(days=3))
    assert snap.elapsed_fraction == 0.0
    assert snap.elapsed_days == 0
    assert snap.daily_rate == 0.0


def test_after_window_ends():
    snap = calc.compute(_budget(amount="300"), [_tx("300")], DAY0 + timedelta(days=45))
    assert snap.elapsed_fraction == 1.0
    # Days stop counting at end_date
    assert snap.elapsed_days == 30
    assert snap.daily_rate == pytest.approx(10.0)


def test_first_day_counts_as_one_day():
    snap = calc.compute(_budget(amount="3000"), [_tx("500")], DAY0 + timedelta(hours=5))
    assert snap.elapsed_days == 1
    assert snap.daily_rate == pytest.approx(500.0)


def test_zero_length_window():
    b = _budget(days=0)
    snap = calc.compute(b, [], DAY0)
    assert snap.elapsed_fraction == 1.0
    assert snap.total_period_days == 1.0


def test_only_unexcluded_outflows_count():
    txs = [
        _tx("100", tid=1),
        _tx("50", TransactionType.INFLOW, tid=2),
        _tx("70", excluded=True, tid=3),
        _tx("30", tid=4),
    ]
    assert spent_amount(txs) == Decimal("130")


def test_aware_now_with_naive_budget():
    aware_now = datetime(2026, 3, 16, tzinfo=timezone.utc)
    snap = calc.compute(_budget(), [_tx("900000")], aware_now)
    assert snap.elapsed_days == 15


class TestAlignTo:
    def test_drops_tz_for_naive_reference(self):
        moment = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
        assert align_to(moment, DAY0).tzinfo is None

    def test_adds_tz_for_aware_reference(self):
        ref = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert align_to(datetime(2026, 3, 2), ref).tzinfo is timezone.utc

    def test_same_kind_untouched(self):
        m = datetime(2026, 3, 2)
        assert align_to(m, DAY0) is m


class TestValidateBudget:
    def test_valid_budget_passes(self):
        validate_budget(_budget())

    def test_inverted_window(self):
        b = _budget(from_date=DAY0 + timedelta(days=5), end_date=DAY0)
        with pytest.raises(BudgetDataError, match="after end_date"):
            validate_budget(b)

    def test_missing_category(self):
        with pytest.raises(BudgetDataError, match="not found"):
            validate_budget(_budget(category_title=None))

    def test_negative_amount(self):
        with pytest.raises(BudgetDataError, match="negative amount"):
            validate_budget(_budget(amount="-1"))
