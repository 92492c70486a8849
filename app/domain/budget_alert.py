"""
Budget alert domain types.

Plain dataclasses and enums shared by the evaluation engine, the SQL stores
and the HTTP layer. Nothing here touches the database.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

# Budget.wallet_id sentinel: the budget covers every wallet of the account
ALL_WALLETS = -1

DEFAULT_WARNING_THRESHOLDS = (80, 90, 95)


class AlertType(str, Enum):
    WARNING_THRESHOLD_80 = "WARNING_THRESHOLD_80"
    WARNING_THRESHOLD_90 = "WARNING_THRESHOLD_90"
    WARNING_THRESHOLD_95 = "WARNING_THRESHOLD_95"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"
    DAILY_RATE_HIGH = "DAILY_RATE_HIGH"
    DAILY_RATE_CRITICAL = "DAILY_RATE_CRITICAL"


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AlertFrequency(str, Enum):
    """Push throttle granularity per budget."""
    ONCE_PER_DAY = "ONCE_PER_DAY"
    ONCE_PER_WEEK = "ONCE_PER_WEEK"
    EVERY_TIME = "EVERY_TIME"
    NEVER = "NEVER"


class TransactionType(str, Enum):
    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


# Standard warning buckets, ascending
WARNING_BUCKETS: dict[int, AlertType] = {
    80: AlertType.WARNING_THRESHOLD_80,
    90: AlertType.WARNING_THRESHOLD_90,
    95: AlertType.WARNING_THRESHOLD_95,
}

SEVERITY_BY_TYPE: dict[AlertType, AlertSeverity] = {
    AlertType.WARNING_THRESHOLD_80: AlertSeverity.MEDIUM,
    AlertType.WARNING_THRESHOLD_90: AlertSeverity.MEDIUM,
    AlertType.WARNING_THRESHOLD_95: AlertSeverity.MEDIUM,
    AlertType.BUDGET_EXCEEDED: AlertSeverity.HIGH,
    AlertType.EXPIRING_SOON: AlertSeverity.MEDIUM,
    AlertType.EXPIRED: AlertSeverity.LOW,
    AlertType.DAILY_RATE_HIGH: AlertSeverity.MEDIUM,
    AlertType.DAILY_RATE_CRITICAL: AlertSeverity.HIGH,
}


@dataclass(frozen=True)
class Budget:
    """
    A spending limit for one category over an inclusive [from_date, end_date] window.

    wallet_id == ALL_WALLETS means the limit applies across all wallets.
    category_title is None when the referenced category no longer exists.
    """
    budget_id: int
    account_id: int
    category_id: int
    category_title: str | None
    wallet_id: int
    amount: Decimal
    from_date: datetime
    end_date: datetime
    is_repeating: bool = False

    @property
    def covers_all_wallets(self) -> bool:
        return self.wallet_id == ALL_WALLETS


@dataclass(frozen=True)
class Transaction:
    transaction_id: int
    amount: Decimal
    transaction_type: TransactionType
    category_id: int | None
    wallet_id: int | None
    occurred_at: datetime
    exclude_from_report: bool = False


@dataclass(frozen=True)
class ConsumptionSnapshot:
    """Derived once per evaluation, never persisted."""
    spent_amount: Decimal
    remaining_amount: Decimal
    percent_consumed: float
    elapsed_fraction: float
    elapsed_days: int
    total_period_days: float
    daily_rate: float
    expected_daily_rate: float
    projected_total: float


@dataclass(frozen=True)
class AlertEvent:
    """Candidate alert produced by a rule, not yet deduplicated or persisted."""
    budget_id: int
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    trigger_value: float


@dataclass
class BudgetAlert:
    alert_id: str
    budget_id: int
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    timestamp: datetime
    is_read: bool = False
    is_dismissed: bool = False
    is_notified: bool = False

    @property
    def is_active(self) -> bool:
        return not self.is_dismissed


@dataclass(frozen=True)
class AlertSettings:
    """
    Alert configuration, global (budget_id=None) or budget-specific.

    A budget-specific record replaces the global one as a whole.
    """
    budget_id: int | None = None
    enable_warning_alerts: bool = True
    warning_thresholds: tuple[int, ...] = DEFAULT_WARNING_THRESHOLDS
    enable_exceeded_alerts: bool = True
    enable_expiring_alerts: bool = True
    expiring_days_before: int = 3
    enable_daily_rate_alerts: bool = True
    daily_rate_threshold: float = 1.5
    enable_push_notifications: bool = True
    enable_in_app_alerts: bool = True
    quiet_hours_start: int | None = None
    quiet_hours_end: int | None = None
    alert_frequency: AlertFrequency = AlertFrequency.ONCE_PER_DAY
    settings_id: int | None = field(default=None, compare=False)

    def __post_init__(self):
        # Thresholds are always evaluated ascending
        object.__setattr__(self, "warning_thresholds", tuple(sorted(self.warning_thresholds)))

    @classmethod
    def default(cls) -> "AlertSettings":
        return cls()

    @property
    def has_quiet_hours(self) -> bool:
        return self.quiet_hours_start is not None and self.quiet_hours_end is not None


class AlertPersistenceError(RuntimeError):
    """A budget alert could not be written to the alert store."""
    pass
