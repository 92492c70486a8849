"""
SQLAlchemy ORM models (budgets, transactions feed, budget alerts, delivery targets)
"""
from decimal import Decimal
from sqlalchemy import String, DateTime, Integer, SmallInteger, Text, TIMESTAMP, Float, func, Boolean, Numeric, Index, false, true, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from app.infrastructure.db.session import Base


# ============================================================================
# Finance read models consumed by the alert engine
# ============================================================================


class CategoryInfo(Base):
    """
    Read model: Category information
    """
    __tablename__ = "categories"

    category_id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category_type: Mapped[str] = mapped_column(String(20), nullable=False)  # INCOME/EXPENSE
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class TransactionFeed(Base):
    """
    Read model: Transaction feed (INCOME / EXPENSE / TRANSFER)
    """
    __tablename__ = "transactions_feed"

    transaction_id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    operation_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    wallet_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    # Hidden from reports and from budget consumption
    exclude_from_report: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    occurred_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        index=True
    )

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class BudgetModel(Base):
    """
    Category spending limit over an inclusive [from_date, end_date] window.

    wallet_id = -1 means "all wallets".
    """
    __tablename__ = "budgets"

    budget_id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    wallet_id: Mapped[int] = mapped_column(Integer, nullable=False, default=-1, server_default="-1")

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    from_date: Mapped[DateTime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_date: Mapped[DateTime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    is_repeating: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


# ============================================================================
# Budget alerts
# ============================================================================


class BudgetAlertModel(Base):
    """One raised alert. Engine only inserts; read/dismiss flags belong to the user."""
    __tablename__ = "budget_alerts"
    __table_args__ = (
        Index("ix_budget_alerts_dedup_lookup", "budget_id", "alert_type", "created_at"),
        Index("ix_budget_alerts_active", "is_dismissed", "is_read"),
    )

    alert_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    budget_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    alert_type: Mapped[str] = mapped_column(String(32), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_dismissed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    # Push allowed by the dispatch policy when the alert was created
    is_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class BudgetAlertSettingsModel(Base):
    """Alert preferences: budget_id NULL = the account's global row, otherwise a per-budget override."""
    __tablename__ = "budget_alert_settings"
    __table_args__ = (
        # One global row per account
        Index(
            "uq_budget_alert_settings_account_global",
            "account_id",
            unique=True,
            postgresql_where=text("budget_id IS NULL"),
            sqlite_where=text("budget_id IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    budget_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)

    enable_warning_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    warning_thresholds: Mapped[list] = mapped_column(JSONB, nullable=False, default=lambda: [80, 90, 95])
    enable_exceeded_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    enable_expiring_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    expiring_days_before: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=3, server_default="3")
    enable_daily_rate_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    daily_rate_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=1.5, server_default="1.5")
    enable_push_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    enable_in_app_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    # Hour of day 0..23, both NULL = no quiet hours
    quiet_hours_start: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    quiet_hours_end: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)

    alert_frequency: Mapped[str] = mapped_column(
        String(16), nullable=False, default="ONCE_PER_DAY", server_default="ONCE_PER_DAY"
    )

    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# ============================================================================
# Delivery targets
# ============================================================================


class PushSubscription(Base):
    """Web Push subscription for a user device."""
    __tablename__ = "push_subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class TelegramSettings(Base):
    """User's Telegram chat for alert delivery."""
    __tablename__ = "telegram_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    chat_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    connected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    connected_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
