"""
Budget alert API endpoints: alert inbox and alert settings
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_account_id
from app.application.budget_alerts import (
    BudgetAlertNotFound,
    BudgetAlertValidationError,
    DeleteBudgetAlertSettingsUseCase,
    DismissAlertUseCase,
    DismissBudgetAlertsUseCase,
    MarkAlertReadUseCase,
    SaveAlertSettingsUseCase,
    get_active_alerts,
    get_effective_settings,
    get_unread_count,
)
from app.domain.budget_alert import (
    DEFAULT_WARNING_THRESHOLDS,
    AlertFrequency,
    AlertSettings,
    BudgetAlert,
)
from app.infrastructure.budget_alerts.repository import SqlBudgetStore


router = APIRouter(prefix="/api/v1/budget-alerts", tags=["budget-alerts"])


# === Request/Response models ===

class AlertResponse(BaseModel):
    alert_id: str
    budget_id: int
    alert_type: str
    severity: str
    message: str
    timestamp: datetime
    is_read: bool
    is_dismissed: bool


class UnreadCountResponse(BaseModel):
    unread: int


class AlertSettingsBody(BaseModel):
    enable_warning_alerts: bool = True
    warning_thresholds: list[int] = Field(default_factory=lambda: list(DEFAULT_WARNING_THRESHOLDS))
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


class AlertSettingsResponse(AlertSettingsBody):
    budget_id: int | None = None


# === Helpers ===

def _alert_response(alert: BudgetAlert) -> AlertResponse:
    return AlertResponse(
        alert_id=alert.alert_id,
        budget_id=alert.budget_id,
        alert_type=alert.alert_type.value,
        severity=alert.severity.value,
        message=alert.message,
        timestamp=alert.timestamp,
        is_read=alert.is_read,
        is_dismissed=alert.is_dismissed,
    )


def _settings_response(settings: AlertSettings, budget_id: int | None) -> AlertSettingsResponse:
    return AlertSettingsResponse(
        budget_id=budget_id,
        enable_warning_alerts=settings.enable_warning_alerts,
        warning_thresholds=list(settings.warning_thresholds),
        enable_exceeded_alerts=settings.enable_exceeded_alerts,
        enable_expiring_alerts=settings.enable_expiring_alerts,
        expiring_days_before=settings.expiring_days_before,
        enable_daily_rate_alerts=settings.enable_daily_rate_alerts,
        daily_rate_threshold=settings.daily_rate_threshold,
        enable_push_notifications=settings.enable_push_notifications,
        enable_in_app_alerts=settings.enable_in_app_alerts,
        quiet_hours_start=settings.quiet_hours_start,
        quiet_hours_end=settings.quiet_hours_end,
        alert_frequency=settings.alert_frequency,
    )


def _settings_from_body(body: AlertSettingsBody) -> AlertSettings:
    return AlertSettings(
        enable_warning_alerts=body.enable_warning_alerts,
        warning_thresholds=tuple(body.warning_thresholds),
        enable_exceeded_alerts=body.enable_exceeded_alerts,
        enable_expiring_alerts=body.enable_expiring_alerts,
        expiring_days_before=body.expiring_days_before,
        enable_daily_rate_alerts=body.enable_daily_rate_alerts,
        daily_rate_threshold=body.daily_rate_threshold,
        enable_push_notifications=body.enable_push_notifications,
        enable_in_app_alerts=body.enable_in_app_alerts,
        quiet_hours_start=body.quiet_hours_start,
        quiet_hours_end=body.quiet_hours_end,
        alert_frequency=body.alert_frequency,
    )


def _ensure_budget(db: Session, account_id: int, budget_id: int) -> None:
    budget = SqlBudgetStore(db).get_budget(budget_id)
    if budget is None or budget.account_id != account_id:
        raise HTTPException(status_code=404, detail="Budget not found")


# === Inbox ===

@router.get("/", response_model=list[AlertResponse])
def list_alerts(
    budget_id: int | None = None,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Active (not dismissed) alerts, newest first"""
    return [_alert_response(a) for a in get_active_alerts(db, account_id, budget_id)]


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    return UnreadCountResponse(unread=get_unread_count(db, account_id))


@router.post("/{alert_id}/read")
def mark_read(
    alert_id: str,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    try:
        MarkAlertReadUseCase(db).execute(account_id, alert_id)
    except BudgetAlertNotFound:
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"success": True}


@router.post("/{alert_id}/dismiss")
def dismiss(
    alert_id: str,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    try:
        DismissAlertUseCase(db).execute(account_id, alert_id)
    except BudgetAlertNotFound:
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"success": True}


@router.post("/budgets/{budget_id}/dismiss-all")
def dismiss_all_for_budget(
    budget_id: int,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    try:
        dismissed = DismissBudgetAlertsUseCase(db).execute(account_id, budget_id)
    except BudgetAlertNotFound:
        raise HTTPException(status_code=404, detail="Budget not found")
    return {"success": True, "dismissed": dismissed}


# === Settings ===

@router.get("/settings", response_model=AlertSettingsResponse)
def get_global_settings(
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Caller's global settings, or defaults if none were saved"""
    return _settings_response(get_effective_settings(db, account_id), None)


@router.put("/settings", response_model=AlertSettingsResponse)
def put_global_settings(
    body: AlertSettingsBody,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    try:
        saved = SaveAlertSettingsUseCase(db).execute(account_id, _settings_from_body(body))
    except BudgetAlertValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _settings_response(saved, None)


@router.get("/budgets/{budget_id}/settings", response_model=AlertSettingsResponse)
def get_budget_settings(
    budget_id: int,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Settings the engine applies to this budget (override, global or defaults)"""
    _ensure_budget(db, account_id, budget_id)
    return _settings_response(get_effective_settings(db, account_id, budget_id), budget_id)


@router.put("/budgets/{budget_id}/settings", response_model=AlertSettingsResponse)
def put_budget_settings(
    budget_id: int,
    body: AlertSettingsBody,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    try:
        saved = SaveAlertSettingsUseCase(db).execute(account_id, _settings_from_body(body), budget_id)
    except BudgetAlertNotFound:
        raise HTTPException(status_code=404, detail="Budget not found")
    except BudgetAlertValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _settings_response(saved, budget_id)


@router.delete("/budgets/{budget_id}/settings")
def delete_budget_settings(
    budget_id: int,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Drop the override; the budget falls back to global settings"""
    try:
        deleted = DeleteBudgetAlertSettingsUseCase(db).execute(account_id, budget_id)
    except BudgetAlertNotFound:
        raise HTTPException(status_code=404, detail="Budget not found")
    return {"success": True, "deleted": deleted}
