"""
Tests for Budget Alerts API endpoints
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient

from app.api.deps import get_current_account_id, get_db
from app.application.alert_settings import SettingsResolver
from app.domain.budget_alert import AlertSettings, AlertSeverity, AlertType, BudgetAlert
from app.infrastructure.budget_alerts.repository import SqlAlertStore, SqlBudgetStore
from app.infrastructure.db.models import BudgetModel
from app.main import create_app


DAY0 = datetime(2026, 3, 1)
ACCOUNT_ID = 1


@pytest.fixture
def api(db_session):
    """App wired to the test session; no scheduler"""
    app = create_app(run_scheduler=False)

    def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    return app


@pytest.fixture
def client(api):
    """Client logged in as ACCOUNT_ID"""
    api.dependency_overrides[get_current_account_id] = lambda: ACCOUNT_ID
    return TestClient(api)


@pytest.fixture
def seeded(db_session):
    for budget_id, account_id in ((1, ACCOUNT_ID), (2, 2)):
        db_session.add(BudgetModel(
            budget_id=budget_id,
            account_id=account_id,
            category_id=10,
            amount=Decimal("1000"),
            from_date=DAY0,
            end_date=DAY0 + timedelta(days=30),
        ))
    db_session.commit()

    store = SqlAlertStore(db_session)
    for alert_id, budget_id, hours in (("a1", 1, 1), ("a2", 1, 2), ("b1", 2, 1)):
        store.save(BudgetAlert(
            alert_id=alert_id,
            budget_id=budget_id,
            alert_type=AlertType.WARNING_THRESHOLD_90,
            severity=AlertSeverity.MEDIUM,
            message=f"alert {alert_id}",
            timestamp=DAY0 + timedelta(days=10, hours=hours),
        ))


def test_requires_login(api):
    response = TestClient(api).get("/api/v1/budget-alerts/")
    assert response.status_code == 401


def test_health(api):
    response = TestClient(api).get("/health")
    assert response.status_code == 200
    assert response.text == "ok"


# === Inbox ===

def test_list_active_alerts(client, seeded):
    response = client.get("/api/v1/budget-alerts/")
    assert response.status_code == 200
    data = response.json()
    assert [a["alert_id"] for a in data] == ["a2", "a1"]
    assert data[0]["alert_type"] == "WARNING_THRESHOLD_90"
    assert data[0]["severity"] == "MEDIUM"
    assert data[0]["is_read"] is False


def test_list_filtered_by_budget(client, seeded):
    response = client.get("/api/v1/budget-alerts/", params={"budget_id": 2})
    assert response.json() == []


def test_unread_count_and_mark_read(client, seeded):
    assert client.get("/api/v1/budget-alerts/unread-count").json() == {"unread": 2}

    response = client.post("/api/v1/budget-alerts/a1/read")
    assert response.status_code == 200

    assert client.get("/api/v1/budget-alerts/unread-count").json() == {"unread": 1}


def test_dismiss(client, seeded):
    assert client.post("/api/v1/budget-alerts/a2/dismiss").status_code == 200
    ids = [a["alert_id"] for a in client.get("/api/v1/budget-alerts/").json()]
    assert ids == ["a1"]


def test_foreign_alert_is_not_found(client, seeded):
    assert client.post("/api/v1/budget-alerts/b1/dismiss").status_code == 404
    assert client.post("/api/v1/budget-alerts/missing/read").status_code == 404


def test_dismiss_all_for_budget(client, seeded):
    response = client.post("/api/v1/budget-alerts/budgets/1/dismiss-all")
    assert response.status_code == 200
    assert response.json()["dismissed"] == 2
    assert client.get("/api/v1/budget-alerts/").json() == []

    assert client.post("/api/v1/budget-alerts/budgets/2/dismiss-all").status_code == 404


# === Settings ===

def test_global_settings_defaults(client):
    data = client.get("/api/v1/budget-alerts/settings").json()
    assert data["budget_id"] is None
    assert data["warning_thresholds"] == [80, 90, 95]
    assert data["alert_frequency"] == "ONCE_PER_DAY"
    assert data["quiet_hours_start"] is None


def test_put_global_settings(client):
    response = client.put("/api/v1/budget-alerts/settings", json={
        "warning_thresholds": [70, 100],
        "quiet_hours_start": 22,
        "quiet_hours_end": 7,
        "alert_frequency": "ONCE_PER_WEEK",
    })
    assert response.status_code == 200

    data = client.get("/api/v1/budget-alerts/settings").json()
    assert data["warning_thresholds"] == [70, 100]
    assert data["quiet_hours_start"] == 22
    assert data["alert_frequency"] == "ONCE_PER_WEEK"


def test_put_invalid_settings(client):
    response = client.put("/api/v1/budget-alerts/settings", json={"warning_thresholds": [0, 90]})
    assert response.status_code == 400
    assert "1..100" in response.json()["detail"]


def test_budget_settings_override(client, seeded):
    client.put("/api/v1/budget-alerts/settings", json={"expiring_days_before": 5})

    # Without override the budget gets the global row
    assert client.get("/api/v1/budget-alerts/budgets/1/settings").json()["expiring_days_before"] == 5

    response = client.put("/api/v1/budget-alerts/budgets/1/settings", json={"expiring_days_before": 1})
    assert response.status_code == 200
    assert response.json()["budget_id"] == 1
    assert client.get("/api/v1/budget-alerts/budgets/1/settings").json()["expiring_days_before"] == 1

    response = client.delete("/api/v1/budget-alerts/budgets/1/settings")
    assert response.json() == {"success": True, "deleted": True}
    assert client.get("/api/v1/budget-alerts/budgets/1/settings").json()["expiring_days_before"] == 5


def test_foreign_budget_settings(client, seeded):
    assert client.get("/api/v1/budget-alerts/budgets/2/settings").status_code == 404
    assert client.put("/api/v1/budget-alerts/budgets/2/settings", json={}).status_code == 404
    assert client.delete("/api/v1/budget-alerts/budgets/2/settings").status_code == 404


def test_global_settings_scoped_to_caller(api, client, seeded, db_session):
    stranger = TestClient(api)
    api.dependency_overrides[get_current_account_id] = lambda: 2
    response = stranger.put("/api/v1/budget-alerts/settings", json={
        "enable_warning_alerts": False,
        "enable_exceeded_alerts": False,
        "enable_expiring_alerts": False,
        "enable_daily_rate_alerts": False,
        "enable_push_notifications": False,
        "enable_in_app_alerts": False,
    })
    assert response.status_code == 200
    assert stranger.get("/api/v1/budget-alerts/settings").json()["enable_in_app_alerts"] is False

    api.dependency_overrides[get_current_account_id] = lambda: ACCOUNT_ID
    data = client.get("/api/v1/budget-alerts/settings").json()
    assert data["enable_in_app_alerts"] is True
    assert data["enable_push_notifications"] is True
    assert SettingsResolver(SqlBudgetStore(db_session)).resolve(1, ACCOUNT_ID) == AlertSettings.default()
