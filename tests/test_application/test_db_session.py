"""
Tests for engine/session helpers and config
"""
import pytest

from app.config import Settings
from app.infrastructure.db import session as db_session_module


@pytest.fixture
def sqlite_settings(monkeypatch):
    """Point the engine singletons at an in-memory SQLite database"""
    settings = Settings(DATABASE_URL="sqlite:///:memory:", _env_file=None)
    monkeypatch.setattr(db_session_module, "get_settings", lambda: settings)
    monkeypatch.setattr(db_session_module, "_engine", None)
    monkeypatch.setattr(db_session_module, "_SessionLocal", None)
    yield settings
    if db_session_module._engine is not None:
        db_session_module._engine.dispose()


def test_ready_check_on_sqlite(sqlite_settings):
    db_session_module.check_db_connection()


def test_engine_is_singleton(sqlite_settings):
    assert db_session_module.get_engine() is db_session_module.get_engine()


def test_session_scope_closes(sqlite_settings, monkeypatch):
    closed = []
    factory = db_session_module.get_session_factory()

    with db_session_module.session_scope() as db:
        monkeypatch.setattr(db, "close", lambda: closed.append(True))
        assert db.bind is factory.kw["bind"]

    assert closed == [True]


class TestSettings:
    def test_postgres_url_uses_psycopg_driver(self):
        s = Settings(DATABASE_URL="postgresql://u:p@db:5432/alerts", _env_file=None)
        assert s.get_sqlalchemy_url() == "postgresql+psycopg://u:p@db:5432/alerts"

    def test_other_urls_untouched(self):
        s = Settings(DATABASE_URL="sqlite:///alerts.db", _env_file=None)
        assert s.get_sqlalchemy_url() == "sqlite:///alerts.db"

    def test_alert_defaults(self):
        s = Settings(_env_file=None)
        assert s.BUDGET_ALERTS_ENABLED is True
        assert s.BUDGET_ALERT_LOOKBACK_DAYS == 7
        assert s.BUDGET_ALERT_RETENTION_DAYS == 30
        assert 0 <= s.BUDGET_ALERTS_CRON_HOUR <= 23
