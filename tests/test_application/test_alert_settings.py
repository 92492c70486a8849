"""
Tests for SettingsResolver: budget row → account's global row → defaults
"""
from app.application.alert_settings import SettingsResolver
from app.domain.budget_alert import AlertFrequency, AlertSettings


class FakeSource:
    def __init__(self, specific=None, global_by_account=None):
        self.specific = specific or {}
        self.global_by_account = global_by_account or {}

    def get_settings_for(self, budget_id):
        return self.specific.get(budget_id)

    def get_global_settings(self, account_id):
        return self.global_by_account.get(account_id)


def test_defaults_when_nothing_stored():
    assert SettingsResolver(FakeSource()).resolve(1, 1) == AlertSettings.default()


def test_global_used_without_override():
    glob = AlertSettings(expiring_days_before=5)
    assert SettingsResolver(FakeSource(global_by_account={1: glob})).resolve(1, 1) is glob


def test_global_row_of_other_account_ignored():
    muted = AlertSettings(enable_push_notifications=False, enable_in_app_alerts=False)
    resolver = SettingsResolver(FakeSource(global_by_account={2: muted}))
    assert resolver.resolve(1, 1) == AlertSettings.default()


def test_budget_override_replaces_global_whole():
    glob = AlertSettings(quiet_hours_start=22, quiet_hours_end=7)
    override = AlertSettings(budget_id=1, alert_frequency=AlertFrequency.EVERY_TIME)
    resolver = SettingsResolver(FakeSource(specific={1: override}, global_by_account={1: glob}))

    resolved = resolver.resolve(1, 1)
    assert resolved is override
    # No field-level merge with the global row
    assert resolved.has_quiet_hours is False


def test_override_only_for_its_budget():
    glob = AlertSettings(expiring_days_before=5)
    override = AlertSettings(budget_id=1, expiring_days_before=1)
    resolver = SettingsResolver(FakeSource(specific={1: override}, global_by_account={1: glob}))
    assert resolver.resolve(2, 1) is glob
