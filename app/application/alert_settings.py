"""
Effective alert settings for a budget.

Lookup order: budget-specific row, then the owner account's global row
(budget_id=None), then AlertSettings.default(). A budget-specific row replaces
the global one as a whole; fields are not merged.
"""
import logging
from typing import Protocol

from app.domain.budget_alert import AlertSettings

logger = logging.getLogger(__name__)


class SettingsSource(Protocol):
    def get_settings_for(self, budget_id: int) -> AlertSettings | None: ...

    def get_global_settings(self, account_id: int) -> AlertSettings | None: ...


class SettingsResolver:
    def __init__(self, source: SettingsSource):
        self.source = source

    def resolve(self, budget_id: int, account_id: int) -> AlertSettings:
        specific = self.source.get_settings_for(budget_id)
        if specific is not None:
            return specific
        global_settings = self.source.get_global_settings(account_id)
        if global_settings is not None:
            return global_settings
        logger.debug("No alert settings stored, using defaults for budget_id=%s account_id=%s",
                     budget_id, account_id)
        return AlertSettings.default()
