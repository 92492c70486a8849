"""
Budget alert notifier: the NotificationSink used by the scheduled pass.

Delivers a dispatched alert to the budget owner's devices:
- Web Push via pywebpush to every PushSubscription of the user
- Telegram via Bot API, if the user connected a chat

Delivery is best effort. Stale push subscriptions (HTTP 404/410) are removed.
"""
import json
import logging

import requests
from pywebpush import webpush, WebPushException
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.budget_alert import AlertSeverity, AlertType
from app.infrastructure.db.models import BudgetModel, PushSubscription, TelegramSettings

logger = logging.getLogger(__name__)

_SEVERITY_ICONS = {
    AlertSeverity.LOW: "🔵",
    AlertSeverity.MEDIUM: "🟡",
    AlertSeverity.HIGH: "🔴",
}


def _vapid_private_key(raw_key: str) -> str:
    """
    .env may store the PEM with literal \\n or real newlines; pywebpush wants
    either PEM or raw base64url, so strip PEM armour down to the key body.
    """
    if "\\n" in raw_key:
        raw_key = raw_key.replace("\\n", "\n")
    if "BEGIN" in raw_key:
        lines = [l.strip() for l in raw_key.strip().splitlines()
                 if l.strip() and not l.strip().startswith("-----")]
        raw_key = "".join(lines)
    return raw_key


class BudgetAlertNotifier:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def notify(
        self,
        budget_id: int,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
    ) -> None:
        user_id = self._owner_of(budget_id)
        if user_id is None:
            logger.warning("Budget alert for unknown budget_id=%s not delivered", budget_id)
            return

        payload = {
            "title": title,
            "body": message,
            "url": f"/budgets/{budget_id}",
            "tag": f"budget-{budget_id}-{AlertType(alert_type).value}",
        }
        pushed = self.send_push_to_user(user_id, payload)
        telegram_ok = self.send_telegram(user_id, severity, title, message)
        logger.info(
            "Budget alert delivered: budget_id=%s type=%s push=%d telegram=%s",
            budget_id, AlertType(alert_type).value, pushed, telegram_ok,
        )

    def _owner_of(self, budget_id: int) -> int | None:
        # Single-user-per-account model: account_id == user_id
        row = self.db.query(BudgetModel.account_id).filter(BudgetModel.budget_id == budget_id).first()
        return row[0] if row else None

    # --- Web Push ----------------------------------------------------------

    def send_web_push(self, subscription: PushSubscription, payload: dict) -> bool:
        if not self.settings.VAPID_PRIVATE_KEY or not self.settings.VAPID_PUBLIC_KEY:
            logger.warning("VAPID keys not configured, skipping push")
            return False

        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
        }
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload, ensure_ascii=False),
                vapid_private_key=_vapid_private_key(self.settings.VAPID_PRIVATE_KEY),
                vapid_claims={"sub": self.settings.VAPID_MAILTO},
            )
            return True
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else 0
            if status_code in (404, 410):
                logger.info("Subscription expired (HTTP %d), removing: %s", status_code, subscription.endpoint[:60])
                self.db.query(PushSubscription).filter(PushSubscription.id == subscription.id).delete()
                self.db.commit()
            else:
                logger.error("WebPush error (HTTP %d): %s", status_code, e)
            return False

    def send_push_to_user(self, user_id: int, payload: dict) -> int:
        """Returns the number of successful deliveries."""
        subs = self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()
        return sum(1 for sub in subs if self.send_web_push(sub, payload))

    # --- Telegram ----------------------------------------------------------

    def send_telegram(self, user_id: int, severity: AlertSeverity, title: str, message: str) -> bool:
        token = self.settings.TELEGRAM_BOT_TOKEN
        if not token:
            return False
        tg = self.db.query(TelegramSettings).filter_by(user_id=user_id, connected=True).first()
        if not tg or not tg.chat_id:
            return False
        icon = _SEVERITY_ICONS.get(AlertSeverity(severity), "")
        try:
            resp = requests.post(
                f"https://api.telegram.org/bot{token}/sendMessage",
                json={
                    "chat_id": tg.chat_id,
                    "text": f"{icon} <b>{title}</b>\n{message}",
                    "parse_mode": "HTML",
                },
                timeout=5,
            )
            return resp.status_code == 200
        except requests.RequestException:
            logger.exception("Telegram send failed for user_id=%s", user_id)
            return False
