"""Discord webhook reminders.

When ``DISCORD_WEBHOOK_URL`` is configured, renewal reminders are posted as
rich embeds at 7, 3, 1 and 0 days before renewal. Delivery is de-duplicated
with a ``SentLedger`` keyed by subscription, days until renewal and renewal
date: a key fires at most once per day, and editing a subscription changes
its renewal date and therefore its key.
"""

import json
import logging
import os
import threading
from datetime import date, datetime, timezone
from typing import Iterable, MutableMapping, Optional

import httpx

from subtracker.config import settings
from subtracker.exceptions import DataError, TransportError
from subtracker.services import renewal
from subtracker.services.email import format_renewal_date, renewal_phrase
from subtracker.services.reminder_policy import PointPolicy, evaluate

logger = logging.getLogger(__name__)

USERNAME = "Subscription Tracker"

COLOR_TODAY = 0xFF0000
COLOR_TOMORROW = 0xFF9900
COLOR_UPCOMING = 0x667EEA


def build_sent_key(subscription_id: str, days_until: int, renewal_date: date) -> str:
    return f"{subscription_id}_{days_until}_{renewal_date.isoformat()}"


class SentLedger:
    """Which webhook reminders went out today.

    Maps a sent key to the ISO day it was sent. Only "sent today" is ever
    meaningful, so every write drops entries from other days. Backed by a
    plain mapping, optionally mirrored to a JSON file so it survives restarts.
    """

    def __init__(
        self,
        entries: Optional[MutableMapping[str, str]] = None,
        path: Optional[str] = None,
    ):
        self._path = path
        self._lock = threading.Lock()
        self._entries: MutableMapping[str, str] = entries if entries is not None else {}
        if path and entries is None:
            self._entries.update(self._load(path))

    @staticmethod
    def _load(path: str) -> dict[str, str]:
        if not os.path.exists(path):
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read sent ledger {path}, starting empty: {e}")
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _save(self):
        if not self._path:
            return
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(dict(self._entries), f)
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.warning(f"Could not write sent ledger {self._path}: {e}")

    def was_sent(self, key: str, today: date) -> bool:
        with self._lock:
            return self._entries.get(key) == today.isoformat()

    def mark_sent(self, key: str, today: date):
        today_key = today.isoformat()
        with self._lock:
            self._entries[key] = today_key
            for stale in [k for k, day in self._entries.items() if day != today_key]:
                del self._entries[stale]
            self._save()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries


class DiscordWebhook:
    """Posts JSON payloads to a Discord webhook URL."""

    def __init__(self, url: str, client: Optional[httpx.Client] = None, timeout: Optional[float] = None):
        self.url = url
        self._client = client or httpx.Client(
            timeout=timeout if timeout is not None else settings.webhook_timeout_seconds
        )

    def post_json(self, payload: dict):
        try:
            response = self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"Discord webhook request failed: {e}") from e
        if not response.is_success:
            raise TransportError(f"Discord webhook failed: {response.status_code}")

    def close(self):
        self._client.close()


def build_embed(subscription, days_until: int, renewal_date: date, now: Optional[datetime] = None) -> dict:
    if days_until == 0:
        color, marker = COLOR_TODAY, "🔴"
    elif days_until == 1:
        color, marker = COLOR_TOMORROW, "🟠"
    else:
        color, marker = COLOR_UPCOMING, "🔵"
    title = f"{marker} {subscription.name} {renewal_phrase(days_until)}"
    if days_until == 0:
        title += "!"

    embed = {
        "title": title,
        "color": color,
        "fields": [
            {"name": "💰 Amount", "value": f"{settings.currency_symbol}{subscription.price:.2f}", "inline": True},
            {"name": "🔄 Billing Cycle", "value": subscription.billing, "inline": True},
            {"name": "📅 Renewal Date", "value": format_renewal_date(renewal_date), "inline": True},
        ],
        "footer": {"text": USERNAME},
        "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
    }
    description = getattr(subscription, "description", None)
    if description:
        embed["fields"].append({"name": "📝 Description", "value": description})
    return embed


class DiscordNotifier:
    """Runs the point policy over a subscription snapshot and posts reminders."""

    def __init__(
        self,
        webhook: Optional[DiscordWebhook],
        ledger: SentLedger,
        notify_at_days: Iterable[int] = (7, 3, 1, 0),
    ):
        self.webhook = webhook
        self.ledger = ledger
        self.policy = PointPolicy(notify_at_days)

    def check_and_notify(self, subscriptions, today: Optional[date] = None) -> int:
        """Post due reminders for ``subscriptions``; return how many were sent.

        One subscription failing to post does not stop the others.
        """
        if self.webhook is None:
            return 0

        today = today or renewal.civil_today()
        sent = 0
        for sub in subscriptions:
            if not sub.due_date or not sub.billing:
                continue
            try:
                due_reminders = evaluate(sub.due_date, sub.billing, today, self.policy)
            except DataError as e:
                logger.warning(f"Skipping Discord check for {sub.name}: {e}")
                continue

            for due in due_reminders:
                key = build_sent_key(sub.id, due.days_until, due.renewal_date)
                if self.ledger.was_sent(key, today):
                    continue
                try:
                    self.webhook.post_json(
                        {
                            "username": USERNAME,
                            "embeds": [build_embed(sub, due.days_until, due.renewal_date)],
                        }
                    )
                except TransportError as e:
                    logger.error(f"Discord notification failed for {sub.name}: {e}")
                    continue
                self.ledger.mark_sent(key, today)
                sent += 1
        return sent

    def on_snapshot(self, user_id: int, subscriptions):
        """Feed listener: called with a user's current subscriptions."""
        self.check_and_notify(subscriptions)

    def close(self):
        if self.webhook is not None:
            self.webhook.close()


def build_discord_notifier() -> Optional[DiscordNotifier]:
    """Create the notifier from settings, or None when no webhook is configured."""
    if not settings.discord_webhook_url:
        logger.info("DISCORD_WEBHOOK_URL not configured, Discord reminders disabled")
        return None
    return DiscordNotifier(
        webhook=DiscordWebhook(settings.discord_webhook_url),
        ledger=SentLedger(path=settings.discord_sent_ledger_path),
        notify_at_days=settings.discord_notify_at_days,
    )
