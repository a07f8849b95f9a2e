"""
Notification transports.

The dispatcher hands every matched subscriber to a Notifier. The default
LogNotifier only writes a log line (no email provider is wired up yet);
RecordingNotifier additionally keeps recent messages in memory. The
NOTIFICATION_CHANNEL setting picks one through build_notifier; swap in a
real transport by implementing the same ``send`` coroutine.
"""
import logging
from collections import deque
from typing import Protocol

from models.subscription import Subscription

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    channel: str

    async def send(self, subscription: Subscription, subject: str, body: str) -> dict:
        ...


class LogNotifier:
    """Log-only transport (dev / until an email provider is configured)."""

    channel = "log"

    async def send(self, subscription: Subscription, subject: str, body: str) -> dict:
        logger.info("[NOTIFY] To %s: %s | %s", subscription.email, subject, body)
        return {"email": subscription.email, "subject": subject, "channel": self.channel, "delivered": False}


class RecordingNotifier(LogNotifier):
    """Keeps the last `maxlen` notifications in memory (local runs, admin inspection, tests)."""

    channel = "memory"

    def __init__(self, maxlen: int = 100):
        self.sent = deque(maxlen=maxlen)

    async def send(self, subscription: Subscription, subject: str, body: str) -> dict:
        await super().send(subscription, subject, body)
        record = {"email": subscription.email, "subject": subject, "body": body, "channel": self.channel}
        self.sent.append(record)
        return record

    def recent(self, limit: int = 20):
        return list(self.sent)[-limit:]


NOTIFIERS = {
    LogNotifier.channel: LogNotifier,
    RecordingNotifier.channel: RecordingNotifier,
}


def build_notifier(channel: str) -> Notifier:
    """Transport for a NOTIFICATION_CHANNEL value; unknown channels fall back to the log."""
    factory = NOTIFIERS.get((channel or "").strip().lower())
    if factory is None:
        logger.warning("Unknown notification channel %r, using %s", channel, LogNotifier.channel)
        factory = LogNotifier
    return factory()
