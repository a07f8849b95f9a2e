# services/notification_service.py
"""
New-listing / special-offer fan-out to subscribers.

Flow for every event:
1. resolve the preference key (listings only; offers use specialOffers)
2. load active subscribers that opted into that key
3. hand one notification per subscriber to the notifier
4. stamp last_notified on exactly those subscribers

Callers (listing creation, admin offers) must never fail because of this
module, so every entry point returns a result dict instead of raising.
"""
import logging
from collections import deque
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from config.settings import settings
from models.subscription import Subscription
from services.preferences import SPECIAL_OFFERS, empty_preference_totals, resolve_preference_key
from tools.notifier import LogNotifier, Notifier, build_notifier

logger = logging.getLogger(__name__)


def _as_dict(details: Any) -> Dict[str, Any]:
    """Event details as a dict; a bare value (e.g. a string) becomes the title."""
    if details is None:
        return {}
    if hasattr(details, "model_dump"):
        return details.model_dump()
    if isinstance(details, Mapping):
        return dict(details)
    return {"title": str(details)}


class NotificationService:
    def __init__(self, notifier: Optional[Notifier] = None, recent_window: Optional[timedelta] = None):
        self.notifier = notifier or LogNotifier()
        self.recent_window = recent_window or timedelta(hours=settings.RECENT_NOTIFICATION_WINDOW_HOURS)
        self.sent_notifications = deque(maxlen=100)

    async def notify_new_listing(self, store, property_type: str, property_details: Any) -> Dict[str, Any]:
        """Notify subscribers of the category matching property_type about a new listing."""
        details = _as_dict(property_details)
        try:
            preference_key = resolve_preference_key(property_type)
            subscribers = await store.find_active_by_preference(preference_key)
        except Exception as e:
            logger.error("Error sending notifications for %s listing: %s", property_type, e)
            return {"success": False, "error": str(e)}

        title = details.get("title", "")
        subject = f"New {property_type} listing: {title}"
        body = f"{title} | Price: ₹{details.get('price')} | Location: {details.get('location', '')}"
        logger.info(
            "New listing notification: type=%s key=%s title=%s subscribers=%d",
            property_type, preference_key, title, len(subscribers),
        )
        await self._fan_out(store, "new_listing", preference_key, subscribers, subject, body)

        return {
            "success": True,
            "notified_count": len(subscribers),
            "property_type": property_type,
            "property_details": details,
        }

    async def notify_special_offer(self, store, offer_details: Any) -> Dict[str, Any]:
        """Notify every active subscriber that opted into special offers."""
        details = _as_dict(offer_details)
        try:
            subscribers = await store.find_active_by_preference(SPECIAL_OFFERS)
        except Exception as e:
            logger.error("Error sending special offer notifications: %s", e)
            return {"success": False, "error": str(e)}

        subject = f"Special offer: {details.get('title', '')}"
        body = details.get("description", "")
        logger.info("Special offer notification: title=%s subscribers=%d", details.get("title"), len(subscribers))
        await self._fan_out(store, "special_offer", SPECIAL_OFFERS, subscribers, subject, body)

        return {
            "success": True,
            "notified_count": len(subscribers),
            "offer_type": "special_offer",
            "offer_details": details,
        }

    async def _fan_out(
        self,
        store,
        kind: str,
        preference_key: str,
        subscribers: List[Subscription],
        subject: str,
        body: str,
    ) -> None:
        if not subscribers:
            logger.info("No active subscribers for %s", preference_key)
            return

        for sub in subscribers:
            try:
                await self.notifier.send(sub, subject, body)
            except Exception as e:
                logger.error("Notifier %s failed for %s: %s", self.notifier.channel, sub.email, e)

        # Emissions above already went out; a failed timestamp update is only logged.
        try:
            updated = await store.mark_notified([sub.id for sub in subscribers], datetime.utcnow())
            logger.info("Notification sent to %d subscribers (%s), last_notified updated on %d", len(subscribers), preference_key, updated)
        except Exception as e:
            logger.error("Notifications sent but last_notified update failed for %s: %s", preference_key, e)

        self.sent_notifications.append({
            "kind": kind,
            "preference_key": preference_key,
            "subject": subject,
            "notified_count": len(subscribers),
            "channel": self.notifier.channel,
            "sent_at": datetime.utcnow().isoformat(),
        })

    async def get_stats(self, store) -> Optional[Dict[str, Any]]:
        """
        Aggregate subscriber counts as of now.

        recent_notifications counts active subscribers whose last_notified is
        strictly inside the trailing window. Returns None if the store fails.
        """
        try:
            since = datetime.utcnow() - self.recent_window
            total = await store.count_active()
            recent = await store.count_notified_since(since)
            preferences = await store.preference_totals()
        except Exception as e:
            logger.error("Error getting notification stats: %s", e)
            return None

        return {
            "total_subscribers": total or 0,
            "recent_notifications": recent or 0,
            "preferences": preferences or empty_preference_totals(),
        }

    def recent_notifications(self, limit: int = 20):
        """Return the last `limit` fan-out summaries."""
        return list(self.sent_notifications)[-limit:]

# singleton
notification_service = NotificationService(notifier=build_notifier(settings.NOTIFICATION_CHANNEL))
