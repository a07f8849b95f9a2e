from models.subscription import Preferences, Subscription
from services.activity_logger import log_activity
from services.preferences import PREFERENCE_KEYS
from services.subscription_store import DuplicateSubscriptionError
from email_validator import validate_email, EmailNotValidError
from datetime import datetime
from typing import Dict, Optional
import logging
import math

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class SubscriptionService:
    """
    Newsletter subscription management.

    Every method takes the store to operate on (see get_subscription_store) and
    the session used for the audit trail, and returns a dict with 'status_code'.
    """

    async def subscribe(self, store, email: Optional[str], session=None):
        """
        Subscribe an email.
        Returns dict with 'status_code' (201 created, 200 reactivated, 400 invalid/duplicate).
        """
        email = normalize_email(email)
        if not email:
            return {"error": "Email address is required", "status_code": 400}
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            logger.info("Rejected subscription email %r: %s", email[:100], e)
            return {"error": "Please enter a valid email address", "status_code": 400}

        existing = await store.get_by_email(email)
        if existing:
            if existing.is_active:
                logger.info("Duplicate subscription attempt: %s", email)
                return {"error": "This email is already subscribed to our newsletter", "status_code": 400}
            existing.is_active = True
            existing.subscribed_at = datetime.utcnow()
            sub = await store.save(existing)
            await log_activity(session, "UPDATE", "SUBSCRIPTION", resource_id=str(sub.id),
                               details=f"Subscription reactivated: {email}")
            return {
                "message": "Welcome back! Your subscription has been reactivated.",
                "subscription": sub,
                "status_code": 200,
            }

        try:
            sub = await store.add(Subscription(email=email))
        except DuplicateSubscriptionError:
            return {"error": "This email is already subscribed", "status_code": 400}
        await log_activity(session, "CREATE", "SUBSCRIPTION", resource_id=str(sub.id),
                           details=f"New subscription: {email}")
        return {
            "message": "Successfully subscribed! You'll receive updates about new listings and offers.",
            "subscription": sub,
            "status_code": 201,
        }

    async def unsubscribe(self, store, email: Optional[str], session=None):
        """
        Deactivate a subscription (soft delete).
        Returns dict with 'status_code' (200 ok, 400 missing email, 404 not found).
        """
        email = normalize_email(email)
        if not email:
            return {"error": "Email address is required", "status_code": 400}
        sub = await store.get_by_email(email)
        if not sub:
            return {"error": "Email not found in our subscription list", "status_code": 404}

        sub.is_active = False
        await store.save(sub)
        await log_activity(session, "DELETE", "SUBSCRIPTION", resource_id=str(sub.id),
                           details=f"Subscription cancelled: {email}")
        return {"message": "Successfully unsubscribed from newsletter", "status_code": 200}

    async def get_status(self, store, email: Optional[str]):
        email = normalize_email(email)
        if not email:
            return {"error": "Email address is required", "status_code": 400}
        sub = await store.get_by_email(email)
        return {
            "is_subscribed": bool(sub and sub.is_active),
            "subscription": sub,
            "status_code": 200,
        }

    async def list_all(self, store, active: bool = True, page: int = 1, limit: int = 50):
        page = max(page, 1)
        limit = max(limit, 1)
        items, total = await store.list_subscriptions(active=active, page=page, limit=limit)
        return {
            "subscriptions": items,
            "total_subscriptions": total,
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "status_code": 200,
        }

    async def update_preferences(self, store, email: Optional[str], preferences: Dict[str, bool], session=None):
        """Merge known preference flags into the subscription; unknown keys are ignored."""
        email = normalize_email(email)
        if not email:
            return {"error": "Email address is required", "status_code": 400}
        sub = await store.get_by_email(email)
        if not sub:
            return {"error": "Subscription not found", "status_code": 404}

        merged = sub.preferences.model_dump()
        merged.update({k: bool(v) for k, v in (preferences or {}).items() if k in PREFERENCE_KEYS})
        sub.preferences = Preferences(**merged)
        sub = await store.save(sub)
        await log_activity(session, "UPDATE", "SUBSCRIPTION", resource_id=str(sub.id),
                           details=f"Subscription preferences updated: {email}")
        return {
            "message": "Subscription preferences updated successfully",
            "preferences": sub.preferences,
            "status_code": 200,
        }

subscription_service = SubscriptionService()
