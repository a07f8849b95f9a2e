"""
Subscription store contract and the in-memory implementation.

The notification dispatcher and the subscription service only talk to a
SubscriptionStore. Two implementations exist:
- SubscriptionDBService (async SQLAlchemy) when the DB is enabled
- InMemorySubscriptionStore for local development without a database
"""
from datetime import datetime
from itertools import count
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
import logging

from config.settings import settings
from models.subscription import Subscription
from services.preferences import PREFERENCE_KEYS, empty_preference_totals, require_preference_key

logger = logging.getLogger(__name__)


class DuplicateSubscriptionError(Exception):
    """Raised by SubscriptionStore.add when the email already exists."""


class SubscriptionStore(Protocol):
    async def get_by_email(self, email: str) -> Optional[Subscription]:
        ...

    async def add(self, sub: Subscription) -> Subscription:
        """Insert a new subscription; raises DuplicateSubscriptionError on email clash."""
        ...

    async def save(self, sub: Subscription) -> Subscription:
        """Persist changes to an existing subscription (matched by id)."""
        ...

    async def list_subscriptions(
        self, active: bool = True, page: int = 1, limit: int = 50
    ) -> Tuple[List[Subscription], int]:
        """Page of subscriptions newest first, plus the total for the filter."""
        ...

    async def find_active_by_preference(self, preference_key: str) -> List[Subscription]:
        """Active subscriptions that opted into preference_key."""
        ...

    async def mark_notified(self, subscription_ids: Sequence[int], when: datetime) -> int:
        """Set last_notified=when on exactly these rows; returns rows updated."""
        ...

    async def count_active(self) -> int:
        ...

    async def count_notified_since(self, since: datetime) -> int:
        """Active subscriptions with last_notified strictly after since."""
        ...

    async def preference_totals(self) -> Dict[str, int]:
        """Per-preference count of active subscriptions opted in."""
        ...


class InMemorySubscriptionStore:
    def __init__(self):
        self.subscriptions: Dict[int, Subscription] = {}
        self._ids = count(1)

    async def get_by_email(self, email: str) -> Optional[Subscription]:
        for sub in self.subscriptions.values():
            if sub.email == email:
                return sub.model_copy(deep=True)
        return None

    async def add(self, sub: Subscription) -> Subscription:
        if await self.get_by_email(sub.email) is not None:
            raise DuplicateSubscriptionError(sub.email)
        stored = sub.model_copy(deep=True)
        stored.id = next(self._ids)
        if stored.subscribed_at is None:
            stored.subscribed_at = datetime.utcnow()
        self.subscriptions[stored.id] = stored
        return stored.model_copy(deep=True)

    async def save(self, sub: Subscription) -> Subscription:
        if sub.id not in self.subscriptions:
            raise KeyError(sub.id)
        self.subscriptions[sub.id] = sub.model_copy(deep=True)
        return sub

    async def list_subscriptions(self, active: bool = True, page: int = 1, limit: int = 50):
        rows = [s for s in self.subscriptions.values() if s.is_active == active]
        rows.sort(key=lambda s: s.subscribed_at or datetime.min, reverse=True)
        start = (page - 1) * limit
        return [s.model_copy(deep=True) for s in rows[start:start + limit]], len(rows)

    async def find_active_by_preference(self, preference_key: str) -> List[Subscription]:
        require_preference_key(preference_key)
        return [s.model_copy(deep=True) for s in self.subscriptions.values() if s.wants(preference_key)]

    async def mark_notified(self, subscription_ids: Sequence[int], when: datetime) -> int:
        updated = 0
        for sub_id in set(subscription_ids):
            sub = self.subscriptions.get(sub_id)
            if sub is not None:
                sub.last_notified = when
                updated += 1
        return updated

    async def count_active(self) -> int:
        return sum(1 for s in self.subscriptions.values() if s.is_active)

    async def count_notified_since(self, since: datetime) -> int:
        return sum(
            1 for s in self.subscriptions.values()
            if s.is_active and s.last_notified is not None and s.last_notified > since
        )

    async def preference_totals(self) -> Dict[str, int]:
        totals = empty_preference_totals()
        for sub in self.subscriptions.values():
            if not sub.is_active:
                continue
            for key in PREFERENCE_KEYS:
                if getattr(sub.preferences, key):
                    totals[key] += 1
        return totals

    def clear(self):
        self.subscriptions.clear()
        self._ids = count(1)


# process-wide fallback used while the DB is disabled
in_memory_store = InMemorySubscriptionStore()


def get_subscription_store(session) -> SubscriptionStore:
    """DB-backed store when a session is available, otherwise the in-memory fallback."""
    if session is None or not settings.db_enabled:
        return in_memory_store
    from services.subscription_db_service import SubscriptionDBService

    return SubscriptionDBService(session)
