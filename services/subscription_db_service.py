"""
DB-backed subscription store using async SQLAlchemy.

- get_by_email / add / save / list_subscriptions -> subscription management
- find_active_by_preference -> SELECT ... WHERE is_active AND <pref> (matcher)
- mark_notified -> UPDATE ... SET last_notified WHERE id IN (...) (updater)
- count_active / count_notified_since / preference_totals -> stats

Query errors propagate to the caller; writes roll back before re-raising.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.db_models import PREFERENCE_COLUMNS, Subscription as SubscriptionRow
from models.subscription import Preferences, Subscription
from services.preferences import PREFERENCE_KEYS, require_preference_key
from services.subscription_store import DuplicateSubscriptionError
import logging

logger = logging.getLogger(__name__)


class SubscriptionDBService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[Subscription]:
        stmt = select(SubscriptionRow).where(SubscriptionRow.email == email)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return self._to_model(row) if row else None

    async def add(self, sub: Subscription) -> Subscription:
        row = SubscriptionRow(
            email=sub.email,
            is_active=sub.is_active,
            subscribed_at=sub.subscribed_at or datetime.utcnow(),
            last_notified=sub.last_notified,
        )
        self._apply_preferences(row, sub.preferences)
        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError as ie:
            await self.session.rollback()
            logger.info("Duplicate subscription for %s (%s)", sub.email, ie.orig)
            raise DuplicateSubscriptionError(sub.email) from ie
        await self.session.refresh(row)
        return self._to_model(row)

    async def save(self, sub: Subscription) -> Subscription:
        row = await self.session.get(SubscriptionRow, sub.id)
        if row is None:
            raise KeyError(sub.id)
        row.email = sub.email
        row.is_active = sub.is_active
        row.subscribed_at = sub.subscribed_at
        row.last_notified = sub.last_notified
        self._apply_preferences(row, sub.preferences)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(row)
        return self._to_model(row)

    async def list_subscriptions(
        self, active: bool = True, page: int = 1, limit: int = 50
    ) -> Tuple[List[Subscription], int]:
        """
        Equivalent to:
        SELECT * FROM subscriptions WHERE is_active=? ORDER BY subscribed_at DESC LIMIT ? OFFSET ?
        """
        stmt = (
            select(SubscriptionRow)
            .where(SubscriptionRow.is_active == active)
            .order_by(SubscriptionRow.subscribed_at.desc(), SubscriptionRow.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        items = [self._to_model(r) for r in result.scalars().all()]
        total = await self._count(SubscriptionRow.is_active == active)
        return items, total

    async def find_active_by_preference(self, preference_key: str) -> List[Subscription]:
        column = self._preference_column(preference_key)
        stmt = (
            select(SubscriptionRow)
            .where(SubscriptionRow.is_active == True)  # noqa: E712
            .where(column == True)  # noqa: E712
            .order_by(SubscriptionRow.id)
        )
        result = await self.session.execute(stmt)
        return [self._to_model(r) for r in result.scalars().all()]

    async def mark_notified(self, subscription_ids: Sequence[int], when: datetime) -> int:
        ids = list(subscription_ids)
        if not ids:
            return 0
        stmt = (
            update(SubscriptionRow)
            .where(SubscriptionRow.id.in_(ids))
            .values(last_notified=when)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return result.rowcount

    async def count_active(self) -> int:
        return await self._count(SubscriptionRow.is_active == True)  # noqa: E712

    async def count_notified_since(self, since: datetime) -> int:
        return await self._count(
            SubscriptionRow.is_active == True,  # noqa: E712
            SubscriptionRow.last_notified > since,
        )

    async def preference_totals(self) -> Dict[str, int]:
        """
        Equivalent to:
        SELECT SUM(CASE WHEN pg_hostels THEN 1 ELSE 0 END), ... FROM subscriptions WHERE is_active
        """
        columns = [
            func.coalesce(
                func.sum(case((self._preference_column(key) == True, 1), else_=0)), 0  # noqa: E712
            ).label(key)
            for key in PREFERENCE_KEYS
        ]
        stmt = select(*columns).where(SubscriptionRow.is_active == True)  # noqa: E712
        result = await self.session.execute(stmt)
        row = result.one()
        return {key: int(getattr(row, key) or 0) for key in PREFERENCE_KEYS}

    async def _count(self, *conditions) -> int:
        stmt = select(func.count()).select_from(SubscriptionRow).where(*conditions)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    def _preference_column(preference_key: str):
        require_preference_key(preference_key)
        return getattr(SubscriptionRow, PREFERENCE_COLUMNS[preference_key])

    @staticmethod
    def _apply_preferences(row: SubscriptionRow, preferences: Preferences) -> None:
        for key, column in PREFERENCE_COLUMNS.items():
            setattr(row, column, getattr(preferences, key))

    @staticmethod
    def _to_model(row: SubscriptionRow) -> Subscription:
        """Convert ORM row to the Pydantic Subscription model."""
        return Subscription(
            id=row.id,
            email=row.email,
            is_active=row.is_active,
            subscribed_at=row.subscribed_at,
            last_notified=row.last_notified,
            preferences=Preferences(**{
                key: bool(getattr(row, column)) for key, column in PREFERENCE_COLUMNS.items()
            }),
        )
