"""
Audit trail for admin and system actions.

log_activity never raises: a failed audit write is logged and the calling
flow carries on.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.db_models import Activity

logger = logging.getLogger(__name__)

ACTIONS = ("CREATE", "READ", "UPDATE", "DELETE", "LOGIN", "LOGOUT", "SIGNUP", "BOOKING")
STATUSES = ("SUCCESS", "FAILED")


async def log_activity(
    session: Optional[AsyncSession],
    action: str,
    resource: str,
    user_id: Optional[str] = None,
    resource_id: Optional[str] = None,
    details: str = "",
    ip_address: str = "",
    user_agent: str = "",
    status: str = "SUCCESS",
) -> Optional[Activity]:
    logger.info("[activity] user=%s action=%s resource=%s id=%s status=%s %s",
                user_id or "system", action, resource, resource_id, status, details)
    if action not in ACTIONS or status not in STATUSES:
        logger.error("Error logging activity: invalid action=%s status=%s", action, status)
        return None
    if session is None:
        return None

    activity = Activity(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address or "",
        user_agent=(user_agent or "")[:500],
        status=status,
    )
    try:
        session.add(activity)
        await session.commit()
        return activity
    except Exception as e:
        await session.rollback()
        logger.error("Error logging activity: %s", e)
        return None


async def list_activities(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    action: Optional[str] = None,
    resource: Optional[str] = None,
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """Filtered page of activities, newest first, plus the filtered total."""
    conditions = []
    if action:
        conditions.append(Activity.action == action)
    if resource:
        conditions.append(Activity.resource == resource)
    if user_id:
        conditions.append(Activity.user_id == user_id)
    if start_date:
        conditions.append(Activity.created_at >= start_date)
    if end_date:
        conditions.append(Activity.created_at <= end_date)

    stmt = (
        select(Activity)
        .where(*conditions)
        .order_by(Activity.created_at.desc(), Activity.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    items = [_to_dict(a) for a in result.scalars().all()]

    total_stmt = select(func.count()).select_from(Activity).where(*conditions)
    total = (await session.execute(total_stmt)).scalar_one()
    return items, int(total)


def _to_dict(activity: Activity) -> Dict[str, Any]:
    return {
        "id": activity.id,
        "user_id": activity.user_id,
        "action": activity.action,
        "resource": activity.resource,
        "resource_id": activity.resource_id,
        "details": activity.details,
        "ip_address": activity.ip_address,
        "user_agent": activity.user_agent,
        "status": activity.status,
        "created_at": activity.created_at.isoformat() if activity.created_at else None,
    }
