from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_admin
from core.db import get_db_session
from core.response import ok, paginated
from models.schemas import NewListingNotification, OfferDetails
from services.activity_logger import list_activities, log_activity
from services.notification_service import notification_service
from services.subscription_service import subscription_service
from services.subscription_store import get_subscription_store

router = APIRouter()


def _client(request: Request):
    ip = request.client.host if request.client else ""
    return ip, request.headers.get("user-agent", "")


@router.get("/subscriptions")
async def all_subscriptions(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    active: bool = True,
    session: AsyncSession = Depends(get_db_session),
    user: dict = Depends(require_admin),
):
    """Admin: paginated subscriptions, newest first."""
    store = get_subscription_store(session)
    result = await subscription_service.list_all(store, active=active, page=page, limit=limit)
    ip, agent = _client(request)
    await log_activity(session, "READ", "SUBSCRIPTION", user_id=user["user_id"],
                       details=f"Retrieved subscriptions list (page {page})", ip_address=ip, user_agent=agent)
    result.pop("status_code", None)
    return ok(result)


@router.post("/notifications/listing")
async def notify_new_listing(
    req: NewListingNotification,
    session: AsyncSession = Depends(get_db_session),
    user: dict = Depends(require_admin),
):
    """
    Admin / listing-creation hook: fan a new listing out to matching subscribers.

    Always 200: a degraded notification is reported in data.success, never as
    an HTTP error, so the listing flow that called us is not affected.
    """
    store = get_subscription_store(session)
    result = await notification_service.notify_new_listing(store, req.property_type, req.property_details)
    return ok(result)


@router.post("/notifications/special-offer")
async def notify_special_offer(
    req: OfferDetails,
    session: AsyncSession = Depends(get_db_session),
    user: dict = Depends(require_admin),
):
    store = get_subscription_store(session)
    result = await notification_service.notify_special_offer(store, req)
    return ok(result)


@router.get("/notifications/stats")
async def notification_stats(session: AsyncSession = Depends(get_db_session), user: dict = Depends(require_admin)):
    store = get_subscription_store(session)
    stats = await notification_service.get_stats(store)
    if stats is None:
        raise HTTPException(status_code=503, detail="Notification stats unavailable")
    return ok(stats)


@router.get("/notifications/recent")
async def recent_notifications(limit: int = Query(20, ge=1, le=100), user: dict = Depends(require_admin)):
    return ok(notification_service.recent_notifications(limit))


@router.get("/activities")
async def activities(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    action: Optional[str] = None,
    resource: Optional[str] = None,
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    session: AsyncSession = Depends(get_db_session),
    user: dict = Depends(require_admin),
):
    """Admin: audit trail, filterable by action/resource/user/date range."""
    if session is None:
        raise HTTPException(status_code=503, detail="Activity log requires the database")
    items, total = await list_activities(
        session, page=page, limit=limit, action=action, resource=resource,
        user_id=user_id, start_date=start_date, end_date=end_date,
    )
    ip, agent = _client(request)
    await log_activity(session, "READ", "ACTIVITY", user_id=user["user_id"],
                       details=f"Retrieved activities list (page {page})", ip_address=ip, user_agent=agent)
    return paginated(items, page, limit, total)
