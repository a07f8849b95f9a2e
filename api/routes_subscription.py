# api/routes_subscription.py
from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from core.db import get_db_session
from core.response import ok
from models.schemas import EmailRequest, PreferencesUpdate
from services.subscription_service import subscription_service
from services.subscription_store import get_subscription_store

router = APIRouter()

def _respond(result: dict, response: Response):
    """Turn a service result dict into the envelope (or an HTTP error)."""
    status_code = result.pop("status_code", 200)
    if status_code >= 400:
        raise HTTPException(status_code=status_code, detail=result.get("error", "Request failed"))
    response.status_code = status_code
    return ok(result)

@router.post("/subscribe")
async def subscribe(req: EmailRequest, response: Response, session: AsyncSession = Depends(get_db_session)):
    """Subscribe an email to new-listing and offer notifications (or reactivate it)."""
    store = get_subscription_store(session)
    result = await subscription_service.subscribe(store, req.email, session=session)
    return _respond(result, response)

@router.post("/unsubscribe")
async def unsubscribe(req: EmailRequest, response: Response, session: AsyncSession = Depends(get_db_session)):
    store = get_subscription_store(session)
    result = await subscription_service.unsubscribe(store, req.email, session=session)
    return _respond(result, response)

@router.get("/status")
async def status(response: Response, email: str = "", session: AsyncSession = Depends(get_db_session)):
    store = get_subscription_store(session)
    result = await subscription_service.get_status(store, email)
    return _respond(result, response)

@router.put("/preferences")
async def update_preferences(req: PreferencesUpdate, response: Response, session: AsyncSession = Depends(get_db_session)):
    store = get_subscription_store(session)
    result = await subscription_service.update_preferences(store, req.email, req.preferences, session=session)
    return _respond(result, response)
