import logging
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from typing import Optional
from config.settings import settings

logger = logging.getLogger(__name__)

# auto_error=False so a missing token becomes our own 401 instead of FastAPI's 403
security = HTTPBearer(auto_error=False)

async def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
):
    """
    Async JWT auth dependency (HS256, secret from settings).
    Returns {"user_id", "role"} and stores it on request.state for the rate limiter.
    """
    if not creds or not creds.credentials:
        logger.warning("Authentication failed: no bearer token")
        raise HTTPException(status_code=401, detail="Missing Authorization token")

    try:
        payload = jwt.decode(creds.credentials, settings.JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Token decode error: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")

    user = {"user_id": payload.get("sub"), "role": payload.get("role", "user")}
    request.state.user = user
    return user

def require_role(*roles: str):
    """Dependency factory: 403 unless the current user has one of `roles`."""
    async def checker(user: dict = Depends(get_current_user)):
        if user.get("role") not in roles:
            logger.warning("Access denied for user=%s role=%s", user.get("user_id"), user.get("role"))
            raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")
        return user
    return checker

require_admin = require_role("admin")
