"""
Simple rate limiter middleware (in-memory, sliding window).

- Guards the public subscription endpoints against form spam.
- Not suitable for multi-instance production; use a gateway limiter there.
- Usage: app.add_middleware(RateLimiterMiddleware, calls=120, per_seconds=60, path_prefix="/api/subscription")
"""
import time
import asyncio
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
from fastapi.responses import JSONResponse

from .response import error as resp_error

class RateLimiterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, calls: int = 60, per_seconds: int = 60, path_prefix: str = ""):
        super().__init__(app)
        self.calls = calls
        self.per_seconds = per_seconds
        self.path_prefix = path_prefix
        self._buckets = {}  # key -> [timestamps]
        self._lock = asyncio.Lock()

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client = request.client.host if request.client else "anon"
        key = f"ip:{client}"

        now = time.time()
        async with self._lock:
            window_start = now - self.per_seconds
            timestamps = [ts for ts in self._buckets.get(key, []) if ts > window_start]
            if len(timestamps) >= self.calls:
                retry_after = int(timestamps[0] + self.per_seconds - now) if timestamps else self.per_seconds
                self._buckets[key] = timestamps
                return JSONResponse(
                    status_code=429,
                    content=resp_error(code="rate_limited", message=f"Rate limit exceeded. Retry after {retry_after} seconds"),
                    headers={"Retry-After": str(max(retry_after, 1))},
                )
            timestamps.append(now)
            self._buckets[key] = timestamps
        return await call_next(request)
