"""
Main FastAPI application (entrypoint).

Responsibilities:
- Wire API routers (public subscription / admin)
- Register centralized exception handlers
- Provide middleware: request-id logging, rate limiting of public subscription endpoints
- Add health / readiness endpoints
- Create DB tables on startup when the DB is enabled
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import uvicorn

from api import routes_subscription, routes_admin
from config.settings import settings
from core.exception_handlers import register_exception_handlers
from core.response import ok, error
from core.logging import configure_logging, request_logging_middleware
from core.rate_limiter import RateLimiterMiddleware

# DB scaffolding (async SQLAlchemy); importing db_models registers the tables
from core.db import engine, Base
from models import db_models  # noqa: F401

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create DB tables on startup (development convenience; there are no migrations)."""
    if engine is not None:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            # Do not crash the process for a missing DB during local dev
            logger.warning("DB initialization failed on startup: %s", e)
    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION, lifespan=lifespan)

# CORS - adjust origins for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes_subscription.router, prefix="/api/subscription", tags=["subscription"])
app.include_router(routes_admin.router, prefix="/api/admin", tags=["admin"])

register_exception_handlers(app)

# Request logging middleware (adds X-Request-ID header and logs)
app.middleware("http")(request_logging_middleware)

# Public subscribe/unsubscribe endpoints are rate limited per client IP
app.add_middleware(
    RateLimiterMiddleware,
    calls=settings.RATE_LIMIT_CALLS,
    per_seconds=settings.RATE_LIMIT_PERIOD,
    path_prefix="/api/subscription",
)

@app.get("/health")
async def health():
    """Simple health endpoint used by load balancers and orchestrators."""
    return ok({"status": "ok"})

@app.get("/ready")
async def ready():
    """Readiness: check DB connectivity if configured."""
    try:
        if engine is not None:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        return ok({"ready": True, "db": engine is not None})
    except Exception as e:
        logger.warning("Readiness check failed: %s", e)
        return JSONResponse(status_code=503, content=error(code="db_unreachable", message="DB unavailable"))

if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with workers.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
