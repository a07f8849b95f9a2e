import os
import sys
import tempfile
from pathlib import Path

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `services.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Settings are read at import time, so point them at a throwaway SQLite DB first.
_DB_DIR = tempfile.mkdtemp(prefix="listings-notify-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["USE_DB"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_CALLS"] = "10000"
os.environ["DEBUG"] = "false"
os.environ["NOTIFICATION_CHANNEL"] = "log"


from core import db as core_db
from main import app
from models import db_models  # noqa: F401
from services.notification_service import notification_service
from services.subscription_store import InMemorySubscriptionStore


@pytest_asyncio.fixture()
async def db_tables():
    """Fresh schema per test; the engine is disposed so no connection outlives its event loop."""
    async with core_db.engine.begin() as conn:
        await conn.run_sync(core_db.Base.metadata.create_all)
    yield
    async with core_db.engine.begin() as conn:
        await conn.run_sync(core_db.Base.metadata.drop_all)
    await core_db.engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_tables):
    async with core_db.async_session_maker() as session:
        yield session


@pytest_asyncio.fixture()
async def client(db_tables):
    """Async test client for the API, backed by the SQLite test DB."""
    notification_service.sent_notifications.clear()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture()
def memory_store():
    return InMemorySubscriptionStore()


def make_token(user_id: str = "admin1", role: str = "admin") -> str:
    return jwt.encode({"sub": user_id, "role": role}, "test-secret", algorithm="HS256")


@pytest.fixture()
def admin_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture()
def user_headers():
    return {"Authorization": f"Bearer {make_token('user1', 'user')}"}
