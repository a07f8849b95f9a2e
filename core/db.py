"""
Async database engine and session management.

Purpose:
- Create SQLAlchemy async engine from DATABASE_URL
- Provide async session factory for dependency injection
- Provide Base declarative class for ORM models

Production notes:
- Use connection pooling with appropriate pool_size and max_overflow
- Schema is created with create_db_schema.py / on startup; there are no migrations
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config.settings import settings
import logging
from typing import AsyncGenerator, Optional

logger = logging.getLogger(__name__)

Base = declarative_base()

# When the DB is disabled, do not create an engine at all.
engine = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None

if settings.db_enabled:
	engine = create_async_engine(
		settings.DATABASE_URL,
		echo=settings.DEBUG,
		future=True,
	)
	async_session_maker = async_sessionmaker(
		engine, expire_on_commit=False, class_=AsyncSession
	)
	logger.info("Async DB engine created for %s", engine.url.render_as_string(hide_password=True))
else:
	logger.warning("Database disabled – using the in-memory subscription store.")

async def get_db_session() -> AsyncGenerator[Optional[AsyncSession], None]:
	"""
	Yield an AsyncSession when DB is enabled; otherwise yield None so callers can
	fall back to the in-memory store.
	"""
	if async_session_maker is None:
		yield None
		return

	async with async_session_maker() as session:
		try:
			yield session
		finally:
			await session.close()
