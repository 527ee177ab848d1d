"""
AsyncEngine factory.

NullPool because PgBouncer owns connection pooling -- SA should not
maintain its own pool on top.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from services.crew.config import settings


def create_engine() -> AsyncEngine:
    """Create the async engine (asyncpg driver, no SA-side pool)."""
    url = settings.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return create_async_engine(
        url,
        poolclass=NullPool,
        echo=settings.debug and settings.environment == "development",
    )
