import structlog
from fastapi import Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .settings import DATABASE_URL, SQL_ECHO

logger = structlog.get_logger(__name__)

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


class DatabaseHealth:
    """Readiness capability for routes that need the database.

    Owned by the application and handed to routes through ``get_db_health``
    so that nothing reads a process-wide "connected" flag directly.
    """

    def __init__(self, bind: AsyncEngine):
        self.bind = bind
        self.ready = False
        self.last_error: str | None = None

    async def ping(self) -> bool:
        try:
            async with self.bind.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            self.ready = False
            self.last_error = str(e)
            logger.warning("database_unreachable", error=self.last_error)
            return False
        self.ready = True
        self.last_error = None
        return True

    def snapshot(self) -> dict:
        return {
            "database": "connected" if self.ready else "disconnected",
            "error": self.last_error,
        }


db_health = DatabaseHealth(engine)


def get_db_health() -> DatabaseHealth:
    return db_health


async def require_database(health: DatabaseHealth = Depends(get_db_health)) -> DatabaseHealth:
    """Rejects the request with 503 while the database is unreachable."""
    if not health.ready and not await health.ping():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not connected. Please configure the database connection.",
        )
    return health
