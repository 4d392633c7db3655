"""
Database session configuration
Async PostgreSQL (asyncpg) through SQLAlchemy 2.0
"""
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

# Priority: DB_URL (full URL) > DB_USER/DB_PASSWORD/DB_HOST/DB_PORT/DB_NAME
DB_URL = os.getenv("DB_URL")

if not DB_URL:
    db_user = os.getenv("DB_USER", "spendos")
    db_password = os.getenv("DB_PASSWORD", "spendos_password")
    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME", "spendos_db")
    DB_URL = f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

ASYNC_DB_URL = DB_URL.replace("postgresql://", "postgresql+asyncpg://")

engine = create_async_engine(
    ASYNC_DB_URL,
    echo=os.getenv("DB_ECHO", "false").lower() == "true",
    pool_pre_ping=True,
    pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
    max_overflow=10
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def get_db():
    """Dependency to get async DB session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def session_scope(session_factory=None):
    """
    Session for work running outside a request (scheduled jobs, chain events)
    Rolls back on error so a failed job leaves no half-applied counters
    """
    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def ping_database(session: AsyncSession) -> bool:
    """Readiness probe: round-trip a trivial query"""
    await session.execute(text("SELECT 1"))
    return True


def from_unix(seconds: int) -> datetime:
    """Unix seconds (chain timestamps) -> naive UTC datetime"""
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc).replace(tzinfo=None)
