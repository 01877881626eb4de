"""
Database engine and session factory.

The list endpoint fans out several read queries at once, and an
``AsyncSession`` must never be shared between concurrent tasks. Repositories
therefore receive the *session factory* (via ``get_session_factory``) and
open one short-lived session per query.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fundscreener.core.config import settings

if settings.USE_SQLITE and not settings.SQLITE_PATH:
    # StaticPool forces every checkout onto the SAME in-memory database;
    # without it each connection would see its own empty database.
    from sqlalchemy.pool import StaticPool

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
elif settings.USE_SQLITE:
    engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)
else:
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Issues a lightweight SELECT 1 before handing out a connection
    )

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    # Loaded rows are serialised after the session closes; keep attributes loaded.
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the process-wide session factory."""
    return AsyncSessionLocal
