"""
ASGI entry point: ``uvicorn fundscreener.main:app``.

Builds the FastAPI app (middleware, error handlers, the v1 router and
``/health``). At startup it waits for the database, creating tables in
SQLite mode, and optionally loads the demo funds.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlmodel import SQLModel

from fundscreener.api.v1.api import api_router
from fundscreener.core.cache import cache
from fundscreener.core.config import settings
from fundscreener.core.exceptions import add_exception_handlers
from fundscreener.core.logging import setup_logging
from fundscreener.core.resilience import backoff_delays, db_circuit_breaker
from fundscreener.db.session import AsyncSessionLocal, engine
from fundscreener.middleware import RequestIDMiddleware, RequestTimingMiddleware

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "1.0.0"
STARTUP_ATTEMPTS = 5


async def _database_reachable() -> bool:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database unreachable", exc_info=True)
        return False
    return True


async def _wait_for_database() -> bool:
    """
    Retry until the database answers, sleeping 2s, 4s, 8s ... in between.

    PostgreSQL tables belong to the ingestion pipeline; only the SQLite demo
    database gets its schema created here.
    """
    import fundscreener.db.base  # noqa: F401  (registers table metadata)

    delays = backoff_delays(2.0, 30.0, jitter=False)
    for attempt in range(1, STARTUP_ATTEMPTS + 1):
        try:
            async with engine.begin() as conn:
                if settings.USE_SQLITE:
                    await conn.run_sync(SQLModel.metadata.create_all)
                else:
                    await conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            if attempt == STARTUP_ATTEMPTS:
                logger.error("Giving up on the database after %d attempts: %s", attempt, exc)
                return False
            delay = next(delays)
            logger.warning(
                "Database not ready (attempt %d/%d): %s; next try in %.0fs",
                attempt,
                STARTUP_ATTEMPTS,
                exc,
                delay,
            )
            await asyncio.sleep(delay)
    return False


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if await _wait_for_database():
        logger.info("Database ready")
    else:
        # Serve anyway; /health reports "degraded" and reads fail with 503/500.
        logger.error("Starting without a database")

    if settings.SEED_DEMO_DATA:
        from fundscreener.seed import seed

        try:
            await seed()
        except Exception:
            logger.exception("Demo data seeding failed")

    yield

    logger.info("Disposing connection pool")
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=VERSION,
    description=(
        "Filtered, paginated screening of mutual funds with fuzzy search, "
        "facet counts and numeric ranges."
    ),
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Last added runs outermost: CORS, timing, request id, gzip.
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

add_exception_handlers(app)
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["Health"])
async def health_check():
    """Readiness probe: database ping, circuit state and cache counters."""
    db_ok = await _database_reachable()
    return {
        "status": "ok" if db_ok else "degraded",
        "version": VERSION,
        "database": db_ok,
        "circuit_breaker": db_circuit_breaker.get_status(),
        "cache": cache.get_stats(),
    }
