"""
Generic async read repository (Data Access Layer).

Unlike a classic per-request repository, this one is built around the
session *factory*: every operation opens its own short-lived
``AsyncSession``. That lets the service run several reads for one request
concurrently with ``asyncio.gather`` without two tasks ever sharing a
session.

Every operation is retried on transient connection errors and routed
through the global ``db_circuit_breaker``, so a database outage turns into
fast 503s instead of piled-up requests waiting on pool timeouts.
"""

import logging
from typing import Any, Awaitable, Callable, Generic, List, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from fundscreener.core.resilience import db_circuit_breaker, retry_with_backoff

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
T = TypeVar("T")


class BaseRepository(Generic[ModelType]):
    """
    Read-only repository for a SQLModel entity.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository reads.
    session_factory : async_sessionmaker
        Factory producing one session per operation.
    """

    def __init__(
        self,
        model: Type[ModelType],
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.model = model
        self._session_factory = session_factory

    # ── Internal helpers ──

    @retry_with_backoff(max_retries=2, base_delay=0.2, max_delay=2.0)
    async def _run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``operation`` in a fresh session, through the circuit breaker."""

        async def _in_session() -> T:
            async with self._session_factory() as session:
                return await operation(session)

        return await db_circuit_breaker.call(_in_session)

    async def _scalars(self, stmt: Any) -> List[Any]:
        async def _execute(session: AsyncSession) -> List[Any]:
            result = await session.execute(stmt)
            return list(result.scalars().all())

        return await self._run(_execute)

    async def _scalar(self, stmt: Any) -> Any:
        async def _execute(session: AsyncSession) -> Any:
            result = await session.execute(stmt)
            return result.scalar_one()

        return await self._run(_execute)

    async def _rows(self, stmt: Any) -> List[Any]:
        async def _execute(session: AsyncSession) -> List[Any]:
            result = await session.execute(stmt)
            return list(result.all())

        return await self._run(_execute)

    # ── Generic reads ──

    async def count_all(self) -> int:
        """Total number of rows, unfiltered (used by the seed script)."""
        return await self._scalar(select(func.count()).select_from(self.model))
