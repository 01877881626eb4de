"""
Mutual fund repository — data-access layer for the ``mutual_funds`` table.

Each method issues exactly one SELECT so the service can fan them out
concurrently for a single list request.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fundscreener.models.mutual_fund import MutualFund
from fundscreener.repositories.base import BaseRepository
from fundscreener.repositories.filters import FACET_COLUMNS, FundFilter


class MutualFundRepository(BaseRepository[MutualFund]):
    """Concrete repository for :class:`MutualFund` entities."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__(MutualFund, session_factory)

    async def search(
        self,
        fund_filter: FundFilter,
        order_by: List[Any],
        offset: int = 0,
        limit: int = 20,
    ) -> List[MutualFund]:
        """Return one page of funds matching ``fund_filter`` in ``order_by`` order."""
        stmt = fund_filter.apply(select(MutualFund)).order_by(*order_by).offset(offset).limit(limit)
        return await self._scalars(stmt)

    async def count(self, fund_filter: FundFilter) -> int:
        stmt = fund_filter.apply(select(func.count()).select_from(MutualFund))
        return await self._scalar(stmt)

    async def facet_counts(
        self, dimension: str, fund_filter: FundFilter, limit: int = 50
    ) -> List[Tuple[Any, int]]:
        """
        Count funds per distinct value of a facet column.

        Buckets are ordered by count (descending) then value, and capped at
        ``limit`` so a long tail of fund houses cannot bloat the response.
        """
        column = FACET_COLUMNS[dimension]
        n = func.count().label("n")
        stmt = (
            fund_filter.apply(select(column, n))
            .group_by(column)
            .order_by(n.desc(), column.asc())
            .limit(limit)
        )
        rows = await self._rows(stmt)
        return [(value, count) for value, count in rows]

    async def range_stats(self, fund_filter: FundFilter) -> Dict[str, Tuple[Any, Any]]:
        """Min / max NAV, AUM and expense ratio over the filtered set."""
        stmt = fund_filter.apply(
            select(
                func.min(MutualFund.nav),
                func.max(MutualFund.nav),
                func.min(MutualFund.aum_crore),
                func.max(MutualFund.aum_crore),
                func.min(MutualFund.expense_ratio),
                func.max(MutualFund.expense_ratio),
            )
        )
        rows = await self._rows(stmt)
        nav_min, nav_max, aum_min, aum_max, er_min, er_max = rows[0]
        return {
            "nav": (nav_min, nav_max),
            "aum": (aum_min, aum_max),
            "expense_ratio": (er_min, er_max),
        }

    async def get_by_scheme_code(self, scheme_code: str) -> Optional[MutualFund]:
        stmt = select(MutualFund).where(MutualFund.scheme_code == scheme_code)
        rows = await self._scalars(stmt.limit(1))
        return rows[0] if rows else None
