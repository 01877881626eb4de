"""
Mutual fund service — business logic for the screener endpoints.

``list_funds`` is the heart of the service: one validated query fans out
into seven independent reads (page, total count, four facet counts, numeric
ranges) that run concurrently, and the results are assembled into a single
response envelope.

Caching:
    Assembled responses are cached under ``mutual_funds:`` keys derived from
    the canonical query, so repeated screens skip the database entirely.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Tuple

from fundscreener.core.cache import cache
from fundscreener.core.config import settings
from fundscreener.core.exceptions import NotFoundException
from fundscreener.repositories.filters import FACET_COLUMNS, FundFilter, order_by_clauses
from fundscreener.repositories.mutual_fund_repo import MutualFundRepository
from fundscreener.schemas.mutual_fund import (
    FacetBucket,
    Facets,
    FundListQuery,
    FundListResponse,
    MutualFundResponse,
    Pagination,
    RangeBounds,
    Ranges,
    SortSpec,
)

logger = logging.getLogger(__name__)


class MutualFundService:
    """Read-side operations over :class:`MutualFund`."""

    CACHE_PREFIX = "mutual_funds:"
    FACET_DIMENSIONS = tuple(FACET_COLUMNS)

    def __init__(self, fund_repo: MutualFundRepository):
        self._repo = fund_repo

    # ── Queries ──

    async def list_funds(self, query: FundListQuery) -> FundListResponse:
        """Return one page of funds plus echoed filters, pagination, facets and ranges."""
        cache_key = f"{self.CACHE_PREFIX}list:{query.fingerprint()}"
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        fund_filter = FundFilter.from_query(query)
        facet_reads = [
            self._repo.facet_counts(
                dimension, fund_filter.without(dimension), limit=settings.FACET_LIMIT
            )
            for dimension in self.FACET_DIMENSIONS
        ]

        try:
            funds, total, ranges, *facet_results = await asyncio.wait_for(
                asyncio.gather(
                    self._repo.search(
                        fund_filter,
                        order_by_clauses(query.sort_by, query.sort_order),
                        offset=query.offset,
                        limit=query.page_size,
                    ),
                    self._repo.count(fund_filter),
                    self._repo.range_stats(fund_filter),
                    *facet_reads,
                ),
                timeout=settings.QUERY_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Fund list queries exceeded %.1fs (filters: %s)",
                settings.QUERY_TIMEOUT_SECONDS,
                fund_filter,
            )
            raise

        response = FundListResponse(
            data=[MutualFundResponse.model_validate(fund) for fund in funds],
            filters=query.applied_filters(),
            sort=SortSpec(by=query.sort_by, order=query.sort_order),
            pagination=Pagination.build(query.page, query.page_size, total),
            facets=Facets(
                **{
                    dimension: _to_buckets(rows)
                    for dimension, rows in zip(self.FACET_DIMENSIONS, facet_results)
                }
            ),
            ranges=_to_ranges(ranges),
        )
        cache.set(cache_key, response)
        logger.info(
            "Listed %d of %d funds (page %d)",
            len(response.data),
            total,
            query.page,
            extra={
                "total": total,
                "page": query.page,
                "page_size": query.page_size,
                "filters": response.filters,
            },
        )
        return response

    async def get_fund(self, scheme_code: str) -> MutualFundResponse:
        """
        Retrieve a single fund by scheme code (cache-backed).

        Raises :class:`NotFoundException` if no such scheme exists.
        """
        cache_key = f"{self.CACHE_PREFIX}{scheme_code}"
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        fund = await self._repo.get_by_scheme_code(scheme_code)
        if fund is None:
            raise NotFoundException("Mutual fund", scheme_code, field="scheme_code")
        response = MutualFundResponse.model_validate(fund)
        cache.set(cache_key, response)
        return response


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_float(value: Any) -> Any:
    return float(value) if value is not None else None


def _to_buckets(rows: List[Tuple[Any, int]]) -> List[FacetBucket]:
    return [FacetBucket(value=str(_plain(value)), count=count) for value, count in rows if value is not None]


def _to_ranges(stats: Dict[str, Tuple[Any, Any]]) -> Ranges:
    return Ranges(
        **{
            name: RangeBounds(min=_to_float(low), max=_to_float(high))
            for name, (low, high) in stats.items()
        }
    )
