"""
Mutual fund API endpoints.

- GET /mutual-funds                — filtered, paginated list with facets
- GET /mutual-funds/{scheme_code}  — a single fund
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fundscreener.db.session import get_session_factory
from fundscreener.repositories.mutual_fund_repo import MutualFundRepository
from fundscreener.schemas.common import ErrorResponse, ValidationErrorResponse
from fundscreener.schemas.mutual_fund import (
    FundListQuery,
    FundListResponse,
    MutualFundResponse,
)
from fundscreener.services.mutual_fund_service import MutualFundService

router = APIRouter()


def _get_mutual_fund_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> MutualFundService:
    """Build a MutualFundService wired to the shared session factory."""
    return MutualFundService(MutualFundRepository(session_factory))


@router.get(
    "",
    response_model=FundListResponse,
    summary="Screen mutual funds",
    description=(
        "Filter, search, sort and paginate mutual funds. Multi-valued filters "
        "accept repeated parameters or comma-separated values. ``page_size`` "
        "is clamped to the configured maximum. The response echoes the "
        "applied filters and includes facet counts and numeric ranges."
    ),
    responses={
        400: {"model": ValidationErrorResponse, "description": "Invalid query parameters"},
        503: {"model": ErrorResponse, "description": "Database temporarily unavailable"},
    },
)
async def list_mutual_funds(
    query: Annotated[FundListQuery, Query()],
    service: MutualFundService = Depends(_get_mutual_fund_service),
) -> FundListResponse:
    return await service.list_funds(query)


@router.get(
    "/{scheme_code}",
    response_model=MutualFundResponse,
    summary="Get a mutual fund",
    description="Retrieve a single fund by its scheme code.",
    responses={
        400: {"model": ValidationErrorResponse, "description": "Malformed scheme code"},
        404: {"model": ErrorResponse, "description": "Fund not found"},
    },
)
async def get_mutual_fund(
    scheme_code: str = Path(..., min_length=1, max_length=32, pattern=r"^[A-Za-z0-9_-]+$"),
    service: MutualFundService = Depends(_get_mutual_fund_service),
) -> MutualFundResponse:
    return await service.get_fund(scheme_code)
