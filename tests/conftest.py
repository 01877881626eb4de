"""
Shared pytest fixtures.

Tests run with ``USE_SQLITE=true``. Service and API tests mock the layer
below them; repository and end-to-end tests use a throw-away SQLite file
seeded with the demo funds, so no external database is needed.
"""

import os

# Must be set before anything imports fundscreener.core.config.
os.environ["USE_SQLITE"] = "true"
os.environ.pop("SQLITE_PATH", None)

import uuid  # noqa: E402
from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Optional  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from fundscreener.core.cache import TTLCache  # noqa: E402
from fundscreener.models.mutual_fund import MutualFund, PlanType, RiskLevel  # noqa: E402

# Demo data facts the repository / end-to-end tests rely on.
ACTIVE_DEMO_FUNDS = 15
ALL_DEMO_FUNDS = 16

FUND_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")


def make_fund(
    *,
    id: uuid.UUID = FUND_ID,
    scheme_code: str = "119551",
    scheme_name: str = "HDFC Flexi Cap Fund - Direct Plan - Growth",
    fund_house: str = "HDFC Mutual Fund",
    category: str = "Equity",
    sub_category: str = "Flexi Cap",
    plan_type: PlanType = PlanType.DIRECT,
    risk_level: RiskLevel = RiskLevel.VERY_HIGH,
    nav: Decimal = Decimal("1893.4120"),
    aum_crore: Decimal = Decimal("64123.55"),
    expense_ratio: Decimal = Decimal("0.77"),
    return_1y: Optional[float] = 24.1,
    return_3y: Optional[float] = 22.8,
    return_5y: Optional[float] = 21.5,
    rating: Optional[int] = 5,
    is_active: bool = True,
) -> MutualFund:
    """Create a MutualFund domain object with sensible test defaults."""
    return MutualFund(
        id=id,
        scheme_code=scheme_code,
        scheme_name=scheme_name,
        fund_house=fund_house,
        category=category,
        sub_category=sub_category,
        plan_type=plan_type,
        risk_level=risk_level,
        nav=nav,
        aum_crore=aum_crore,
        expense_ratio=expense_ratio,
        return_1y=return_1y,
        return_3y=return_3y,
        return_5y=return_5y,
        rating=rating,
        min_sip_amount=Decimal("100"),
        launch_date=date(2013, 1, 1),
        is_active=is_active,
        updated_at=datetime(2026, 10, 16, 18, 30, tzinfo=timezone.utc),
    )


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def fund_repo():
    """Mocked MutualFundRepository."""
    return AsyncMock()


@pytest.fixture()
def test_cache():
    """A fresh TTL cache instance for test isolation."""
    return TTLCache(ttl=30.0, max_size=100, enabled=True)


@pytest.fixture()
def disabled_cache():
    """A disabled TTL cache — all operations are no-ops."""
    return TTLCache(ttl=30.0, max_size=100, enabled=False)


@pytest.fixture(autouse=True)
def _clear_global_cache():
    """Clear the global cache around every test to prevent cross-test pollution."""
    from fundscreener.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _reset_db_circuit_breaker():
    """Start every test with the global database circuit closed."""
    from fundscreener.core.resilience import db_circuit_breaker

    db_circuit_breaker.reset()
    yield


@pytest_asyncio.fixture()
async def session_factory(tmp_path):
    """
    Session factory bound to a fresh SQLite file holding the demo funds.

    A file (not ``:memory:``) is used so the concurrent sessions opened by a
    list request each get their own connection to the same data.
    """
    from fundscreener.seed import seed

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'funds.db'}")
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await seed(bind=engine, session_factory=factory)
    yield factory
    await engine.dispose()
