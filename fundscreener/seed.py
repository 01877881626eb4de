"""
Seed script — loads sample mutual funds for development / demo.

Usage:
    python -m fundscreener.seed

With ``USE_SQLITE=true`` and no ``SQLITE_PATH`` the database lives in
memory, so set ``SEED_DEMO_DATA=true`` instead and the app seeds itself on
startup.

The script is idempotent: it does nothing if the table already has rows.
"""

import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from fundscreener.core.cache import cache
from fundscreener.db.session import AsyncSessionLocal, engine
from fundscreener.models.mutual_fund import MutualFund, PlanType, RiskLevel
from fundscreener.repositories.mutual_fund_repo import MutualFundRepository
from fundscreener.services.mutual_fund_service import MutualFundService

logger = logging.getLogger(__name__)

# scheme_code, scheme_name, fund_house, category, sub_category, plan, risk,
# nav, aum (crore), expense ratio, 1y, 3y, 5y, rating, min SIP, launch date
_ROWS = [
    ("119551", "HDFC Flexi Cap Fund - Direct Plan - Growth", "HDFC Mutual Fund",
     "Equity", "Flexi Cap", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "1893.4120", "64123.55", "0.77", 24.1, 22.8, 21.5, 5, "100", date(2013, 1, 1)),
    ("101762", "HDFC Flexi Cap Fund - Regular Plan - Growth", "HDFC Mutual Fund",
     "Equity", "Flexi Cap", PlanType.REGULAR, RiskLevel.VERY_HIGH,
     "1765.2030", "64123.55", "1.44", 23.3, 22.0, 20.7, 4, "100", date(1995, 1, 1)),
    ("120503", "Axis Bluechip Fund - Direct Plan - Growth", "Axis Mutual Fund",
     "Equity", "Large Cap", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "62.1100", "33567.10", "0.67", 14.2, 9.8, 13.1, 3, "100", date(2013, 1, 1)),
    ("118989", "Parag Parikh Flexi Cap Fund - Direct Plan - Growth", "PPFAS Mutual Fund",
     "Equity", "Flexi Cap", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "82.9410", "79800.00", "0.63", 26.5, 20.9, 25.3, 5, "1000", date(2013, 5, 24)),
    ("122639", "SBI Small Cap Fund - Direct Plan - Growth", "SBI Mutual Fund",
     "Equity", "Small Cap", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "188.7750", "31520.44", "0.68", 21.9, 19.4, 28.6, 4, "500", date(2013, 1, 1)),
    ("147622", "Nippon India Nifty 50 Index Fund - Direct Plan - Growth", "Nippon India Mutual Fund",
     "Index", "Large Cap Index", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "38.0420", "1820.12", "0.20", 15.7, 13.2, 16.0, None, "100", date(2020, 9, 28)),
    ("118834", "ICICI Prudential Balanced Advantage Fund - Direct Plan - Growth",
     "ICICI Prudential Mutual Fund", "Hybrid", "Dynamic Asset Allocation",
     PlanType.DIRECT, RiskLevel.MODERATELY_HIGH,
     "76.3300", "58900.75", "0.86", 14.9, 13.6, 14.8, 4, "100", date(2013, 1, 1)),
    ("119063", "HDFC Balanced Advantage Fund - Direct Plan - Growth", "HDFC Mutual Fund",
     "Hybrid", "Dynamic Asset Allocation", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "512.6640", "90375.30", "0.77", 19.2, 21.7, 20.4, 4, "100", date(2013, 1, 1)),
    ("119800", "SBI Liquid Fund - Direct Plan - Growth", "SBI Mutual Fund",
     "Debt", "Liquid", PlanType.DIRECT, RiskLevel.LOW_TO_MODERATE,
     "4012.5510", "63100.00", "0.20", 7.4, 6.5, 5.4, 3, "500", date(2013, 1, 1)),
    ("120197", "Axis Liquid Fund - Direct Plan - Growth", "Axis Mutual Fund",
     "Debt", "Liquid", PlanType.DIRECT, RiskLevel.MODERATE,
     "2811.0900", "32150.20", "0.17", 7.4, 6.6, 5.5, 4, "500", date(2013, 1, 1)),
    ("118560", "Aditya Birla Sun Life Corporate Bond Fund - Direct Plan - Growth",
     "Aditya Birla Sun Life Mutual Fund", "Debt", "Corporate Bond",
     PlanType.DIRECT, RiskLevel.MODERATE,
     "108.2030", "24210.66", "0.34", 8.1, 6.4, 7.0, 4, "1000", date(2013, 1, 1)),
    ("152075", "Kotak Overnight Fund - Direct Plan - Growth", "Kotak Mahindra Mutual Fund",
     "Debt", "Overnight", PlanType.DIRECT, RiskLevel.LOW,
     "1342.7800", "6420.00", "0.08", 6.6, 6.1, 4.9, None, "1000", date(2019, 1, 15)),
    ("120716", "UTI Nifty 50 Index Fund - Direct Plan - Growth", "UTI Mutual Fund",
     "Index", "Large Cap Index", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "162.4450", "19802.35", "0.18", 15.8, 13.3, 16.1, 4, "500", date(2013, 1, 1)),
    ("145552", "Quant Small Cap Fund - Direct Plan - Growth", "Quant Mutual Fund",
     "Equity", "Small Cap", PlanType.DIRECT, RiskLevel.VERY_HIGH,
     "262.3390", "26221.00", "0.64", 28.7, 27.1, 42.3, 5, "1000", date(2013, 1, 1)),
    ("100356", "Franklin India Bluechip Fund - Regular Plan - Growth", "Franklin Templeton Mutual Fund",
     "Equity", "Large Cap", PlanType.REGULAR, RiskLevel.VERY_HIGH,
     "1010.4600", "7650.90", "1.85", 17.6, 12.5, 15.2, 2, "500", date(1993, 12, 1)),
    ("113177", "Reliance Gilt Securities Fund - Regular Plan - Growth", "Nippon India Mutual Fund",
     "Debt", "Gilt", PlanType.REGULAR, RiskLevel.MODERATE,
     "34.5510", "1710.00", "1.37", 8.4, 5.6, 6.9, None, "100", date(2008, 8, 22)),
]

# Merged or wound-up schemes stay in the table but are hidden by default.
_INACTIVE_CODES = {"113177"}


def build_demo_funds() -> List[MutualFund]:
    """Fresh, unattached MutualFund instances for the demo rows."""
    funds = []
    for (code, name, house, category, sub_category, plan, risk, nav, aum, er,
         r1, r3, r5, rating, sip, launched) in _ROWS:
        funds.append(
            MutualFund(
                scheme_code=code,
                scheme_name=name,
                fund_house=house,
                category=category,
                sub_category=sub_category,
                plan_type=plan,
                risk_level=risk,
                nav=Decimal(nav),
                aum_crore=Decimal(aum),
                expense_ratio=Decimal(er),
                return_1y=r1,
                return_3y=r3,
                return_5y=r5,
                rating=rating,
                min_sip_amount=Decimal(sip),
                launch_date=launched,
                is_active=code not in _INACTIVE_CODES,
            )
        )
    return funds


async def seed(
    bind: Optional[AsyncEngine] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Create tables and insert the demo funds if the table is empty; return rows inserted."""
    bind = bind or engine
    session_factory = session_factory or AsyncSessionLocal

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    existing = await MutualFundRepository(session_factory).count_all()
    if existing:
        logger.info("Database already contains %d funds — skipping seed.", existing)
        return 0

    funds = build_demo_funds()
    async with session_factory() as session:
        session.add_all(funds)
        await session.commit()

    cache.invalidate(MutualFundService.CACHE_PREFIX)
    logger.info("Seeded %d mutual funds", len(funds))
    return len(funds)


if __name__ == "__main__":
    from fundscreener.core.logging import setup_logging

    setup_logging()
    asyncio.run(seed())
