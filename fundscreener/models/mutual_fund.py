"""
Mutual fund domain model.

One row per scheme/plan in the ``mutual_funds`` table. The service only
reads this table; rows are loaded by an upstream ingestion job (or the seed
script in development).
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


class PlanType(str, Enum):
    """Distribution plan of a scheme."""

    DIRECT = "Direct"
    REGULAR = "Regular"


class RiskLevel(str, Enum):
    """Riskometer classification, ordered from lowest to highest."""

    LOW = "Low"
    LOW_TO_MODERATE = "Low to Moderate"
    MODERATE = "Moderate"
    MODERATELY_HIGH = "Moderately High"
    HIGH = "High"
    VERY_HIGH = "Very High"


class MutualFund(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for mutual funds.

    Columns used as filters or facets (``fund_house``, ``category``,
    ``risk_level`` ...) are indexed; monetary values use DECIMAL.
    """

    __tablename__ = "mutual_funds"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("nav > 0", name="ck_mutual_funds_nav_positive"),
        CheckConstraint("aum_crore >= 0", name="ck_mutual_funds_aum_non_negative"),
        CheckConstraint("expense_ratio >= 0", name="ck_mutual_funds_expense_ratio_non_negative"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_mutual_funds_rating_range",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    scheme_code: str = Field(index=True, unique=True, max_length=32)
    scheme_name: str = Field(index=True, max_length=255)
    fund_house: str = Field(index=True, max_length=255)
    category: str = Field(index=True, max_length=64)
    sub_category: str = Field(index=True, max_length=128)
    plan_type: PlanType = Field(default=PlanType.DIRECT, index=True)
    risk_level: RiskLevel = Field(index=True)
    nav: Decimal = Field(max_digits=12, decimal_places=4)
    aum_crore: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    expense_ratio: Decimal = Field(max_digits=5, decimal_places=2)
    return_1y: Optional[float] = Field(default=None)
    return_3y: Optional[float] = Field(default=None)
    return_5y: Optional[float] = Field(default=None)
    rating: Optional[int] = Field(default=None)
    min_sip_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    launch_date: date
    is_active: bool = Field(default=True, index=True)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<MutualFund scheme_code={self.scheme_code} name='{self.scheme_name}'>"
