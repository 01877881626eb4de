"""
Pydantic schemas for the mutual fund list / detail endpoints.

``FundListQuery`` is bound to the query string with ``Annotated[FundListQuery,
Query()]``, so FastAPI validates every parameter against it (unknown keys
included) and any failure becomes a 400 through the global handler.
"""

import json
import math
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from fundscreener.core.config import settings
from fundscreener.models.mutual_fund import PlanType, RiskLevel


class SortField(str, Enum):
    """Columns a list request may be sorted by."""

    SCHEME_NAME = "scheme_name"
    NAV = "nav"
    AUM = "aum"
    EXPENSE_RATIO = "expense_ratio"
    RETURN_1Y = "return_1y"
    RETURN_3Y = "return_3y"
    RETURN_5Y = "return_5y"
    RATING = "rating"
    LAUNCH_DATE = "launch_date"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# (lower bound, upper bound) pairs validated as min <= max.
RANGE_PAIRS = (
    ("min_nav", "max_nav"),
    ("min_aum", "max_aum"),
    ("min_expense_ratio", "max_expense_ratio"),
)

_PAGING_FIELDS = {"page", "page_size", "sort_by", "sort_order"}


def _split_multi(value: Any, enum_cls: Optional[Type[Enum]] = None) -> Optional[List[Any]]:
    """
    Normalise a multi-valued parameter.

    Accepts a single string, repeated parameters, or comma-separated values
    (``?category=Equity,Debt&category=Hybrid``). Values are stripped, empty
    ones dropped and duplicates removed in order. Enum values are matched
    case-insensitively; anything unmatched is left for pydantic to reject.
    """
    if value is None:
        return None
    if isinstance(value, (str, Enum)):
        value = [value]

    lookup = {m.value.lower(): m.value for m in enum_cls} if enum_cls else {}
    result: List[Any] = []
    for item in value:
        parts = item.split(",") if isinstance(item, str) and not isinstance(item, Enum) else [item]
        for part in parts:
            if isinstance(part, str) and not isinstance(part, Enum):
                part = part.strip()
                if not part:
                    continue
                part = lookup.get(part.lower(), part)
            if part not in result:
                result.append(part)
    return result or None


class FundListQuery(BaseModel):
    """Validated query parameters of ``GET /mutual-funds``."""

    # NaN and infinity would bind as NULL or match everything in SQL.
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    search: Optional[str] = Field(
        default=None,
        max_length=settings.MAX_SEARCH_LENGTH,
        description="Fuzzy search over scheme name, fund house, category and scheme code",
        examples=["hdfc flexi"],
    )

    category: Optional[List[str]] = Field(default=None, examples=[["Equity", "Hybrid"]])
    sub_category: Optional[List[str]] = Field(default=None, examples=[["Large Cap"]])
    fund_house: Optional[List[str]] = Field(default=None, examples=[["HDFC Mutual Fund"]])
    risk_level: Optional[List[RiskLevel]] = Field(default=None)
    plan_type: Optional[List[PlanType]] = Field(default=None)

    min_nav: Optional[float] = Field(default=None, ge=0)
    max_nav: Optional[float] = Field(default=None, ge=0)
    min_aum: Optional[float] = Field(default=None, ge=0, description="Crore")
    max_aum: Optional[float] = Field(default=None, ge=0, description="Crore")
    min_expense_ratio: Optional[float] = Field(default=None, ge=0)
    max_expense_ratio: Optional[float] = Field(default=None, ge=0)
    min_return_1y: Optional[float] = None
    min_return_3y: Optional[float] = None
    min_return_5y: Optional[float] = None
    min_rating: Optional[int] = Field(default=None, ge=1, le=5)

    include_inactive: bool = False

    sort_by: SortField = SortField.AUM
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, description=f"Clamped to [1, {settings.MAX_PAGE}]")
    page_size: int = Field(
        default=settings.DEFAULT_PAGE_SIZE,
        description=f"Clamped to [1, {settings.MAX_PAGE_SIZE}]",
    )

    @field_validator("search", mode="before")
    @classmethod
    def strip_search(cls, v: Any) -> Any:
        """Blank search strings mean "no search"."""
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("category", "sub_category", "fund_house", mode="before")
    @classmethod
    def split_text_values(cls, v: Any) -> Any:
        return _split_multi(v)

    @field_validator("risk_level", mode="before")
    @classmethod
    def split_risk_levels(cls, v: Any) -> Any:
        return _split_multi(v, RiskLevel)

    @field_validator("plan_type", mode="before")
    @classmethod
    def split_plan_types(cls, v: Any) -> Any:
        return _split_multi(v, PlanType)

    @field_validator("page")
    @classmethod
    def clamp_page(cls, v: int) -> int:
        return min(max(v, 1), settings.MAX_PAGE)

    @field_validator("page_size")
    @classmethod
    def clamp_page_size(cls, v: int) -> int:
        return min(max(v, 1), settings.MAX_PAGE_SIZE)

    @model_validator(mode="after")
    def check_ranges(self) -> "FundListQuery":
        for low_name, high_name in RANGE_PAIRS:
            low, high = getattr(self, low_name), getattr(self, high_name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{low_name} ({low}) must not exceed {high_name} ({high})")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def applied_filters(self) -> Dict[str, Any]:
        """Filters actually in effect, for echoing back to the client."""
        filters = self.model_dump(mode="json", exclude_none=True, exclude=_PAGING_FIELDS)
        if not self.include_inactive:
            filters.pop("include_inactive", None)
        return filters

    def fingerprint(self) -> str:
        """Canonical cache key; multi-valued parameters compare as sets."""
        dumped = {
            key: sorted(value) if isinstance(value, list) else value
            for key, value in self.model_dump(mode="json").items()
        }
        return json.dumps(dumped, sort_keys=True, separators=(",", ":"))


# ────────────────────────────────────────────────────────────────────────────
# Response schemas
# ────────────────────────────────────────────────────────────────────────────


class MutualFundResponse(BaseModel):
    """A single fund as returned by the list and detail endpoints."""

    scheme_code: str = Field(..., examples=["119551"])
    scheme_name: str = Field(..., examples=["HDFC Flexi Cap Fund - Direct Plan - Growth"])
    fund_house: str
    category: str
    sub_category: str
    plan_type: PlanType
    risk_level: RiskLevel
    nav: Decimal
    aum_crore: Decimal
    expense_ratio: Decimal
    return_1y: Optional[float] = None
    return_3y: Optional[float] = None
    return_5y: Optional[float] = None
    rating: Optional[int] = None
    min_sip_amount: Decimal
    launch_date: date
    is_active: bool
    updated_at: datetime

    @field_serializer("nav", "aum_crore", "expense_ratio", "min_sip_amount")
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Emit DECIMAL columns as JSON numbers instead of pydantic's default strings."""
        return float(v)

    model_config = ConfigDict(from_attributes=True)


class FacetBucket(BaseModel):
    value: str
    count: int


class Facets(BaseModel):
    """
    Value counts per dimension.

    Each dimension is counted with every active filter *except its own*, so
    a client that selected ``category=Equity`` still sees how many funds the
    other categories would return.
    """

    category: List[FacetBucket] = Field(default_factory=list)
    fund_house: List[FacetBucket] = Field(default_factory=list)
    risk_level: List[FacetBucket] = Field(default_factory=list)
    plan_type: List[FacetBucket] = Field(default_factory=list)


class RangeBounds(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class Ranges(BaseModel):
    """Min / max of numeric columns across the full filtered result set."""

    nav: RangeBounds = Field(default_factory=RangeBounds)
    aum: RangeBounds = Field(default_factory=RangeBounds)
    expense_ratio: RangeBounds = Field(default_factory=RangeBounds)


class SortSpec(BaseModel):
    by: SortField
    order: SortOrder


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / page_size) if total else 0
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class FundListResponse(BaseModel):
    """Envelope returned by ``GET /mutual-funds``."""

    data: List[MutualFundResponse]
    filters: Dict[str, Any] = Field(
        default_factory=dict,
        description="The filters that were applied, after normalisation",
        examples=[{"category": ["Equity"], "min_rating": 4}],
    )
    sort: SortSpec
    pagination: Pagination
    facets: Facets
    ranges: Ranges
