"""
Query construction for the mutual fund list endpoint.

``FundFilter`` turns a validated :class:`FundListQuery` into SQLAlchemy
boolean clauses, one entry per *dimension* (``category``, ``nav``,
``search`` ...). Keeping the clauses keyed makes the filter composable: the
facet queries reuse the same filter with their own dimension removed via
:meth:`FundFilter.without`.

User-supplied text never reaches SQL as a pattern: search tokens are passed
through :func:`escape_like` and bound as parameters.
"""

import re
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from fundscreener.core.config import settings
from fundscreener.models.mutual_fund import MutualFund
from fundscreener.schemas.mutual_fund import FundListQuery, SortField, SortOrder

LIKE_ESCAPE = "\\"

# Separators between search tokens. ``%``, ``_``, ``&`` and ``.`` are kept so
# queries like "S&P" or "100%" are matched literally.
_TOKEN_SPLIT = re.compile(r"[\s,;:/|()\[\]{}\"'`+\-]+")

SEARCH_COLUMNS = (
    MutualFund.scheme_name,
    MutualFund.fund_house,
    MutualFund.category,
    MutualFund.sub_category,
    MutualFund.scheme_code,
)

# dimension -> column for "value IN (...)" filters
MULTI_VALUE_FILTERS = {
    "category": MutualFund.category,
    "sub_category": MutualFund.sub_category,
    "fund_house": MutualFund.fund_house,
    "risk_level": MutualFund.risk_level,
    "plan_type": MutualFund.plan_type,
}

# (dimension, lower-bound param, upper-bound param, column, column is DECIMAL)
RANGE_FILTERS: Tuple[Tuple[str, Optional[str], Optional[str], Any, bool], ...] = (
    ("nav", "min_nav", "max_nav", MutualFund.nav, True),
    ("aum", "min_aum", "max_aum", MutualFund.aum_crore, True),
    ("expense_ratio", "min_expense_ratio", "max_expense_ratio", MutualFund.expense_ratio, True),
    ("return_1y", "min_return_1y", None, MutualFund.return_1y, False),
    ("return_3y", "min_return_3y", None, MutualFund.return_3y, False),
    ("return_5y", "min_return_5y", None, MutualFund.return_5y, False),
    ("rating", "min_rating", None, MutualFund.rating, False),
)

SORT_COLUMNS = {
    SortField.SCHEME_NAME: MutualFund.scheme_name,
    SortField.NAV: MutualFund.nav,
    SortField.AUM: MutualFund.aum_crore,
    SortField.EXPENSE_RATIO: MutualFund.expense_ratio,
    SortField.RETURN_1Y: MutualFund.return_1y,
    SortField.RETURN_3Y: MutualFund.return_3y,
    SortField.RETURN_5Y: MutualFund.return_5y,
    SortField.RATING: MutualFund.rating,
    SortField.LAUNCH_DATE: MutualFund.launch_date,
}

FACET_COLUMNS = {
    "category": MutualFund.category,
    "fund_house": MutualFund.fund_house,
    "risk_level": MutualFund.risk_level,
    "plan_type": MutualFund.plan_type,
}


def escape_like(term: str, escape: str = LIKE_ESCAPE) -> str:
    """Escape LIKE wildcards so ``term`` matches literally."""
    return (
        term.replace(escape, escape * 2)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def tokenize_search(text: Optional[str], max_tokens: int = settings.MAX_SEARCH_TOKENS) -> List[str]:
    """
    Split free text into lower-cased, de-duplicated search tokens.

    >>> tokenize_search("HDFC  Flexi-Cap, hdfc")
    ['hdfc', 'flexi', 'cap']
    """
    if not text:
        return []
    tokens: List[str] = []
    for token in _TOKEN_SPLIT.split(text.lower()):
        if token and token not in tokens:
            tokens.append(token)
            if len(tokens) == max_tokens:
                break
    return tokens


def search_clause(text: Optional[str]) -> Optional[ColumnElement]:
    """
    Fuzzy search: every token must appear (case-insensitively) somewhere in
    at least one of :data:`SEARCH_COLUMNS`.
    """
    tokens = tokenize_search(text)
    if not tokens:
        return None
    per_token = [
        or_(
            *(
                column.ilike(f"%{escape_like(token)}%", escape=LIKE_ESCAPE)
                for column in SEARCH_COLUMNS
            )
        )
        for token in tokens
    ]
    return and_(*per_token)


def order_by_clauses(sort_by: SortField, sort_order: SortOrder) -> List[Any]:
    """ORDER BY for a list request; NULLs last, primary key as final tiebreaker."""
    column = SORT_COLUMNS[sort_by]
    primary = column.asc() if sort_order == SortOrder.ASC else column.desc()
    return [primary.nulls_last(), MutualFund.id.asc()]


class FundFilter:
    """Immutable mapping of dimension -> SQL clause, combined with AND."""

    __slots__ = ("_clauses",)

    def __init__(self, clauses: Optional[Mapping[str, ColumnElement]] = None):
        self._clauses: Dict[str, ColumnElement] = dict(clauses or {})

    @classmethod
    def from_query(cls, query: FundListQuery) -> "FundFilter":
        clauses: Dict[str, ColumnElement] = {}

        search = search_clause(query.search)
        if search is not None:
            clauses["search"] = search

        for dimension, column in MULTI_VALUE_FILTERS.items():
            values = getattr(query, dimension)
            if values:
                clauses[dimension] = column.in_(values)

        for dimension, low_name, high_name, column, is_decimal in RANGE_FILTERS:
            bounds = []
            low = getattr(query, low_name) if low_name else None
            high = getattr(query, high_name) if high_name else None
            if low is not None:
                bounds.append(column >= (Decimal(str(low)) if is_decimal else low))
            if high is not None:
                bounds.append(column <= (Decimal(str(high)) if is_decimal else high))
            if bounds:
                clauses[dimension] = and_(*bounds) if len(bounds) > 1 else bounds[0]

        if not query.include_inactive:
            clauses["is_active"] = MutualFund.is_active.is_(True)

        return cls(clauses)

    @property
    def dimensions(self) -> Tuple[str, ...]:
        return tuple(self._clauses)

    def where(self, dimension: str, clause: ColumnElement) -> "FundFilter":
        """Return a copy with ``clause`` ANDed onto ``dimension``."""
        merged = dict(self._clauses)
        existing = merged.get(dimension)
        merged[dimension] = clause if existing is None else and_(existing, clause)
        return FundFilter(merged)

    def without(self, *dimensions: str) -> "FundFilter":
        return FundFilter({k: v for k, v in self._clauses.items() if k not in dimensions})

    def and_(self, other: "FundFilter") -> "FundFilter":
        combined = FundFilter(self._clauses)
        for dimension, clause in other._clauses.items():
            combined = combined.where(dimension, clause)
        return combined

    def clauses(self) -> List[ColumnElement]:
        return list(self._clauses.values())

    def apply(self, stmt: Any) -> Any:
        """Add this filter's WHERE clauses to a SELECT."""
        clauses = self.clauses()
        return stmt.where(*clauses) if clauses else stmt

    def __contains__(self, dimension: object) -> bool:
        return dimension in self._clauses

    def __len__(self) -> int:
        return len(self._clauses)

    def __iter__(self) -> Iterator[str]:
        return iter(self._clauses)

    def __repr__(self) -> str:
        return f"<FundFilter {', '.join(self._clauses) or 'all'}>"
