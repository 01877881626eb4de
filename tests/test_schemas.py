"""
Unit tests for the mutual fund schemas.

Tests cover:
- FundListQuery defaults, multi-value splitting, enum normalisation
- Pagination clamping and offset
- Range validation (min > max) and per-field bounds
- Unknown parameters are rejected
- applied_filters() echo and fingerprint() canonical form
- MutualFundResponse Decimal → float serialisation
- Pagination.build edge cases
"""

import pytest
from pydantic import ValidationError

from fundscreener.core.config import settings
from fundscreener.models.mutual_fund import PlanType, RiskLevel
from fundscreener.schemas.mutual_fund import (
    FundListQuery,
    MutualFundResponse,
    Pagination,
    SortField,
    SortOrder,
)

from .conftest import make_fund


class TestFundListQueryDefaults:
    def test_defaults(self):
        q = FundListQuery()
        assert q.page == 1
        assert q.page_size == settings.DEFAULT_PAGE_SIZE
        assert q.sort_by == SortField.AUM
        assert q.sort_order == SortOrder.DESC
        assert q.include_inactive is False
        assert q.search is None
        assert q.category is None

    def test_no_filters_echoed_by_default(self):
        assert FundListQuery().applied_filters() == {}


class TestMultiValueParams:
    def test_comma_separated_values_split(self):
        q = FundListQuery(category="Equity, Debt")
        assert q.category == ["Equity", "Debt"]

    def test_repeated_and_comma_separated_combined(self):
        q = FundListQuery(category=["Equity,Debt", "Hybrid"])
        assert q.category == ["Equity", "Debt", "Hybrid"]

    def test_duplicates_and_blanks_dropped(self):
        q = FundListQuery(fund_house=["HDFC Mutual Fund", " , HDFC Mutual Fund,", ""])
        assert q.fund_house == ["HDFC Mutual Fund"]

    def test_only_blanks_means_no_filter(self):
        q = FundListQuery(sub_category=" , ")
        assert q.sub_category is None

    def test_enum_values_case_insensitive(self):
        q = FundListQuery(risk_level="very high,LOW", plan_type="direct")
        assert q.risk_level == [RiskLevel.VERY_HIGH, RiskLevel.LOW]
        assert q.plan_type == [PlanType.DIRECT]

    def test_enum_members_accepted(self):
        q = FundListQuery(risk_level=[RiskLevel.HIGH, "High"])
        assert q.risk_level == [RiskLevel.HIGH]

    def test_unknown_enum_value_rejected(self):
        with pytest.raises(ValidationError, match="risk_level"):
            FundListQuery(risk_level="Extreme")


class TestSearchParam:
    def test_search_is_stripped(self):
        assert FundListQuery(search="  hdfc flexi ").search == "hdfc flexi"

    def test_blank_search_is_none(self):
        assert FundListQuery(search="   ").search is None

    def test_search_too_long_rejected(self):
        with pytest.raises(ValidationError, match="search"):
            FundListQuery(search="x" * (settings.MAX_SEARCH_LENGTH + 1))

    def test_search_at_max_length_accepted(self):
        q = FundListQuery(search="x" * settings.MAX_SEARCH_LENGTH)
        assert len(q.search) == settings.MAX_SEARCH_LENGTH


class TestPaginationClamping:
    @pytest.mark.parametrize(
        "requested,expected",
        [(0, 1), (-3, 1), (1, 1), (5, 5), (10**9, settings.MAX_PAGE)],
    )
    def test_page_clamped(self, requested, expected):
        assert FundListQuery(page=requested).page == expected

    @pytest.mark.parametrize(
        "requested,expected",
        [(0, 1), (-1, 1), (50, 50), (settings.MAX_PAGE_SIZE + 1, settings.MAX_PAGE_SIZE), (5000, settings.MAX_PAGE_SIZE)],
    )
    def test_page_size_clamped(self, requested, expected):
        assert FundListQuery(page_size=requested).page_size == expected

    def test_non_integer_page_rejected(self):
        with pytest.raises(ValidationError, match="page"):
            FundListQuery(page="abc")

    def test_offset(self):
        assert FundListQuery(page=3, page_size=25).offset == 50


class TestRangeValidation:
    @pytest.mark.parametrize(
        "low,high",
        [("min_nav", "max_nav"), ("min_aum", "max_aum"), ("min_expense_ratio", "max_expense_ratio")],
    )
    def test_min_greater_than_max_rejected(self, low, high):
        with pytest.raises(ValidationError, match=f"{low}.*must not exceed {high}"):
            FundListQuery(**{low: 10, high: 5})

    def test_equal_bounds_accepted(self):
        q = FundListQuery(min_nav=10, max_nav=10)
        assert q.min_nav == q.max_nav == 10

    def test_negative_nav_rejected(self):
        with pytest.raises(ValidationError, match="min_nav"):
            FundListQuery(min_nav=-1)

    def test_negative_returns_allowed(self):
        assert FundListQuery(min_return_1y=-12.5).min_return_1y == -12.5

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range_rejected(self, rating):
        with pytest.raises(ValidationError, match="min_rating"):
            FundListQuery(min_rating=rating)

    def test_non_numeric_bound_rejected(self):
        with pytest.raises(ValidationError, match="max_aum"):
            FundListQuery(max_aum="lots")

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf", float("nan"), float("inf")])
    @pytest.mark.parametrize(
        "field", ["min_nav", "max_aum", "max_expense_ratio", "min_return_1y", "min_return_5y"]
    )
    def test_non_finite_bound_rejected(self, field, value):
        with pytest.raises(ValidationError, match=field):
            FundListQuery(**{field: value})


class TestStrictness:
    def test_unknown_parameter_rejected(self):
        with pytest.raises(ValidationError, match="colour"):
            FundListQuery(colour="blue")

    def test_unknown_sort_field_rejected(self):
        with pytest.raises(ValidationError, match="sort_by"):
            FundListQuery(sort_by="popularity")

    def test_unknown_sort_order_rejected(self):
        with pytest.raises(ValidationError, match="sort_order"):
            FundListQuery(sort_order="sideways")


class TestEchoAndFingerprint:
    def test_applied_filters_excludes_paging_and_nones(self):
        q = FundListQuery(
            category="Equity",
            plan_type="Direct",
            min_rating=4,
            page=2,
            page_size=10,
            sort_by="nav",
        )
        assert q.applied_filters() == {
            "category": ["Equity"],
            "plan_type": ["Direct"],
            "min_rating": 4,
        }

    def test_include_inactive_echoed_only_when_true(self):
        assert FundListQuery(include_inactive=True).applied_filters() == {"include_inactive": True}

    def test_fingerprint_equal_for_equivalent_queries(self):
        a = FundListQuery(category="Equity,Debt", page_size=500)
        b = FundListQuery(category=["Equity", "Debt"], page_size=settings.MAX_PAGE_SIZE)
        assert a.fingerprint() == b.fingerprint()

    def test_fingerprint_ignores_value_order(self):
        a = FundListQuery(category="Equity,Debt", risk_level="Low,Very High")
        b = FundListQuery(category="Debt,Equity", risk_level="Very High,Low")
        assert a.fingerprint() == b.fingerprint()
        assert a.applied_filters()["category"] == ["Equity", "Debt"]

    def test_fingerprint_differs_by_page(self):
        assert FundListQuery(page=1).fingerprint() != FundListQuery(page=2).fingerprint()


class TestMutualFundResponse:
    def test_from_model(self):
        resp = MutualFundResponse.model_validate(make_fund())
        assert resp.scheme_code == "119551"
        assert resp.plan_type == PlanType.DIRECT

    def test_decimals_serialised_as_numbers(self):
        data = MutualFundResponse.model_validate(make_fund()).model_dump(mode="json")
        assert data["nav"] == 1893.412
        assert data["aum_crore"] == 64123.55
        assert data["expense_ratio"] == 0.77
        assert isinstance(data["min_sip_amount"], float)
        assert data["risk_level"] == "Very High"


class TestPagination:
    def test_empty_result(self):
        p = Pagination.build(page=1, page_size=20, total=0)
        assert p.total_pages == 0
        assert p.has_next is False
        assert p.has_prev is False

    def test_partial_last_page(self):
        p = Pagination.build(page=1, page_size=10, total=21)
        assert p.total_pages == 3
        assert p.has_next is True
        assert p.has_prev is False

    def test_last_page(self):
        p = Pagination.build(page=3, page_size=10, total=21)
        assert p.has_next is False
        assert p.has_prev is True

    def test_page_beyond_last(self):
        p = Pagination.build(page=9, page_size=10, total=21)
        assert p.has_next is False
        assert p.has_prev is True
