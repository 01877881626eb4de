"""SQLModel table models — import here so metadata is populated."""

from fundscreener.models.mutual_fund import MutualFund, PlanType, RiskLevel  # noqa: F401
