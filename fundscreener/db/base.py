"""
Database model registry.

Importing this module registers every table model with SQLModel's metadata,
which must happen before ``create_all()`` runs.
"""

from fundscreener.models.mutual_fund import MutualFund  # noqa: F401
