"""
V1 API router aggregation.

The top-level ``main.py`` mounts this router at ``/api/v1``.
"""

from fastapi import APIRouter

from fundscreener.api.v1.endpoints import mutual_funds

api_router = APIRouter()

api_router.include_router(mutual_funds.router, prefix="/mutual-funds", tags=["Mutual Funds"])
