"""
Unit tests for middleware — RequestIDMiddleware and RequestTimingMiddleware.

Uses httpx.AsyncClient against a lightweight FastAPI test app to exercise
both middleware classes through their full dispatch cycle.
"""

import logging
import uuid

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from fundscreener import middleware
from fundscreener.middleware import (
    PROCESS_TIME_HEADER,
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    RequestTimingMiddleware,
)


def _make_test_app() -> FastAPI:
    """Create a minimal FastAPI app with both middleware classes, ordered as in main."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    @app.get("/api/v1/mutual-funds")
    async def list_stub(request: Request):
        return {"request_id": request.state.request_id}

    return app


async def _get(app: FastAPI, headers=None):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get("/api/v1/mutual-funds", headers=headers)


@pytest.fixture()
def test_app():
    return _make_test_app()


class TestRequestIDMiddleware:
    """Tests for X-Request-ID propagation."""

    @pytest.mark.asyncio
    async def test_generates_uuid_when_absent(self, test_app):
        resp = await _get(test_app)

        request_id = resp.headers[REQUEST_ID_HEADER]
        uuid.UUID(request_id)
        assert resp.json()["request_id"] == request_id

    @pytest.mark.asyncio
    async def test_honours_upstream_id(self, test_app):
        resp = await _get(test_app, headers={REQUEST_ID_HEADER: "lb-trace-42"})

        assert resp.headers[REQUEST_ID_HEADER] == "lb-trace-42"
        assert resp.json()["request_id"] == "lb-trace-42"

    @pytest.mark.asyncio
    async def test_ids_differ_between_requests(self, test_app):
        first = await _get(test_app)
        second = await _get(test_app)
        assert first.headers[REQUEST_ID_HEADER] != second.headers[REQUEST_ID_HEADER]


class TestRequestTimingMiddleware:
    """Tests for X-Process-Time and request logging."""

    @pytest.mark.asyncio
    async def test_adds_process_time_header(self, test_app):
        resp = await _get(test_app)

        value = resp.headers[PROCESS_TIME_HEADER]
        assert value.endswith("ms")
        assert float(value[:-2]) >= 0

    @pytest.mark.asyncio
    async def test_logs_request_with_structured_fields(self, test_app, caplog):
        with caplog.at_level(logging.DEBUG, logger="fundscreener.middleware"):
            await _get(test_app, headers={REQUEST_ID_HEADER: "trace-1"})

        record = next(r for r in caplog.records if r.name == "fundscreener.middleware")
        assert record.method == "GET"
        assert record.path == "/api/v1/mutual-funds"
        assert record.status_code == 200
        assert record.request_id == "trace-1"
        assert record.levelno == logging.DEBUG

    @pytest.mark.asyncio
    async def test_slow_request_logged_as_warning(self, test_app, caplog, monkeypatch):
        monkeypatch.setattr(middleware, "SLOW_REQUEST_MS", -1)

        with caplog.at_level(logging.DEBUG, logger="fundscreener.middleware"):
            await _get(test_app)

        assert any(
            r.levelno == logging.WARNING and "SLOW" in r.getMessage() for r in caplog.records
        )
