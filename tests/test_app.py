"""
tests/test_app.py
Tests for app-level wiring: health, root, error envelope, tracing headers.
"""

import pytest
from fastapi.exceptions import RequestValidationError
from httpx import AsyncClient

from main import format_validation_error


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["health"] == "/api/health"


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


@pytest.mark.asyncio
async def test_request_id_echoed(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.headers["X-Process-Time"].endswith("ms")


def test_format_validation_error_field_prefix():
    exc = RequestValidationError([
        {"type": "missing", "loc": ("body", "booking_time"), "msg": "Field required", "input": None},
    ])
    assert format_validation_error(exc) == "booking_time: Field required"


def test_format_validation_error_model_level_uses_raw_message():
    exc = RequestValidationError([
        {
            "type": "value_error",
            "loc": ("body",),
            "msg": "Value error, Location is required",
            "input": {},
            "ctx": {"error": ValueError("Location is required")},
        },
    ])
    assert format_validation_error(exc) == "Location is required"
