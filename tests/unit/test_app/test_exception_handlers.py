"""Tests for problem-details exception handlers and the request ID middleware."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, Query
from fastapi.testclient import TestClient
from pydantic import BaseModel

from health_monitor.app.exception_handlers import configure_exception_handlers
from health_monitor.app.middleware import configure_middleware
from health_monitor.core.exceptions import NotFoundException
from health_monitor.infra.resilience import AllProvidersUnavailableError, CircuitOpenError


class Window(BaseModel):
    minutes: int


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    configure_exception_handlers(app)
    configure_middleware(app)

    @app.get("/not-found")
    async def not_found() -> None:
        raise NotFoundException(detail="Unknown target: api-v1-foo", type="target-not-found")

    @app.get("/breaker")
    async def breaker() -> None:
        raise CircuitOpenError(
            "Circuit breaker 'api-v1-geocoding' is open",
            name="api-v1-geocoding",
            retry_after=41.2,
        )

    @app.get("/race")
    async def race() -> None:
        raise AllProvidersUnavailableError(
            errors={
                "groq-chat": CircuitOpenError("Circuit breaker 'groq-chat' is open"),
                "zai-chat": RuntimeError("HTTP 502"),
            }
        )

    @app.get("/validate")
    async def validate(limit: int = Query(ge=1)) -> dict[str, int]:
        return {"limit": limit}

    @app.get("/model")
    async def model() -> None:
        Window.model_validate({"minutes": "many"})

    @app.get("/boom")
    async def boom() -> None:
        msg = "database password is hunter2"
        raise RuntimeError(msg)

    return TestClient(app, raise_server_exceptions=False)


class TestAppExceptions:
    """Test application exceptions become problem documents."""

    def test_not_found(self, client: TestClient) -> None:
        """Test status, type, title, instance and request ID."""
        response = client.get("/not-found", headers={"X-Request-ID": "req-1"})

        assert response.status_code == 404
        body = response.json()
        assert body["type"] == "target-not-found"
        assert body["title"] == "Not Found"
        assert body["status"] == 404
        assert body["instance"].endswith("/not-found")
        assert body["request_id"] == "req-1"

    def test_circuit_open(self, client: TestClient) -> None:
        """Test breaker rejections are 503 with a rounded-up Retry-After."""
        response = client.get("/breaker")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "42"
        body = response.json()
        assert body["type"] == "circuit-breaker-open"
        assert body["circuit_breaker"] == "api-v1-geocoding"
        assert body["retry_after"] == 42

    def test_all_providers_unavailable(self, client: TestClient) -> None:
        """Test failed races list each provider's error."""
        response = client.get("/race")

        assert response.status_code == 503
        assert "Retry-After" not in response.headers
        assert response.json()["providers"] == {
            "groq-chat": "Circuit breaker 'groq-chat' is open",
            "zai-chat": "HTTP 502",
        }


class TestValidationErrors:
    """Test validation failures carry field-level errors."""

    def test_request_validation(self, client: TestClient) -> None:
        """Test query validation errors name the offending field."""
        response = client.get("/validate", params={"limit": 0})

        assert response.status_code == 422
        body = response.json()
        assert body["type"] == "validation-error"
        assert body["errors"][0]["field"] == "query.limit"
        assert body["errors"][0]["type"] == "greater_than_equal"

    def test_pydantic_validation(self, client: TestClient) -> None:
        """Test model validation errors raised in a route become 422."""
        response = client.get("/model")

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "minutes"


class TestUnhandledExceptions:
    def test_generic_500_hides_details(self, client: TestClient) -> None:
        """Test unexpected errors answer a generic problem without the message."""
        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["type"] == "internal-error"
        assert "hunter2" not in response.text


class TestRequestIDMiddleware:
    """Test request ID propagation."""

    def test_generated_when_missing(self, client: TestClient) -> None:
        """Test a UUID is generated and echoed."""
        response = client.get("/validate", params={"limit": 1})

        assert len(response.headers["x-request-id"]) == 36

    def test_echoes_incoming(self, client: TestClient) -> None:
        """Test an incoming ID is kept."""
        response = client.get("/validate", params={"limit": 1}, headers={"X-Request-ID": "abc"})

        assert response.headers["x-request-id"] == "abc"
