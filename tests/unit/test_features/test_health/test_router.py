"""Tests for the health HTTP endpoints."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from health_monitor.app.main import create_app
from health_monitor.core.schemas.common import HealthStatus
from health_monitor.core.settings.app import AppSettings
from health_monitor.features.health.context import ResilienceContext
from health_monitor.features.health.probe import HealthProbe
from health_monitor.features.health.schemas import ProbeConfig, ServiceCheckResult
from health_monitor.features.health.service import HealthService
from health_monitor.features.health.targets import TargetRegistry

BASE_URL = "https://project.example.test"


class Fleet:
    """Mock fleet answering 200 except for targets marked down."""

    def __init__(self) -> None:
        self.down: set[str] = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(500 if name in self.down else 200)


class Datastore:
    name = "database"

    def __init__(self) -> None:
        self.status = HealthStatus.HEALTHY

    async def check(self) -> ServiceCheckResult:
        return ServiceCheckResult(service="database", status=self.status, response_time_ms=12)


async def _no_sleep(delay: float) -> None:
    return None


@pytest.fixture
def fleet() -> Fleet:
    return Fleet()


@pytest.fixture
def datastore() -> Datastore:
    return Datastore()


@pytest.fixture
def service(fleet: Fleet, datastore: Datastore) -> HealthService:
    context = ResilienceContext()
    client = httpx.AsyncClient(transport=httpx.MockTransport(fleet))
    probe = HealthProbe(client, base_url=BASE_URL, sleep=_no_sleep)
    return HealthService(
        probe=probe,
        targets=TargetRegistry(
            [
                ProbeConfig(name="api-v1-auth", critical=True),
                ProbeConfig(name="api-v1-search"),
                ProbeConfig(name="api-v1-email", skip_in_quick_check=True),
            ]
        ),
        context=context,
        datastore=datastore,
    )


@pytest.fixture
def client(service: HealthService) -> TestClient:
    app = create_app(AppSettings(api_prefix="/api/v1"), health_service=service)
    return TestClient(app)


class TestStructuralEndpoints:
    """Test GET /health and /health/full."""

    def test_quick_health(self, client: TestClient) -> None:
        """Test a healthy datastore answers 200."""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"][0]["service"] == "database"
        assert response.headers["x-request-id"]

    def test_quick_health_unhealthy(self, client: TestClient, datastore: Datastore) -> None:
        """Test a failing datastore answers 503 with a full body."""
        datastore.status = HealthStatus.UNHEALTHY

        response = client.get("/api/v1/health")

        assert response.status_code == 503
        assert response.json()["critical_issues"] == ["database"]

    def test_full_health(self, client: TestClient) -> None:
        """Test the full check includes breaker snapshots."""
        response = client.get("/api/v1/health/full")

        assert response.status_code == 200
        assert response.json()["circuit_breakers"] == []


class TestFunctionEndpoints:
    """Test fleet and single-target endpoints."""

    def test_check_functions(self, client: TestClient) -> None:
        """Test a healthy fleet answers 200 with every result."""
        response = client.post("/api/v1/health/functions")

        assert response.status_code == 200
        body = response.json()
        assert body["counts"]["total"] == 3
        names = [r["name"] for r in body["results"]]
        assert names == ["api-v1-auth", "api-v1-search", "api-v1-email"]

    def test_check_functions_quick(self, client: TestClient) -> None:
        """Test ?quick=true skips slow targets."""
        response = client.post("/api/v1/health/functions", params={"quick": "true"})

        assert response.json()["counts"]["total"] == 2

    def test_critical_failure_is_503_with_alert(self, client: TestClient, fleet: Fleet) -> None:
        """Test a failing critical target answers 503 and reports the alert."""
        fleet.down.add("api-v1-auth")

        response = client.post("/api/v1/health/functions")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["critical_issues"] == ["api-v1-auth"]
        assert body["alert_sent"] is True
        assert body["alert_message"] == "Alert sent"

    def test_single_target(self, client: TestClient, fleet: Fleet) -> None:
        """Test single target checks answer 200 when up and 503 when down."""
        assert client.post("/api/v1/health/functions/api-v1-search").status_code == 200

        fleet.down.add("api-v1-search")
        response = client.post("/api/v1/health/functions/api-v1-search")

        assert response.status_code == 503
        assert response.json()["error"] == "Unexpected status code: 500"
        assert response.json()["retried"] is True

    def test_unknown_target_is_problem_404(self, client: TestClient) -> None:
        """Test unknown targets answer a problem document listing the known names."""
        response = client.post(
            "/api/v1/health/functions/api-v1-missing", headers={"X-Request-ID": "req-42"}
        )

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/json"
        body = response.json()
        assert body["type"] == "target-not-found"
        assert body["title"] == "Not Found"
        assert body["detail"] == "Unknown target: api-v1-missing"
        assert body["available_targets"] == ["api-v1-auth", "api-v1-search", "api-v1-email"]
        assert body["request_id"] == "req-42"
        assert response.headers["x-request-id"] == "req-42"


class TestCircuitEndpoints:
    """Test breaker inspection and reset."""

    async def _open(self, service: HealthService, name: str) -> None:
        breaker = service.context.breakers.get(name)

        async def fail() -> None:
            raise RuntimeError

        for _ in range(breaker.failure_threshold):
            with pytest.raises(RuntimeError):
                await breaker.call(fail)

    def test_circuits_and_reset(self, client: TestClient, service: HealthService) -> None:
        """Test the snapshot shows an open breaker and reset closes it."""
        asyncio.run(self._open(service, "groq-chat"))
        service.context.breakers.get("zai-chat")

        circuits = client.get("/api/v1/health/circuits").json()
        assert circuits[0]["name"] == "groq-chat"
        assert circuits[0]["state"] == "open"

        reset = client.post("/api/v1/health/circuits/reset", params={"name": "groq-chat"}).json()
        assert [c["state"] for c in reset] == ["closed", "closed"]
        assert reset[0]["failure_count"] == 0


class TestMetricsEndpoint:
    def test_metrics(self, client: TestClient) -> None:
        """Test /metrics serves the Prometheus exposition format."""
        client.post("/api/v1/health/functions")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "health_probe_total" in response.text
