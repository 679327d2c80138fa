"""
Unit tests for the rate limiting service HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_ratelimit.app.main import RateLimitService, create_app
from service_ratelimit.app.ratelimit.admission import AdmissionFilter
from service_ratelimit.app.ratelimit.engine import RefillPolicy
from shared.test_helpers import FakeClock


class TestRateLimitService:
    """Test cases for RateLimitService."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def app(self, clock):
        return create_app(AdmissionFilter(policy=RefillPolicy(), clock=clock))

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def _get(self, client, ip):
        return client.get("/api/data", headers={"X-Forwarded-For": ip})

    def test_data_endpoint_allowed(self, client):
        response = self._get(client, "192.168.1.1")

        assert response.status_code == 200
        assert response.json() == {"message": "Success"}
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "9"
        assert "X-Request-ID" in response.headers

    def test_eleventh_request_rejected(self, client):
        responses = [self._get(client, "192.168.1.3") for _ in range(11)]

        assert [r.status_code for r in responses[:10]] == [200] * 10
        rejected = responses[10]
        assert rejected.status_code == 429

        body = rejected.json()
        assert body["error"] == "Too Many Requests"
        assert body["code"] == "RATE_LIMIT_EXCEEDED"
        assert body["message"] == "Rate limit exceeded. Please try again later."
        assert body["details"]["limit"] == 10
        assert body["details"]["remaining"] == 0
        assert rejected.headers["Retry-After"] == "1"

    def test_refill_after_interval(self, client, clock):
        for _ in range(11):
            self._get(client, "192.168.1.4")

        clock.advance_ms(1100)

        assert self._get(client, "192.168.1.4").status_code == 200
        assert self._get(client, "192.168.1.4").status_code == 429

    def test_metrics_endpoint_reports_counters(self, client):
        for _ in range(12):
            self._get(client, "192.168.1.5")
        self._get(client, "192.168.1.6")

        response = client.get("/api/metrics")

        assert response.status_code == 200
        assert response.json() == {
            "requestsServed": {"192.168.1.5": 10, "192.168.1.6": 1},
            "rateLimitTriggered": 2,
            "activeBuckets": 2,
        }

    def test_metrics_endpoint_not_rate_limited(self, client):
        for _ in range(25):
            response = client.get("/api/metrics", headers={"X-Forwarded-For": "192.168.1.7"})
            assert response.status_code == 200

        assert response.json()["activeBuckets"] == 0

    def test_metrics_snapshot_idempotent(self, client):
        self._get(client, "192.168.1.8")

        assert client.get("/api/metrics").json() == client.get("/api/metrics").json()

    def test_requests_without_proxy_header_use_peer_address(self, client):
        client.get("/api/data")

        served = client.get("/api/metrics").json()["requestsServed"]
        assert served == {"testclient": 1}

    def test_dashboard_served(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "/api/metrics" in response.text

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "ratelimit"
        assert data["status"] == "ok"
        assert data["details"]["capacity"] == 10
        assert data["details"]["refill_interval_seconds"] == 1.0

    def test_prometheus_endpoint(self, client):
        self._get(client, "192.168.1.9")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "http_requests_total" in response.text

    def test_reset_not_exposed_over_http(self, client):
        assert client.post("/api/reset").status_code == 404
        assert client.get("/api/reset").status_code == 404

    def test_service_builds_policy_from_config(self, monkeypatch):
        monkeypatch.setenv("RATELIMIT_RATE_LIMIT_CAPACITY", "3")
        monkeypatch.setenv("RATELIMIT_RATE_LIMIT_REFILL_INTERVAL_MS", "500")

        service = RateLimitService()

        assert service.admission.policy.capacity == 3
        assert service.admission.policy.refill_interval == 0.5
        assert service.app.state.ratelimit_service is service
