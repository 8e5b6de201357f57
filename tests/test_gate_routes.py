"""Tests for the HTTP boundary of the admission gate.

Each test builds its own app through create_app with isolated settings and
swaps in an engine driven by a deterministic clock, so window rollovers never
depend on wall time.
"""

import hashlib

import pytest
from fastapi.testclient import TestClient

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from admission_gate.core.app_factory import create_app
from admission_gate.core.config import AppSettings, Settings, StoreSettings
from admission_gate.core.errors import ConfigurationError
from admission_gate.limiter.engine import LimitDecisionEngine
from admission_gate.limiter.tiers import TierResolver, build_tier_table
from admission_gate.limiter.window import WindowClock
from conftest import FakeTime, make_settings


def _client(
    settings: Settings,
    clock: FakeTime,
    store: AbstractCounterStore | None = None,
) -> TestClient:
    store = store or InMemoryCounterStore(clock=clock)
    app = create_app(settings, store=store)
    app.state.decision_engine = LimitDecisionEngine(
        clock=WindowClock(settings.app.window_seconds, clock=clock),
        resolver=TierResolver(
            build_tier_table(settings.app.tier_quotas, settings.app.tier_credentials)
        ),
        store=store,
        key_prefix=settings.store.key_prefix,
        store_timeout_seconds=settings.store.timeout_seconds,
    )
    return TestClient(app)


@pytest.fixture
def client(fake_time: FakeTime) -> TestClient:
    return _client(make_settings(), fake_time)


@pytest.fixture
def key_headers() -> dict[str, str]:
    return {"X-API-Key": "k"}


class TestCredentialExtraction:
    """Missing credentials are rejected before any counting."""

    def test_missing_credential_returns_401(self, client: TestClient) -> None:
        response = client.get("/api/resource")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "missing_credential"
        assert response.headers["WWW-Authenticate"] == "ApiKey"

    def test_blank_credential_returns_401(self, client: TestClient) -> None:
        response = client.get("/api/resource", headers={"X-API-Key": "   "})
        assert response.status_code == 401

    def test_query_parameter_credential(self, client: TestClient) -> None:
        response = client.get("/api/resource", params={"api_key": "k"})
        assert response.status_code == 200

    def test_user_query_parameter_credential(self, client: TestClient) -> None:
        response = client.get("/api/resource", params={"user": "alice"})
        assert response.status_code == 200

    def test_header_and_query_share_one_counter(self, fake_time: FakeTime) -> None:
        client = _client(make_settings(quotas={"free": 1, "premium": 5, "enterprise": 9}), fake_time)

        assert client.get("/api/resource", headers={"X-API-Key": "k"}).status_code == 200
        assert client.get("/api/resource", params={"api_key": "k"}).status_code == 429


class TestRateLimitedResource:
    """Allow/deny rendering on the protected endpoint."""

    def test_allowed_response_body_and_headers(self, client, key_headers, fake_time) -> None:
        response = client.get("/api/resource", headers=key_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Success!", "data": "Here is your data"}
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"
        assert response.headers["X-RateLimit-Window"] == "60"
        assert response.headers["X-RateLimit-Tier"] == "free"
        window_id = int(fake_time() // 60)
        assert response.headers["X-RateLimit-Reset"] == str((window_id + 1) * 60)
        assert "X-RateLimit-Degraded" not in response.headers

    def test_sixth_request_is_rate_limited(self, client, key_headers) -> None:
        remaining = [
            client.get("/api/resource", headers=key_headers).headers["X-RateLimit-Remaining"]
            for _ in range(5)
        ]
        blocked = client.get("/api/resource", headers=key_headers)

        assert remaining == ["4", "3", "2", "1", "0"]
        assert blocked.status_code == 429
        assert blocked.headers["Retry-After"] == "60"
        assert blocked.headers["X-RateLimit-Limit"] == "5"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        error = blocked.json()["error"]
        assert error["code"] == "rate_limited"
        assert "5 requests per 60 seconds" in error["message"]
        assert error["details"]["retry_after"] == 60
        assert error["details"]["tier"] == "free"

    def test_new_window_admits_again(self, client, key_headers, fake_time) -> None:
        for _ in range(6):
            client.get("/api/resource", headers=key_headers)

        fake_time.advance(60)
        response = client.get("/api/resource", headers=key_headers)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_premium_credential_gets_premium_quota(self, client) -> None:
        response = client.get("/api/resource", headers={"X-API-Key": "premium-key-1"})

        assert response.headers["X-RateLimit-Tier"] == "premium"
        assert response.headers["X-RateLimit-Limit"] == "50"

    def test_headers_can_be_disabled(self, fake_time, key_headers) -> None:
        client = _client(make_settings(rate_limit_include_headers=False), fake_time)

        for _ in range(5):
            response = client.get("/api/resource", headers=key_headers)
            assert "X-RateLimit-Limit" not in response.headers

        blocked = client.get("/api/resource", headers=key_headers)
        assert blocked.status_code == 429
        assert blocked.headers["Retry-After"] == "60"
        assert "X-RateLimit-Limit" not in blocked.headers

    def test_rate_limiting_disabled(self, fake_time, key_headers) -> None:
        client = _client(make_settings(rate_limit_enabled=False), fake_time)

        for _ in range(10):
            assert client.get("/api/resource", headers=key_headers).status_code == 200

    def test_store_down_fails_open_with_degraded_header(
        self, fake_time, failing_store, key_headers
    ) -> None:
        client = _client(make_settings(), fake_time, store=failing_store)

        for _ in range(8):
            response = client.get("/api/resource", headers=key_headers)
            assert response.status_code == 200
            assert response.headers["X-RateLimit-Degraded"] == "true"
            assert response.headers["X-RateLimit-Remaining"] == "5"

    def test_request_id_on_rate_limited_response(self, fake_time, key_headers) -> None:
        client = _client(make_settings(quotas={"free": 1, "premium": 5, "enterprise": 9}), fake_time)
        client.get("/api/resource", headers=key_headers)

        blocked = client.get(
            "/api/resource", headers={**key_headers, "X-Request-ID": "req-429"}
        )

        assert blocked.status_code == 429
        assert blocked.headers["X-Request-ID"] == "req-429"
        assert blocked.json()["error"]["request_id"] == "req-429"


class TestHealth:
    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_readiness_store_up(self, client: TestClient) -> None:
        response = client.get("/health/ready")
        assert response.json() == {"status": "ok", "store": "up", "backend": "memory"}

    def test_readiness_store_down_is_degraded(self, fake_time, failing_store) -> None:
        client = _client(make_settings(), fake_time, store=failing_store)

        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "store": "down", "backend": "failing"}


class TestDebugCounters:
    """Read-only counter introspection."""

    def test_hidden_by_default(self, client: TestClient) -> None:
        assert client.get("/debug/counters").status_code == 404

    def test_lists_live_counters_with_hashed_credentials(self, fake_time) -> None:
        client = _client(make_settings(debug_endpoints=True), fake_time)
        for _ in range(3):
            client.get("/api/resource", headers={"X-API-Key": "alice"})
        client.get("/api/resource", headers={"X-API-Key": "bob"})

        response = client.get("/debug/counters")

        assert response.status_code == 200
        body = response.json()
        assert body["backend"] == "memory"
        assert body["window_seconds"] == 60
        assert body["current_window"] == int(fake_time() // 60)
        counts = {c["credential_hash"]: c["count"] for c in body["counters"]}
        alice = hashlib.sha256(b"alice").hexdigest()[:16]
        bob = hashlib.sha256(b"bob").hexdigest()[:16]
        assert counts == {alice: 3, bob: 1}
        assert "alice" not in response.text

    def test_store_down_returns_503(self, fake_time, failing_store) -> None:
        client = _client(make_settings(debug_endpoints=True), fake_time, store=failing_store)

        response = client.get("/debug/counters")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "store_unavailable"


class TestStartupConfiguration:
    """Invalid configuration fails app construction, not requests."""

    @pytest.mark.parametrize("window", [0, -30])
    def test_invalid_window_length(self, window: int) -> None:
        with pytest.raises(ConfigurationError):
            create_app(make_settings(window_seconds=window))

    def test_invalid_tier_table(self) -> None:
        with pytest.raises(ConfigurationError):
            create_app(make_settings(quotas={"free": 5, "premium": 0, "enterprise": 10}))

    def test_unknown_store_backend(self) -> None:
        cfg = Settings(app=AppSettings(), store=StoreSettings(backend="sqlite"))
        with pytest.raises(ConfigurationError):
            create_app(cfg)

    def test_lifespan_probes_and_closes_store(self, fake_time) -> None:
        closed: list[bool] = []

        class TrackingStore(InMemoryCounterStore):
            async def close(self) -> None:
                closed.append(True)

        app = create_app(make_settings(), store=TrackingStore(clock=fake_time))
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

        assert closed == [True]
