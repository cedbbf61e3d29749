from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.metrics import InMemoryRequestMetrics
from app.core.rate_limiter import InMemoryRateLimiterService
from app.middleware.auth_rate_limit import RATE_LIMIT_MESSAGE, AuthRateLimitMiddleware
from app.middleware.observability import ObservabilityMiddleware


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def _auth_app(rate_limiter) -> FastAPI:
    api = FastAPI()
    api.add_middleware(AuthRateLimitMiddleware, rate_limiter=rate_limiter)

    @api.post("/api/auth/login")
    def login():
        return {"ok": True}

    @api.post("/api/auth/register")
    def register():
        return {"ok": True}

    @api.post("/api/auth/logout")
    def logout():
        return {"ok": True}

    return api


def test_fixed_window_blocks_after_limit_and_resets():
    clock = FakeClock()
    limiter = InMemoryRateLimiterService(limit=5, window_seconds=60, clock=clock)

    decisions = [limiter.check("10.0.0.1") for _ in range(5)]
    assert all(d.allowed for d in decisions)
    assert decisions[-1].remaining == 0

    clock.now += 20
    blocked = limiter.check("10.0.0.1")
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 40

    clock.now += 40
    assert limiter.allow("10.0.0.1") is True


def test_keys_are_independent_and_expired_windows_are_purged():
    clock = FakeClock()
    limiter = InMemoryRateLimiterService(limit=1, window_seconds=10, clock=clock)

    assert limiter.allow("a") is True
    assert limiter.allow("a") is False
    assert limiter.allow("b") is True

    clock.now += 10
    assert limiter.purge_expired() == 2


def test_sixth_login_attempt_is_rejected_with_retry_after():
    limiter = InMemoryRateLimiterService(limit=5, window_seconds=60, clock=FakeClock())
    client = TestClient(_auth_app(limiter))

    for _ in range(5):
        response = client.post("/api/auth/login")
        assert response.status_code == 200

    blocked = client.post("/api/auth/login")

    assert blocked.status_code == 429
    assert blocked.json() == {"detail": RATE_LIMIT_MESSAGE, "retry_after": 60}
    assert blocked.headers["Retry-After"] == "60"
    assert blocked.headers["X-RateLimit-Remaining"] == "0"


def test_login_and_register_share_the_client_budget():
    limiter = InMemoryRateLimiterService(limit=2, window_seconds=60, clock=FakeClock())
    client = TestClient(_auth_app(limiter))

    assert client.post("/api/auth/login").status_code == 200
    assert client.post("/api/auth/register").status_code == 200
    assert client.post("/api/auth/register").status_code == 429
    # rotas fora da lista não consomem a cota
    assert client.post("/api/auth/logout").status_code == 200


def test_forwarded_for_identifies_separate_clients():
    limiter = InMemoryRateLimiterService(limit=1, window_seconds=60, clock=FakeClock())
    client = TestClient(_auth_app(limiter))

    first = client.post("/api/auth/login", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    second = client.post("/api/auth/login", headers={"X-Forwarded-For": "203.0.113.8"})
    repeat = client.post("/api/auth/login", headers={"X-Forwarded-For": "203.0.113.7"})

    assert (first.status_code, second.status_code, repeat.status_code) == (200, 200, 429)
    assert first.headers["X-RateLimit-Limit"] == "1"


def test_metrics_snapshot_aggregates_by_endpoint():
    metrics = InMemoryRequestMetrics()

    metrics.observe("/api/orders/{order_id}", "GET", 200, 10.0)
    metrics.observe("/api/orders/{order_id}", "GET", 404, 30.0)
    metrics.observe("/api/auth/login", "POST", 429, 1.0)

    assert metrics.snapshot() == {
        "GET /api/orders/{order_id}": {
            "requests": 2,
            "errors": 1,
            "rate_limited": 0,
            "avg_duration_ms": 20.0,
            "max_duration_ms": 30.0,
            "by_status": {"2xx": 1, "4xx": 1},
        },
        "POST /api/auth/login": {
            "requests": 1,
            "errors": 1,
            "rate_limited": 1,
            "avg_duration_ms": 1.0,
            "max_duration_ms": 1.0,
            "by_status": {"4xx": 1},
        },
    }


def test_observability_groups_requests_by_route_template(monkeypatch):
    from app.middleware import observability

    metrics = InMemoryRequestMetrics()
    monkeypatch.setattr(observability, "request_metrics", metrics)

    api = FastAPI()
    api.add_middleware(ObservabilityMiddleware)

    @api.get("/api/orders/{order_id}")
    def get_order(order_id: int):
        return {"id": order_id}

    client = TestClient(api)
    client.get("/api/orders/1")
    client.get("/api/orders/2")

    snapshot = metrics.snapshot()
    assert snapshot["GET /api/orders/{order_id}"]["requests"] == 2
