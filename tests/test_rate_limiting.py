"""Tests for rate limiting functionality."""

import threading

from fastapi.testclient import TestClient

from greenlight.config import settings
from greenlight.rate_limiting import RateLimiter, TokenBucket


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_burst_then_reject():
    """Four requests fit in the burst, the fifth in the same instant does not."""
    clock = FakeClock()
    limiter = RateLimiter(rate=2, burst=4, clock=clock)

    results = [limiter.allow("10.0.0.1") for _ in range(5)]

    assert results == [True, True, True, True, False]


def test_refill_after_half_a_second():
    clock = FakeClock()
    limiter = RateLimiter(rate=2, burst=4, clock=clock)
    for _ in range(4):
        assert limiter.allow("10.0.0.1")
    assert not limiter.allow("10.0.0.1")

    clock.advance(0.5)

    assert limiter.allow("10.0.0.1")
    assert not limiter.allow("10.0.0.1")


def test_refill_never_exceeds_burst():
    bucket = TokenBucket(rate=2, burst=4, now=0.0)
    for _ in range(4):
        bucket.allow(0.0)

    assert bucket.remaining(3600.0) == 4


def test_clients_have_separate_buckets():
    clock = FakeClock()
    limiter = RateLimiter(rate=2, burst=1, clock=clock)

    assert limiter.allow("10.0.0.1")
    assert not limiter.allow("10.0.0.1")
    assert limiter.allow("10.0.0.2")


def test_sweep_forgets_idle_clients():
    clock = FakeClock()
    limiter = RateLimiter(rate=2, burst=4, idle_seconds=180, clock=clock)
    limiter.allow("10.0.0.1")
    clock.advance(100)
    limiter.allow("10.0.0.2")

    clock.advance(100)
    removed = limiter.sweep()

    assert removed == 1
    assert limiter.client_count == 1


def test_sweep_runs_during_allow():
    clock = FakeClock()
    limiter = RateLimiter(
        rate=2, burst=4, idle_seconds=180, sweep_interval=60, clock=clock
    )
    limiter.allow("10.0.0.1")

    clock.advance(200)
    limiter.allow("10.0.0.2")

    assert limiter.client_count == 1


def test_concurrent_allow_never_exceeds_burst():
    clock = FakeClock()
    limiter = RateLimiter(rate=2, burst=4, clock=clock)
    granted = []
    lock = threading.Lock()

    def worker():
        ok = limiter.allow("10.0.0.1")
        with lock:
            granted.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert granted.count(True) == 4


def test_middleware_returns_429(app, client: TestClient):
    clock = FakeClock()
    app.state.rate_limiter = RateLimiter(rate=2, burst=2, clock=clock)

    first = client.get("/v1/healthcheck")
    second = client.get("/v1/healthcheck")
    third = client.get("/v1/healthcheck")

    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert second.status_code == 200
    assert third.status_code == 429
    assert third.json()["error"] == "rate limit exceeded"
    assert third.headers["Retry-After"] == "1"

    clock.advance(0.5)
    assert client.get("/v1/healthcheck").status_code == 200


def test_disabled_limiter_admits_everything(app, client: TestClient):
    limiter = RateLimiter(rate=1, burst=1, enabled=False, clock=FakeClock())
    app.state.rate_limiter = limiter

    statuses = {client.get("/v1/healthcheck").status_code for _ in range(10)}
    assert statuses == {200}

    limiter.enable()
    assert client.get("/v1/healthcheck").status_code == 200
    assert client.get("/v1/healthcheck").status_code == 429


def test_non_api_paths_are_not_limited(app, client: TestClient):
    app.state.rate_limiter = RateLimiter(rate=1, burst=1, clock=FakeClock())

    statuses = [client.get("/openapi.json").status_code for _ in range(3)]

    assert statuses == [200, 200, 200]


def test_forwarded_for_is_ignored_from_untrusted_peers(app, client: TestClient):
    app.state.rate_limiter = RateLimiter(rate=1, burst=1, clock=FakeClock())

    first = client.get("/v1/healthcheck", headers={"X-Forwarded-For": "203.0.113.1"})
    second = client.get("/v1/healthcheck", headers={"X-Forwarded-For": "203.0.113.2"})

    assert first.status_code == 200
    assert second.status_code == 429


def test_trusted_proxy_forwards_client_identity(app, client: TestClient, monkeypatch):
    # TestClient connects from the peer address "testclient"
    monkeypatch.setattr(settings, "trusted_proxies", ["testclient"])
    app.state.rate_limiter = RateLimiter(rate=1, burst=1, clock=FakeClock())

    statuses = [
        client.get("/v1/healthcheck", headers={"X-Forwarded-For": ip}).status_code
        for ip in ("203.0.113.1", "203.0.113.2", "203.0.113.1")
    ]

    assert statuses == [200, 200, 429]
