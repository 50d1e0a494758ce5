import pytest
from httpx import ASGITransport, AsyncClient

from mindfulness.core.config import Settings
from mindfulness.core.rate_limit import RateLimiter
from mindfulness.main import create_app


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def __call__(self):
        return self.now


def test_limiter_blocks_after_limit_and_reports_retry_after():
    clock = FakeClock()
    limiter = RateLimiter(limit=2, window_seconds=60, clock=clock)

    assert limiter.check("1.2.3.4").remaining == 1
    clock.now += 10
    assert limiter.check("1.2.3.4").allowed

    blocked = limiter.check("1.2.3.4")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after == 50


def test_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed

    clock.now += 60
    assert limiter.check("a").allowed


def test_clients_are_counted_separately():
    limiter = RateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed


def test_rejected_requests_do_not_extend_the_window():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.check("a")
    for _ in range(5):
        clock.now += 10
        limiter.check("a")

    clock.now += 10  # 60s after the only counted request
    assert limiter.check("a").allowed


@pytest.fixture
async def limited_client():
    application = create_app(Settings(RATE_LIMIT_REQUESTS=2, RATE_LIMIT_WINDOW_SECONDS=900))
    transport = ASGITransport(app=application, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_third_request_gets_429_envelope(limited_client):
    first = await limited_client.get("/api/auth/me")
    assert first.status_code == 401
    assert first.headers["X-RateLimit-Remaining"] == "1"
    await limited_client.get("/api/auth/me")

    resp = await limited_client.get("/api/auth/me")
    assert resp.status_code == 429
    assert int(resp.headers["Retry-After"]) > 0
    error = resp.json()["error"]
    assert error["code"] == "RATE_LIMIT_EXCEEDED"
    assert error["message"] == "Too many requests, please try again later."


async def test_limit_is_per_forwarded_client(limited_client):
    for _ in range(2):
        await limited_client.get("/api/auth/me", headers={"X-Forwarded-For": "10.0.0.1"})

    blocked = await limited_client.get("/api/auth/me", headers={"X-Forwarded-For": "10.0.0.1"})
    other = await limited_client.get("/api/auth/me", headers={"X-Forwarded-For": "10.0.0.2, 10.0.0.1"})
    assert blocked.status_code == 429
    assert other.status_code == 401


async def test_root_is_not_limited(limited_client):
    for _ in range(4):
        resp = await limited_client.get("/")
    assert resp.status_code == 200
