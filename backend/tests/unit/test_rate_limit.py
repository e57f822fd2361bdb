import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from journal.core.config import RateLimitConfig, RateLimitRule
from journal.core.rate_limit import RateLimitMiddleware, SlidingWindowLimiter


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, enabled=True)

    @app.post("/api/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/api/volumes")
    async def volumes():
        return {"ok": True}

    return app


def test_window_slides_instead_of_resetting():
    clock = _Clock()
    limiter = SlidingWindowLimiter(clock=clock)
    rule = RateLimitRule(max_requests=2, window_sec=60)

    assert limiter.hit("login:1.1.1.1", rule) == (True, 1, 0)
    clock.now += 30
    assert limiter.hit("login:1.1.1.1", rule) == (True, 0, 0)

    allowed, remaining, retry_after = limiter.hit("login:1.1.1.1", rule)
    assert (allowed, remaining) == (False, 0)
    assert retry_after == 31

    # 第一次请求滑出窗口后只释放一个名额
    clock.now += 31
    assert limiter.hit("login:1.1.1.1", rule)[0] is True
    assert limiter.hit("login:1.1.1.1", rule)[0] is False

    # 其他 IP 独立计数
    assert limiter.hit("login:2.2.2.2", rule)[0] is True


def test_config_disabled_under_pytest_and_reads_overrides(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_FORGOT_MAX", "2")
    monkeypatch.setenv("RATE_LIMIT_FORGOT_WINDOW_SEC", "oops")
    cfg = RateLimitConfig.from_env()
    assert cfg.enabled is False
    assert cfg.rules["/api/auth/forgot-password"] == RateLimitRule(max_requests=2, window_sec=300)
    assert cfg.rules["/api/auth/login"] == RateLimitRule(max_requests=10, window_sec=60)


@pytest.mark.asyncio
async def test_login_endpoint_returns_429(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_LOGIN_MAX", "2")
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://testserver") as ac:
        for expected_remaining in ("1", "0"):
            resp = await ac.post("/api/auth/login")
            assert resp.status_code == 200
            assert resp.headers["X-RateLimit-Remaining"] == expected_remaining
        blocked = await ac.post("/api/auth/login")
        other_ip = await ac.post("/api/auth/login", headers={"X-Forwarded-For": "10.0.0.9"})
    assert blocked.status_code == 429
    assert blocked.json()["error"] == "Too Many Requests"
    assert int(blocked.headers["Retry-After"]) >= 1
    assert other_ip.status_code == 200


@pytest.mark.asyncio
async def test_other_paths_are_not_limited(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_LOGIN_MAX", "1")
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://testserver") as ac:
        for _ in range(5):
            resp = await ac.get("/api/volumes")
            assert resp.status_code == 200
            assert "X-RateLimit-Limit" not in resp.headers


def test_idle_clients_are_swept():
    clock = _Clock()
    limiter = SlidingWindowLimiter(clock=clock)
    rule = RateLimitRule(max_requests=5, window_sec=60)

    for i in range(500):
        limiter.hit(f"/api/auth/login:10.0.{i // 256}.{i % 256}", rule)
    assert limiter.tracked_keys() == 500

    # 未满清理间隔时不清理
    clock.now += 30
    limiter.hit("/api/auth/login:192.168.0.1", rule)
    assert limiter.tracked_keys() == 501

    clock.now += 45
    limiter.hit("/api/auth/login:192.168.0.2", rule)
    assert limiter.tracked_keys() == 2
    assert limiter.hit("/api/auth/login:192.168.0.1", rule) == (True, 3, 0)
