"""
认证端点限流

中文注释:
- 只保护登录/注册/刷新/找回密码这类可被暴力尝试的端点，规则见 RateLimitConfig。
- 滑动窗口：每个 (端点, IP) 保存窗口内的请求时间戳。
- 进程内限流，多实例部署时各实例独立计数。
"""

from __future__ import annotations

import logging
import time
from collections import deque
from threading import Lock
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from journal.core.config import RateLimitConfig, RateLimitRule

logger = logging.getLogger("journal.rate_limit")


class SlidingWindowLimiter:
    # 每隔 SWEEP_INTERVAL_SEC 清理一次整窗无请求的 key，避免大量一次性 IP 常驻内存
    SWEEP_INTERVAL_SEC = 60.0

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._longest_window = 0.0
        self._last_sweep = clock()

    def hit(self, key: str, rule: RateLimitRule) -> tuple[bool, int, int]:
        """
        记录一次请求，返回 (allowed, remaining, retry_after_seconds)。
        被拒绝的请求不计入窗口。
        """
        now = self._clock()
        with self._lock:
            self._longest_window = max(self._longest_window, float(rule.window_sec))
            if now - self._last_sweep >= self.SWEEP_INTERVAL_SEC:
                self._sweep(now)

            window = self._hits.setdefault(key, deque())
            while window and window[0] <= now - rule.window_sec:
                window.popleft()

            if len(window) >= rule.max_requests:
                retry_after = max(int(window[0] + rule.window_sec - now) + 1, 1)
                return False, 0, retry_after

            window.append(now)
            return True, rule.max_requests - len(window), 0

    def _sweep(self, now: float) -> None:
        cutoff = now - self._longest_window
        stale = [key for key, window in self._hits.items() if not window or window[-1] <= cutoff]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now
        if stale:
            logger.debug("Rate limiter swept %d idle keys", len(stale))

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def client_ip(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    if request.client and request.client.host:
        return str(request.client.host)
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, config: Optional[RateLimitConfig] = None, enabled: Optional[bool] = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self.config = config or RateLimitConfig.from_env()
        self.enabled = self.config.enabled if enabled is None else enabled
        self.limiter = SlidingWindowLimiter()

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        path = request.url.path.rstrip("/")
        rule = self.config.rules.get(path)
        if not self.enabled or rule is None or request.method.upper() != "POST":
            return await call_next(request)

        ip = client_ip(request)
        allowed, remaining, retry_after = self.limiter.hit(f"{path}:{ip}", rule)
        if not allowed:
            logger.warning("Rate limit exceeded: path=%s ip=%s retry_after=%ss", path, ip, retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too Many Requests",
                    "message": "Too many requests, please try again later",
                },
                headers={"Retry-After": str(retry_after), "X-RateLimit-Limit": str(rule.max_requests)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rule.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
