"""
Per-client rate limiting for the credential endpoints.

Two rules guard the auth slice:
    - login / register:  AUTH_RATE_LIMIT_MAX_FAILURES failed attempts per
      AUTH_RATE_LIMIT_WINDOW; successful requests are not counted
    - forgot-password:   PASSWORD_RESET_RATE_LIMIT_MAX requests per
      PASSWORD_RESET_RATE_LIMIT_WINDOW

Counters are fixed windows kept in process memory, keyed by client IP
(first X-Forwarded-For hop when present). A blocked request is answered
with 429 in the error envelope plus Retry-After.
"""

import math
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from crm.config import settings
from crm.utils import Logger, error_response
from crm.utils.exceptions import RateLimitExceeded

logger = Logger("rate_limit")


@dataclass
class Window:
    started: float
    hits: int = 0


class FixedWindowLimiter:
    """At most `max_hits` hits per key in each `window`."""

    def __init__(
        self,
        max_hits: int,
        window: timedelta,
        clock: Callable[[], float] = time.monotonic,
        max_keys: int = 10_000,
    ):
        if max_hits <= 0:
            raise ValueError("max_hits must be > 0")
        self.max_hits = max_hits
        self.window_seconds = window.total_seconds()
        self.clock = clock
        self.max_keys = max_keys
        self._windows: dict[str, Window] = {}
        self._lock = threading.Lock()

    def _current(self, key: str, now: float) -> Optional[Window]:
        window = self._windows.get(key)
        if window and now - window.started >= self.window_seconds:
            del self._windows[key]
            return None
        return window

    def retry_after(self, key: str) -> Optional[int]:
        """Seconds until `key` may try again, or None if it is not blocked."""
        with self._lock:
            now = self.clock()
            window = self._current(key, now)
            if not window or window.hits < self.max_hits:
                return None
            return max(1, math.ceil(window.started + self.window_seconds - now))

    def hit(self, key: str) -> None:
        with self._lock:
            now = self.clock()
            window = self._current(key, now)
            if window is None:
                if len(self._windows) >= self.max_keys:
                    self._windows.pop(next(iter(self._windows)))
                window = self._windows[key] = Window(started=now)
            window.hits += 1

    def remaining(self, key: str) -> int:
        with self._lock:
            window = self._current(key, self.clock())
            return self.max_hits - (window.hits if window else 0)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


@dataclass
class RateLimitRule:
    name: str
    paths: frozenset[str]
    limiter: FixedWindowLimiter
    message: str
    failures_only: bool = False

    def matches(self, request: Request) -> bool:
        return request.method == "POST" and request.url.path.rstrip("/") in self.paths


def default_rules() -> list[RateLimitRule]:
    return [
        RateLimitRule(
            name="auth",
            paths=frozenset({"/api/auth/login", "/api/auth/register"}),
            limiter=FixedWindowLimiter(
                settings.auth_rate_limit_max_failures,
                settings.auth_rate_limit_window_delta,
            ),
            message="Too many authentication attempts, please try again later.",
            failures_only=True,
        ),
        RateLimitRule(
            name="password_reset",
            paths=frozenset({"/api/auth/forgot-password"}),
            limiter=FixedWindowLimiter(
                settings.password_reset_rate_limit_max,
                settings.password_reset_rate_limit_window_delta,
            ),
            message="Too many password reset attempts, please try again later.",
        ),
    ]


def client_key(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, rules: list[RateLimitRule] | None = None):
        super().__init__(app)
        self.rules = default_rules() if rules is None else rules

    async def dispatch(self, request: Request, call_next):
        rule = next((r for r in self.rules if r.matches(request)), None)
        if rule is None:
            return await call_next(request)

        key = client_key(request)
        retry_after = rule.limiter.retry_after(key)
        if retry_after is not None:
            logger.warning(
                f"Rate limit '{rule.name}' exceeded by {key} on {request.url.path} "
                f"(retry after {retry_after}s)"
            )
            exc = RateLimitExceeded(rule.message, retry_after=retry_after)
            return error_response(
                exc.detail,
                code=exc.status_code,
                error_type=exc.error_type,
                headers=exc.headers,
            )

        if not rule.failures_only:
            rule.limiter.hit(key)
        response = await call_next(request)
        if rule.failures_only and response.status_code >= 400:
            rule.limiter.hit(key)

        response.headers["X-RateLimit-Limit"] = str(rule.limiter.max_hits)
        response.headers["X-RateLimit-Remaining"] = str(rule.limiter.remaining(key))
        return response
