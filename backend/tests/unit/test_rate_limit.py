"""Tests for the in-process rate limiter."""

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from config import settings
from utils.rate_limit import RateLimiter, reset_rate_limits


def _request(host: str = "10.0.0.1") -> Request:
    return Request({"type": "http", "method": "POST", "path": "/", "headers": [], "client": (host, 1234)})


class TestRateLimiterHit:
    """Tests for RateLimiter.hit."""

    def test_allows_up_to_limit(self):
        limiter = RateLimiter("test", max_requests=3, window_seconds=60, message="slow down")
        assert [limiter.hit("a", now=t) for t in (0, 1, 2)] == [None, None, None]

    def test_blocks_over_limit_with_retry_after(self):
        limiter = RateLimiter("test", max_requests=2, window_seconds=60, message="slow down")
        limiter.hit("a", now=10)
        limiter.hit("a", now=20)
        assert limiter.hit("a", now=30) == pytest.approx(40)

    def test_window_slides(self):
        limiter = RateLimiter("test", max_requests=2, window_seconds=60, message="slow down")
        limiter.hit("a", now=0)
        limiter.hit("a", now=30)
        assert limiter.hit("a", now=60) is None
        assert limiter.hit("a", now=61) is not None

    def test_keys_are_independent(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, message="slow down")
        assert limiter.hit("a", now=0) is None
        assert limiter.hit("b", now=0) is None
        assert limiter.hit("a", now=1) is not None

    def test_reset_rate_limits_clears_all(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, message="slow down")
        limiter.hit("a", now=0)
        reset_rate_limits()
        assert limiter.hit("a", now=1) is None


class TestRateLimiterDependency:
    """Tests for RateLimiter as a FastAPI dependency."""

    def test_raises_429(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, message="slow down")
        limiter(_request())

        with pytest.raises(HTTPException) as exc_info:
            limiter(_request())

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "slow down"
        assert int(exc_info.value.headers["Retry-After"]) >= 1

    def test_keyed_by_client_ip(self):
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, message="slow down")
        limiter(_request("10.0.0.1"))
        limiter(_request("10.0.0.2"))

    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, message="slow down")
        for _ in range(5):
            limiter(_request())
