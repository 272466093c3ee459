"""In-process sliding-window rate limiting for route handlers.

Each ``RateLimiter`` is a FastAPI dependency keyed by client IP. Limits
are per-process; a multi-worker deployment gets one window per worker.
"""

import logging
import threading
import time
from collections import deque

from fastapi import HTTPException, Request, status

from config import settings

logger = logging.getLogger(__name__)

_registry: list["RateLimiter"] = []


class RateLimiter:
    """Allow at most ``max_requests`` per ``window_seconds`` per client."""

    def __init__(self, scope: str, max_requests: int, window_seconds: int, message: str):
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        _registry.append(self)

    def hit(self, key: str, now: float | None = None) -> float | None:
        """Record a request for ``key``.

        Returns None when allowed, otherwise the seconds until the oldest
        request in the window expires.
        """
        now = time.monotonic() if now is None else now
        cutoff = now - self.window_seconds
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.max_requests:
                return hits[0] + self.window_seconds - now
            hits.append(now)
        return None

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def __call__(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        client = request.client.host if request.client else "unknown"
        retry_after = self.hit(client)
        if retry_after is not None:
            logger.warning("Rate limit exceeded for %s on %s", client, self.scope)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(max(1, int(retry_after)))},
            )


def reset_rate_limits() -> None:
    """Clear every limiter's counters (used by tests)."""
    for limiter in _registry:
        limiter.reset()
