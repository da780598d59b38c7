"""Fixed-window request limiting for the authentication routes."""

import logging
import time
from threading import Lock

from fastapi import HTTPException, Request, status

from backend.core import config

logger = logging.getLogger(__name__)


class RateLimiter:
    """Counts requests per client address inside a fixed time window.

    Instances are used as FastAPI dependencies; a request over the limit is
    rejected with 429 before the route handler runs.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = Lock()
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> float | None:
        """Record one request for ``key``.

        Returns None when the request is allowed, otherwise the number of
        seconds until the current window resets.
        """
        now = self._clock()
        with self._lock:
            window_start, count = self._windows.get(key, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0

            if count >= self.max_requests:
                return self.window_seconds - (now - window_start)

            self._windows[key] = (window_start, count + 1)
            self._prune(now)
            return None

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [
            key for key, (window_start, _) in self._windows.items()
            if now - window_start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def __call__(self, request: Request) -> None:
        client_key = request.client.host if request.client else 'unknown'
        retry_after = self.hit(client_key)
        if retry_after is None:
            return

        logger.warning('Rate limit exceeded for %s on %s', client_key, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail='Too many requests, please try again later.',
            headers={'Retry-After': str(max(1, int(retry_after)))},
        )


auth_rate_limiter = RateLimiter(
    max_requests=config.AUTH_RATE_LIMIT_MAX,
    window_seconds=config.AUTH_RATE_LIMIT_WINDOW_SECONDS,
)
