"""Request limits for WSGI apps: concurrency caps and rate limiting."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from werkzeug.wrappers import Response


def _unavailable(environ, start_response):
    response = Response(
        "service unavailable\n", status=503, content_type="text/plain; charset=utf-8"
    )
    return response(environ, start_response)


class RateLimiter:
    """Token bucket allowing ``rate`` events per second with bursts of ``burst``."""

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self._rate = float(rate)
        self._burst = burst
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = float(burst)
        self._last = clock()

    def wait(self) -> float:
        """Block until an event is allowed; return the seconds waited."""
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._tokens = min(float(self._burst), self._tokens + elapsed * self._rate)
            self._last = max(now, self._last)
            self._tokens -= 1.0
            delay = -self._tokens / self._rate if self._tokens < 0 else 0.0
        if delay > 0:
            self._sleep(delay)
        return delay


def with_concurrency_limit(app, max_requests: int):
    """Serve at most ``max_requests`` requests at once; answer 503 beyond that."""
    if max_requests <= 0:
        return app
    slots = threading.BoundedSemaphore(max_requests)

    def limited(environ, start_response):
        if not slots.acquire(blocking=False):
            return _unavailable(environ, start_response)
        try:
            result = app(environ, start_response)
            try:
                return list(result)
            finally:
                close = getattr(result, "close", None)
                if close is not None:
                    close()
        finally:
            slots.release()

    return limited


def with_rate_limit(app, rps: int):
    """Delay requests so that ``app`` sees at most ``rps`` requests per second."""
    if rps <= 0:
        return app
    limiter = RateLimiter(rps, 1)

    def limited(environ, start_response):
        limiter.wait()
        return app(environ, start_response)

    return limited