"""In-memory request throttling and client identification."""

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, Optional

from fastapi import HTTPException, Request, status


def get_client_ip(request: Request) -> str:
    """Extracts client IP address, considering common proxy headers."""
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        # Take the first IP in the chain
        first = x_forwarded_for.split(",")[0].strip()
        if first:
            return first
    client = request.client
    if client and client.host:
        return client.host
    return "unknown"


class RateLimiter:
    """Sliding-window limiter: at most max_requests per window_seconds per key."""

    def __init__(self, scope: str, max_requests: int, window_seconds: int,
                 clock: Callable[[], float] = time.monotonic):
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._store: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def check(self, key: str) -> None:
        """Record a request for key, raising HTTP 429 if the window is full."""
        now = self._clock()
        with self._lock:
            request_times = self._store.setdefault(key, deque())
            while request_times and request_times[0] <= now - self.window_seconds:
                request_times.popleft()
            if len(request_times) >= self.max_requests:
                retry_after = int(request_times[0] + self.window_seconds - now) + 1
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail={
                        "error": "Too many requests",
                        "message": f"Too many {self.scope} requests, please try again later. "
                                   f"Limit: {self.max_requests} per {self.window_seconds}s.",
                        "retryAfterSeconds": max(retry_after, 1),
                    },
                    headers={"Retry-After": str(max(retry_after, 1))},
                )
            request_times.append(now)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._store.clear()
            else:
                self._store.pop(key, None)


def rate_limit(scope: str):
    """
    FastAPI dependency that throttles the calling client under the limiter
    registered for scope in app.state.rate_limiters. Scopes without a
    registered limiter are not throttled.
    """
    def dependency(request: Request) -> None:
        limiters = getattr(request.app.state, "rate_limiters", {})
        limiter = limiters.get(scope)
        if limiter is not None:
            limiter.check(get_client_ip(request))

    return dependency
