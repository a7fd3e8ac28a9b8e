from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Iterable, Optional, Tuple

from flask import Flask, request
from werkzeug.exceptions import TooManyRequests

API_PREFIX = "/api/"
AUTH_PREFIX = "/api/v1/auth/"

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """
    In-process sliding-window rate limiter.
    Keys should include both scope and identity (e.g. "auth:1.2.3.4").
    Each key keeps the timestamps of its hits inside the current window;
    keys whose window has emptied are dropped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _prune(self, key: str, cutoff: float) -> Deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def _sweep(self, now: float, per_seconds: int) -> None:
        if now - self._last_sweep < per_seconds:
            return
        cutoff = now - per_seconds
        for key in [k for k, hits in self._hits.items() if hits[-1] <= cutoff]:
            del self._hits[key]
        self._last_sweep = now

    def acquire(self, buckets: Iterable[Tuple[str, int]], *, per_seconds: int) -> Optional[str]:
        """
        Record one hit on every ``(key, limit)`` bucket, or on none of them.
        Returns the first key that is full, or None when the hit was recorded.
        """
        buckets = list(buckets)
        now = self._clock()
        cutoff = now - per_seconds
        with self._lock:
            self._sweep(now, per_seconds)
            for key, limit in buckets:
                if len(self._prune(key, cutoff)) >= limit:
                    return key
            for key, _ in buckets:
                self._hits.setdefault(key, deque()).append(now)
            return None

    def allow(self, key: str, *, limit: int, per_seconds: int) -> bool:
        return self.acquire([(key, limit)], per_seconds=per_seconds) is None

    def retry_after(self, key: str, *, per_seconds: int) -> int:
        """Seconds until the oldest hit for ``key`` leaves the window."""
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return 0
            return max(0, int(hits[0] + per_seconds - self._clock()) + 1)

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def init_rate_limiting(app: Flask, limiter: SlidingWindowLimiter | None = None) -> SlidingWindowLimiter:
    """
    Attach a limiter to ``app`` and check it before every /api request.
    Every client IP gets RATELIMIT_DEFAULT hits per window across the API,
    and RATELIMIT_AUTH hits per window on the /auth endpoints. A rejected
    request counts against none of its buckets.
    """
    limiter = limiter or SlidingWindowLimiter()
    app.extensions["rate_limiter"] = limiter

    @app.before_request
    def _enforce_rate_limits():
        if not app.config.get("RATELIMIT_ENABLED", True):
            return None
        if not request.path.startswith(API_PREFIX):
            return None

        window = app.config["RATELIMIT_WINDOW_SECONDS"]
        ident = request.remote_addr or "unknown"
        buckets = [(f"api:{ident}", app.config["RATELIMIT_DEFAULT"])]
        if request.path.startswith(AUTH_PREFIX):
            buckets.append((f"auth:{ident}", app.config["RATELIMIT_AUTH"]))

        blocked = limiter.acquire(buckets, per_seconds=window)
        if blocked is not None:
            logger.info("rate limit hit: %s %s", blocked, request.path)
            raise TooManyRequests(
                description="Too many requests, please try again later.",
                retry_after=limiter.retry_after(blocked, per_seconds=window),
            )
        return None

    return limiter
