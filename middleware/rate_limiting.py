"""
Rate limiting for API endpoints.
In-memory sliding window keyed by user (when authenticated) or client IP.
"""
import logging
import threading
import time
from collections import deque
from functools import wraps
from typing import Deque, Dict, Optional, Tuple

from fastapi import Request, HTTPException, status

from config import settings

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60

PERIOD_SECONDS = {
    'second': 1,
    'minute': 60,
    'hour': 3600,
    'day': 86400,
}


def parse_rate(rate_limit: str) -> Tuple[int, int]:
    """Parse "10/minute" into (10, 60)."""
    try:
        limit_str, period = rate_limit.split('/')
        return int(limit_str), PERIOD_SECONDS[period.strip().lower()]
    except (ValueError, KeyError):
        raise ValueError(f"Invalid rate limit: {rate_limit!r}")


class SlidingWindowLimiter:
    """Thread-safe sliding window counter."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Record a request for key.
        Returns (allowed, retry_after_seconds).
        """
        now = self._clock()
        cutoff = now - window
        with self._lock:
            self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            self._windows[key] = window
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                retry_after = max(1, int(hits[0] + window - now) + 1)
                return False, retry_after
            hits.append(now)
            return True, 0

    def _sweep(self, now: float) -> None:
        """Forget keys whose newest hit has left their window. Caller holds the lock."""
        if now - self._last_sweep < SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        expired = [key for key, hits in self._hits.items() if not hits or hits[-1] <= now - self._windows[key]]
        for key in expired:
            del self._hits[key]
            del self._windows[key]
        if expired:
            logger.debug(f"[RATE-LIMIT] Dropped {len(expired)} idle key(s)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._windows.clear()


limiter = SlidingWindowLimiter()


def _find_request(args, kwargs) -> Optional[Request]:
    request = kwargs.get('request')
    if isinstance(request, Request):
        return request
    for arg in args:
        if isinstance(arg, Request):
            return arg
    return None


def client_key(request: Request) -> str:
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def limit(rate_limit: str):
    """
    Rate limiting decorator for endpoints.
    The endpoint must accept a `request: Request` parameter.
    """
    limit_num, period_seconds = parse_rate(rate_limit)

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            if request is not None and settings.rate_limit_enabled:
                rate_key = f"{client_key(request)}:{func.__name__}"
                allowed, retry_after = limiter.hit(rate_key, limit_num, period_seconds)
                if not allowed:
                    logger.warning(f"[RATE-LIMIT] {rate_key} exceeded {rate_limit}")
                    raise HTTPException(
                        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                        detail=f"Rate limit exceeded: {rate_limit}",
                        headers={"Retry-After": str(retry_after)}
                    )
            return await func(*args, **kwargs)
        return wrapper
    return decorator


def api_limit():
    """Standard API rate limit decorator."""
    return limit(f"{settings.rate_limit_per_minute}/minute")


def auth_limit():
    """Authentication rate limit decorator."""
    return limit("10/minute")


def generation_limit():
    """Generation rate limit decorator."""
    return limit("10/minute")
