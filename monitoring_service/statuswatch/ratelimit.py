"""
Fixed-window request admission control.

Each client key gets a counter and a window end. The first request opens a
window of ``window_seconds``; requests beyond ``max_requests`` inside the
window are rejected with the time left until the window ends. Once the
window has passed, the next request starts a fresh window with a count of
one. Windows are fixed, not sliding.

The record map is bounded by ``max_clients``: before a new key is added at
capacity, expired records are dropped and, if that is not enough, the
least recently seen client is evicted.

Concurrent requests from one key may be slightly over- or under-counted.
"""

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from statuswatch.telemetry import RATE_LIMITED_REQUESTS

logger = logging.getLogger("ratelimit")

DEFAULT_MAX_REQUESTS = 60
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_MAX_CLIENTS = 10_000


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: float | None = None

    @property
    def retry_after_header(self) -> str | None:
        if self.retry_after is None:
            return None
        return str(max(1, math.ceil(self.retry_after)))


class FixedWindowRateLimiter:
    """Per-client fixed-window counter.

    Args:
        max_requests: Requests allowed per window.
        window_seconds: Window length.
        max_clients: Upper bound on tracked client records.
        clock: Monotonic clock in seconds.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_clients: int = DEFAULT_MAX_CLIENTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._clock = clock
        self._records: OrderedDict[str, RateLimitRecord] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            record = self._records.get(key)

            if record is None:
                self._make_room(now)
                self._records[key] = RateLimitRecord(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(allowed=True, count=1)

            self._records.move_to_end(key)

            if now > record.reset_at:
                record.count = 1
                record.reset_at = now + self.window_seconds
                return RateLimitDecision(allowed=True, count=1)

            record.count += 1
            if record.count > self.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    count=record.count,
                    retry_after=record.reset_at - now,
                )
            return RateLimitDecision(allowed=True, count=record.count)

    def allow(self, key: str) -> bool:
        return self.check(key).allowed

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def _make_room(self, now: float) -> None:
        if len(self._records) < self.max_clients:
            return
        expired = [k for k, r in self._records.items() if now > r.reset_at]
        for key in expired:
            del self._records[key]
        while self._records and len(self._records) >= self.max_clients:
            self._records.popitem(last=False)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the limit with 429 and a ``Retry-After`` header."""

    def __init__(self, app, limiter: FixedWindowRateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        client_key = request.client.host if request.client else "unknown"
        decision = self.limiter.check(client_key)

        if not decision.allowed:
            RATE_LIMITED_REQUESTS.inc()
            logger.warning("Rate limit exceeded for client: %s", client_key)
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "Too Many Requests",
                    "message": "Rate limit exceeded. Please try again later.",
                },
                headers={"Retry-After": decision.retry_after_header},
            )

        return await call_next(request)
