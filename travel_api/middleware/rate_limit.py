"""
Per-client token-bucket rate limiting.

Each ``ClientRateLimiter`` owns a registry of buckets keyed by client IP,
guarded by a single lock, plus a background sweeper thread that drops buckets
idle for longer than the configured TTL. Several limiters run side by side
with different parameters for different route classes; they share nothing.
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import Response
from slowapi.util import get_remote_address

from travel_api.config import Settings
from travel_api.errors import RateLimitExceeded, error_response
from travel_api.logging import get_logger

logger = get_logger("travel_api.rate_limit")

# Route classes, from loosest to strictest
GLOBAL = "global"
AUTH = "auth"
BUY = "buy"
ADMIN_UPLOAD = "admin_upload"
LIMIT_CLASSES = (GLOBAL, AUTH, BUY, ADMIN_UPLOAD)

# Paths never counted against the global limiter
EXEMPT_PATHS = frozenset({"/healthz", "/readyz", "/api/v1/health"})


@dataclass
class ClientBucket:
    """Token bucket for one client. Only touched under the limiter's lock."""

    tokens: float
    capacity: int
    refill_rate: float
    last_refill: float
    last_seen: float

    def refill(self, now: float) -> None:
        # Stale readings never rewind last_refill
        if now <= self.last_refill:
            return
        elapsed = now - self.last_refill
        self.tokens = min(float(self.capacity), self.tokens + elapsed * self.refill_rate)
        self.last_refill = now


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: float = 0.0

    @property
    def retry_after_seconds(self) -> int:
        """Retry hint rounded up to whole seconds, as sent in ``Retry-After``."""
        return max(1, math.ceil(self.retry_after))


class ClientRateLimiter:
    """Token-bucket limiter keyed by client, with idle-bucket expiry."""

    def __init__(
        self,
        rate: float,
        burst: int,
        idle_ttl: float,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] | None = None,
        name: str = "default",
        start_sweeper: bool = True,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        if idle_ttl <= 0:
            raise ValueError("idle_ttl must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")

        self.rate = float(rate)
        self.burst = int(burst)
        self.idle_ttl = float(idle_ttl)
        self.sweep_interval = float(sweep_interval)
        self.name = name
        self._clock = clock or time.monotonic

        self._buckets: dict[str, ClientBucket] = {}
        self._lock = threading.Lock()

        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None
        if start_sweeper:
            self.start()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def __contains__(self, client_key: str) -> bool:
        with self._lock:
            return client_key in self._buckets

    def allow(self, client_key: str) -> bool:
        """Consume one token for ``client_key``; False means retry later."""
        return self.check(client_key).allowed

    def check(self, client_key: str) -> RateLimitDecision:
        """Consume one token for ``client_key`` and report the outcome."""
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(client_key)
            if bucket is None:
                bucket = ClientBucket(
                    tokens=float(self.burst),
                    capacity=self.burst,
                    refill_rate=self.rate,
                    last_refill=now,
                    last_seen=now,
                )
                self._buckets[client_key] = bucket

            bucket.refill(now)
            bucket.last_seen = max(bucket.last_seen, now)

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return RateLimitDecision(allowed=True)

            missing = 1.0 - bucket.tokens
            return RateLimitDecision(allowed=False, retry_after=missing / self.rate)

    def sweep(self, now: float | None = None) -> int:
        """Remove buckets idle for longer than ``idle_ttl``; return how many."""
        with self._lock:
            if now is None:
                now = self._clock()
            expired = [
                key for key, bucket in self._buckets.items() if now - bucket.last_seen > self.idle_ttl
            ]
            for key in expired:
                del self._buckets[key]

        if expired:
            logger.debug("rate limit buckets swept", limiter=self.name, removed=len(expired))
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    # --- Sweeper lifecycle ---

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        """Start the background sweeper if it is not already running."""
        if self.running:
            return
        self._stop_event = threading.Event()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(self._stop_event,),
            name=f"rate-limit-sweeper-{self.name}",
            daemon=True,
        )
        self._sweeper.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the background sweeper. Safe to call more than once."""
        self._stop_event.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout)

    def _sweep_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.sweep_interval):
            self.sweep()


class RateLimiters:
    """The set of independent limiters, one per route class."""

    def __init__(self, limiters: dict[str, ClientRateLimiter]):
        self._limiters = dict(limiters)

    @classmethod
    def from_settings(cls, config: Settings, start_sweeper: bool = True) -> "RateLimiters":
        limiters = {}
        for name in LIMIT_CLASSES:
            params = config.rate_limit_class(name)
            limiters[name] = ClientRateLimiter(
                rate=params.rate,
                burst=params.burst,
                idle_ttl=params.idle_ttl,
                sweep_interval=params.sweep_interval,
                name=name,
                start_sweeper=start_sweeper,
            )
        return cls(limiters)

    def __getitem__(self, name: str) -> ClientRateLimiter:
        return self._limiters[name]

    def __iter__(self):
        return iter(self._limiters.values())

    def start_all(self) -> None:
        for limiter in self:
            limiter.start()

    def stop_all(self) -> None:
        for limiter in self:
            limiter.stop()

    def reset_all(self) -> None:
        for limiter in self:
            limiter.reset()


def client_key(request: Request, trust_forwarded_for: bool = False) -> str:
    """Identify the client by IP, optionally honouring ``X-Forwarded-For``."""
    if trust_forwarded_for:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first
    return get_remote_address(request)


def _check_request(request: Request, limit_class: str) -> RateLimitDecision:
    limiters: RateLimiters = request.app.state.rate_limiters
    config: Settings = request.app.state.settings
    key = client_key(request, config.trust_forwarded_for)
    decision = limiters[limit_class].check(key)
    if not decision.allowed:
        logger.debug(
            "rate limit exceeded",
            limiter=limit_class,
            client=key,
            path=request.url.path,
            retry_after=decision.retry_after_seconds,
        )
    return decision


def rate_limit(limit_class: str):
    """Build a dependency that charges one token from ``limit_class``."""
    if limit_class not in LIMIT_CLASSES:
        raise ValueError(f"Unknown rate limit class: {limit_class}")

    async def _rate_limit(request: Request) -> None:
        decision = _check_request(request, limit_class)
        if not decision.allowed:
            raise RateLimitExceeded(decision.retry_after_seconds)

    return _rate_limit


async def global_rate_limit(request: Request, call_next) -> Response:
    """HTTP middleware applying the global limiter to every request outside EXEMPT_PATHS."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    decision = _check_request(request, GLOBAL)
    if not decision.allowed:
        return error_response(
            RateLimitExceeded(decision.retry_after_seconds),
            getattr(request.state, "request_id", None),
        )
    return await call_next(request)
