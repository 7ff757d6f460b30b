"""Admission gate for Spigot funding routes.

Features:
- Fixed-window request counter per client identity
- Atomic check-and-increment (Redis pipeline or in-process)
- In-memory fallback for development
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from .errors import RateLimitError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."

# Sweep expired windows once the in-memory store grows past this size
CLEANUP_THRESHOLD = 1000


@dataclass
class RateWindow:
    """Request count of one identity within the current window."""

    count: int
    started_at: float


@dataclass
class AdmissionResult:
    """Result of an admission check."""

    allowed: bool
    limit: int
    remaining: int  # Requests left in the current window
    reset_after: float  # Seconds until the window rolls over

    @property
    def retry_after(self) -> int:
        """Whole seconds a denied client should wait."""
        return max(1, math.ceil(self.reset_after))

    def raise_for_denial(self) -> None:
        """Raise RateLimitError if the request was denied."""
        if not self.allowed:
            raise RateLimitError(RATE_LIMIT_MESSAGE, retry_after=self.retry_after)


class AdmissionGate:
    """Fixed-window rate limiter keyed by client identity.

    Uses Redis when reachable so several replicas share one quota, with
    in-memory fallback for development/testing. Redis calls go through
    ``redis.asyncio``; ``connect()`` verifies the server before serving.

    Parameters
    ----------
    limit : int
        Maximum requests per identity per window.
    window_seconds : float
        Window length in seconds.
    redis_url : str | None
        Redis connection URL. If None, uses in-memory storage.
    clock : Callable[[], float]
        Monotonic time source, overridable in tests.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 60.0,
        redis_url: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._redis = None  # Redis instance or None

        # In-memory fallback storage
        self._windows: dict[str, RateWindow] = {}

        if redis_url:
            self._init_redis(redis_url)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _init_redis(self, redis_url: str) -> None:
        """Create the Redis client; the connection is verified by ``connect()``."""
        try:
            from redis.asyncio import Redis

            self._redis = Redis.from_url(redis_url, decode_responses=True)
        except Exception as e:
            logger.warning(
                "Invalid Redis URL, using in-memory admission control",
                extra={"error": str(e)},
            )
            self._redis = None

    async def connect(self) -> None:
        """Verify the Redis connection, falling back to in-memory storage."""
        if self._redis is None:
            return
        try:
            await self._redis.ping()
            logger.info("Redis connected for admission control")
        except Exception as e:
            logger.warning(
                "Redis connection failed, using in-memory admission control",
                extra={"error": str(e)},
            )
            await self.close()

    async def close(self) -> None:
        """Release the Redis connection pool."""
        if self._redis is not None:
            redis, self._redis = self._redis, None
            await redis.aclose()

    def _get_window_key(self, identity: str) -> str:
        return f"spigot:ratelimit:{identity}"

    async def check(self, identity: str) -> AdmissionResult:
        """Count a request from ``identity`` and decide whether to admit it.

        Parameters
        ----------
        identity : str
            Client identity (network address).

        Returns
        -------
        AdmissionResult
            Whether the request is allowed, with quota details.
        """
        if self._redis is not None:
            return await self._check_redis(identity)
        return self._check_memory(identity)

    def _result(self, count: int, reset_after: float) -> AdmissionResult:
        return AdmissionResult(
            allowed=count <= self._limit,
            limit=self._limit,
            remaining=max(0, self._limit - count),
            reset_after=max(0.0, reset_after),
        )

    async def _check_redis(self, identity: str) -> AdmissionResult:
        """Check-and-increment in a single MULTI/EXEC transaction."""
        key = self._get_window_key(identity)
        window_ms = int(self._window_seconds * 1000)

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            # Only the request that opens a window sets its expiry
            pipe.pexpire(key, window_ms, nx=True)
            pipe.pttl(key)
            count, _, ttl_ms = await pipe.execute()

        reset_after = ttl_ms / 1000 if ttl_ms and ttl_ms > 0 else self._window_seconds
        return self._result(int(count), reset_after)

    def _check_memory(self, identity: str) -> AdmissionResult:
        """Check-and-increment against the in-process store.

        Runs without awaiting, so the read and the write cannot interleave
        with another request on the event loop.
        """
        now = self._clock()
        window = self._windows.get(identity)

        if window is None or now > window.started_at + self._window_seconds:
            if len(self._windows) >= CLEANUP_THRESHOLD:
                self._sweep(now)
            window = RateWindow(count=1, started_at=now)
            self._windows[identity] = window
        else:
            window.count += 1

        return self._result(window.count, window.started_at + self._window_seconds - now)

    def _sweep(self, now: float) -> None:
        """Drop windows that have already rolled over."""
        expired = [
            identity
            for identity, window in self._windows.items()
            if now > window.started_at + self._window_seconds
        ]
        for identity in expired:
            del self._windows[identity]
        if expired:
            logger.debug("Expired rate windows removed", extra={"count": len(expired)})

    async def reset(self, identity: str) -> None:
        """Forget the window of an identity (admin function)."""
        if self._redis is not None:
            await self._redis.delete(self._get_window_key(identity))
        else:
            self._windows.pop(identity, None)

        logger.info("Rate window reset", extra={"identity": identity})
