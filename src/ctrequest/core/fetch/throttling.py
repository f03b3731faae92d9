"""
Rate limiting and throttling utilities.

Provides a token-bucket limiter shared by every request issued through one
mediator. Tokens refill continuously; waiters are served in arrival order.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable

from ctrequest.core.config.models import RequestConfig, ThrottleType
from ctrequest.core.logging import get_logger

logger = get_logger("throttle")


@dataclass(frozen=True)
class RateLimitConfig:
    """Configuration for a token bucket."""

    tokens_per_interval: int
    interval_ms: int

    @property
    def rate(self) -> float:
        """Refill rate in tokens per second."""
        return self.tokens_per_interval / (self.interval_ms / 1000.0)


class TokenBucket:
    """Async token-bucket rate limiter.

    Features:
    - Starts full, holding `tokens_per_interval` tokens
    - Continuous refill at tokens_per_interval / interval_ms
    - FIFO waiters (the lock is held while a waiter sleeps)
    - Async-safe with a lock, usable from successive event loops
    """

    def __init__(
        self,
        tokens_per_interval: int,
        interval_ms: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the bucket.

        Args:
            tokens_per_interval: Bucket capacity and tokens added per interval
            interval_ms: Refill interval in milliseconds
            clock: Monotonic clock in seconds
        """
        if tokens_per_interval <= 0 or interval_ms <= 0:
            raise ValueError("tokens_per_interval and interval_ms must be positive")

        self.config = RateLimitConfig(tokens_per_interval, interval_ms)
        self._clock = clock
        self._tokens = float(tokens_per_interval)
        self._last_refill = clock()
        # created on first use and replaced when the bucket moves to another loop
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

        self._granted = 0
        self._total_wait = 0.0

    @property
    def capacity(self) -> int:
        return self.config.tokens_per_interval

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.config.rate)
        self._last_refill = now

    def _check_count(self, count: int) -> None:
        if count <= 0:
            raise ValueError("count must be positive")
        if count > self.capacity:
            raise ValueError(
                f"Requested {count} tokens exceeds bucket capacity {self.capacity}"
            )

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @property
    def available(self) -> float:
        """Tokens currently in the bucket."""
        self._refill()
        return self._tokens

    async def acquire(self, count: int = 1) -> float:
        """Wait until `count` tokens are available and consume them.

        Args:
            count: Number of tokens to remove

        Returns:
            Seconds spent waiting
        """
        self._check_count(count)

        async with self._get_lock():
            self._refill()
            waited = 0.0

            if self._tokens < count:
                waited = (count - self._tokens) / self.config.rate
                logger.debug("Throttling for %.3fs", waited, extra={"waited": waited})
                await asyncio.sleep(waited)
                self._refill()

            self._tokens = max(0.0, self._tokens - count)
            self._granted += count
            self._total_wait += waited
            return waited

    def try_acquire(self, count: int = 1) -> bool:
        """Consume `count` tokens without waiting.

        Returns:
            True if the tokens were taken, False if the bucket is short
            or another caller is already waiting
        """
        self._check_count(count)

        if self._lock is not None and self._lock.locked():
            return False

        self._refill()
        if self._tokens < count:
            return False

        self._tokens -= count
        self._granted += count
        return True

    def stats(self) -> dict[str, Any]:
        """Get limiter statistics."""
        return {
            "tokens_per_interval": self.config.tokens_per_interval,
            "interval_ms": self.config.interval_ms,
            "available": self.available,
            "granted": self._granted,
            "total_wait_seconds": self._total_wait,
        }


def build_rate_limiter(
    config: RequestConfig,
    clock: Callable[[], float] = time.monotonic,
) -> TokenBucket | None:
    """Create the limiter selected by the config, or None when unthrottled."""
    if config.ttype is ThrottleType.RATE_LIMITER and config.tparams is not None:
        tokens, interval_ms = config.tparams
        return TokenBucket(tokens, interval_ms, clock=clock)
    return None
