"""
Request mediator.

CTRequest wraps a request handler with parameter-keyed caching and
token-bucket throttling. Callers only see the handler's result or the
handler's own exception; cache faults never surface.

The throttle wait, the handler call and the cache write run as one task
shielded from the caller. A caller that times out or is cancelled stops
waiting, but the request still completes and its result is still cached.

Usage:
    req = CTRequest(handler=api.search, scope="search", ctype="file",
                    cparams="./cache/", ttype="RateLimiter", tparams=[1, 3000])
    result = await req.issue([{"q": "banana"}], check_cache=True)
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable

from ctrequest.core.cache import (
    ABSENT,
    CacheBackend,
    CacheLookup,
    build_cache_backend,
)
from ctrequest.core.config import RequestConfig, build_request_config, load_request_config
from ctrequest.core.errors import ConfigurationError
from ctrequest.core.fetch import TokenBucket, build_rate_limiter
from ctrequest.core.logging import get_contextual_logger


@dataclass
class MediatorStats:
    """Per-instance counters."""

    issued: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    handler_calls: int = 0
    handler_failures: int = 0
    cache_writes: int = 0
    cache_write_failures: int = 0
    throttle_wait_seconds: float = 0.0


def _check_params(params: Any) -> list[Any]:
    """Params are a sequence of positional arguments for the handler."""
    if isinstance(params, (str, bytes, Mapping)) or not isinstance(params, Sequence):
        raise TypeError(
            f"params must be a list or tuple of positional arguments, got {type(params).__name__}"
        )
    return list(params)


class CTRequest:
    """Cache-and-throttle facade around a request handler."""

    def __init__(
        self,
        config: RequestConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        **options: Any,
    ):
        """Initialize the mediator.

        Args:
            config: Prebuilt configuration; mutually exclusive with options
            clock: Unix-time source used for cache timestamps and expiry
            **options: handler, scope, ctype, cparams, cexpire, ttype, tparams

        Raises:
            ConfigurationError: If the handler is not callable, an option is
                invalid, or the cache directory cannot be created
        """
        if config is None:
            if "handler" not in options:
                raise ConfigurationError("handler must be callable, got NoneType instead.")
            handler = options.pop("handler")
            config = build_request_config(handler, **options)
        elif options:
            raise ConfigurationError("Pass either a RequestConfig or option keywords, not both")

        self._config = config
        self._backend: CacheBackend = build_cache_backend(config, clock=clock)
        self._limiter: TokenBucket | None = build_rate_limiter(config)
        self._stats = MediatorStats()
        self._pending: set[asyncio.Future[Any]] = set()
        self.logger = get_contextual_logger("mediator", scope=config.scope or None)

    @classmethod
    def from_yaml(cls, path: Path | str, handler: Callable[..., Any], **kwargs: Any) -> "CTRequest":
        """Build a mediator from a YAML options file."""
        return cls(load_request_config(path, handler), **kwargs)

    @property
    def config(self) -> RequestConfig:
        return self._config

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    @property
    def limiter(self) -> TokenBucket | None:
        return self._limiter

    @property
    def cache_enabled(self) -> bool:
        return self._backend.enabled

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def issue(
        self,
        params: Sequence[Any],
        check_cache: bool = False,
        skip_cache_write: bool = False,
    ) -> Any:
        """Issue a request through the cache and the rate limiter.

        Cancelling the caller (for instance through asyncio.wait_for) does
        not cancel the request; see wait_pending.

        Args:
            params: Positional arguments for the handler
            check_cache: Return a fresh cached result instead of calling the handler
            skip_cache_write: Do not store the handler's result

        Returns:
            The handler's (or the cache's) result

        Raises:
            Exception: Whatever the handler raised, unchanged
        """
        args = _check_params(params)
        self._stats.issued += 1

        if check_cache:
            found = self.lookup(args)
            if found.hit:
                self._stats.cache_hits += 1
                self.logger.debug("Cache hit", extra={"cache_key": found.key})
                return found.value
            self._stats.cache_misses += 1
            self.logger.debug(
                "Cache miss", extra={"cache_key": found.key, "reason": found.reason}
            )

        task = asyncio.ensure_future(self._fetch(args, skip_cache_write))
        self._pending.add(task)
        task.add_done_callback(self._request_done)
        return await asyncio.shield(task)

    async def _fetch(self, args: list[Any], skip_cache_write: bool) -> Any:
        if self._limiter is not None:
            waited = await self._limiter.acquire()
            self._stats.throttle_wait_seconds += waited

        result = await self._call_handler(args)

        if not skip_cache_write:
            self._store(args, result)

        return result

    def _request_done(self, task: asyncio.Future[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.debug("Handler failed: %r", exc, exc_info=exc)

    async def _call_handler(self, args: list[Any]) -> Any:
        self._stats.handler_calls += 1
        try:
            result = self._config.handler(*args)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            self._stats.handler_failures += 1
            raise
        return result

    async def wait_pending(self) -> None:
        """Wait for requests whose callers stopped waiting to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _store(self, args: list[Any], result: Any) -> None:
        if not self._backend.enabled:
            return

        written = self._backend.put(self._config.scope, args, result, self._config.cexpire)
        if written.ok:
            self._stats.cache_writes += 1
        else:
            self._stats.cache_write_failures += 1
            self.logger.warning(
                "Cache write skipped: %s",
                written.error,
                extra={"cache_key": written.key},
            )

    # -------------------------------------------------------------------------
    # Cache reads
    # -------------------------------------------------------------------------

    def lookup(self, params: Sequence[Any]) -> CacheLookup:
        """Look up the cached result for params, with the reason for a miss."""
        return self._backend.lookup(self._config.scope, _check_params(params), self._config.cexpire)

    def cache(self, params: Sequence[Any]) -> Any:
        """Return the fresh cached result for params, or ABSENT."""
        found = self.lookup(params)
        return found.value if found.hit else ABSENT

    def bulkcache(self, params_list: Sequence[Sequence[Any]]) -> list[Any]:
        """Cache-only lookup for many requests, in input order."""
        return [self.cache(params) for params in params_list]

    def stats(self) -> dict[str, Any]:
        """Get mediator statistics."""
        data: dict[str, Any] = asdict(self._stats)
        data["scope"] = self._config.scope
        data["cache_backend"] = self._backend.name
        data["limiter"] = self._limiter.stats() if self._limiter is not None else None
        data["pending"] = len(self._pending)
        return data
