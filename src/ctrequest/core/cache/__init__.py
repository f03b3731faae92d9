"""Result caching - key derivation, records and storage backends."""

from __future__ import annotations

import time
from typing import Callable

from ctrequest.core.config.models import CacheType, RequestConfig
from ctrequest.core.errors import ConfigurationError

from .base import (
    ABSENT,
    CacheBackend,
    CacheLookup,
    CacheRecord,
    CacheWrite,
    NullCacheBackend,
)
from .file_store import FileCacheBackend
from .keys import canonical_json, derive_key


def build_cache_backend(
    config: RequestConfig,
    clock: Callable[[], float] = time.time,
) -> CacheBackend:
    """Resolve the configured cache type to a backend instance.

    Raises:
        ConfigurationError: If the cache directory cannot be created
    """
    if config.ctype is CacheType.FILE:
        try:
            return FileCacheBackend(config.cparams, clock=clock)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot create cache directory {config.cparams}",
                path=config.cparams,
                details=str(e),
            ) from e
    return NullCacheBackend(clock=clock)


__all__ = [
    "ABSENT",
    "CacheBackend",
    "CacheLookup",
    "CacheRecord",
    "CacheWrite",
    "FileCacheBackend",
    "NullCacheBackend",
    "build_cache_backend",
    "canonical_json",
    "derive_key",
]
