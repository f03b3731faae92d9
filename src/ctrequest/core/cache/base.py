"""
Cache backend base classes and data structures.

Backends never raise on storage faults. Every lookup returns a CacheLookup
and every write returns a CacheWrite, so callers branch on a value rather
than catching exceptions.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from ctrequest.core.config.models import NO_EXPIRY

from .keys import derive_key


class _Absent:
    """Sentinel for 'no cached value', distinct from any stored value."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()


# Lookup outcomes
HIT = "hit"
MISS_ABSENT = "absent"
MISS_CORRUPT = "corrupt"
MISS_STALE = "stale"
MISS_IO_ERROR = "io_error"
MISS_DISABLED = "disabled"
MISS_INVALID_PARAMS = "invalid_params"


@dataclass(frozen=True)
class CacheRecord:
    """One persisted request result."""

    scope: str
    params: Any
    timestamp: int
    cexpire: int
    result: Any

    def age(self, now: float) -> float:
        """Seconds elapsed since the record was written."""
        return now - self.timestamp

    def is_stale(self, now: float, config_expiry: int = NO_EXPIRY) -> bool:
        """Check both expiry sources; either one can invalidate the record."""
        age = self.age(now)
        if self.cexpire > 0 and age > self.cexpire:
            return True
        if config_expiry is not None and config_expiry > 0 and age > config_expiry:
            return True
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            "params": self.params,
            "timestamp": self.timestamp,
            "cexpire": self.cexpire,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheRecord":
        """Build a record from decoded JSON.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        if not isinstance(data, dict) or "result" not in data:
            raise ValueError("cache record must be an object with a 'result' field")

        timestamp = data.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("cache record has no numeric 'timestamp'")

        cexpire = data.get("cexpire", NO_EXPIRY)
        if isinstance(cexpire, bool) or not isinstance(cexpire, (int, float)):
            cexpire = NO_EXPIRY

        return cls(
            scope=data.get("scope") or "",
            params=data.get("params"),
            timestamp=int(timestamp),
            cexpire=int(cexpire),
            result=data["result"],
        )


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache lookup: a hit carrying a value, or a miss with a reason."""

    key: str
    reason: str
    value: Any = ABSENT
    record: CacheRecord | None = None

    @property
    def hit(self) -> bool:
        return self.reason == HIT

    @classmethod
    def found(cls, key: str, record: CacheRecord) -> "CacheLookup":
        return cls(key=key, reason=HIT, value=record.result, record=record)

    @classmethod
    def miss(cls, key: str, reason: str, record: CacheRecord | None = None) -> "CacheLookup":
        return cls(key=key, reason=reason, record=record)


@dataclass(frozen=True)
class CacheWrite:
    """Result of a cache write."""

    key: str
    ok: bool
    path: Path | None = None
    error: str | None = None


class CacheBackend(ABC):
    """Abstract base class for cache backends."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""

    @property
    def enabled(self) -> bool:
        """Whether this backend actually stores anything."""
        return True

    def key_for(self, scope: str, params: Any) -> str:
        return derive_key(scope, params)

    def try_key(self, scope: str, params: Any) -> str | None:
        """Like key_for, but None when the params cannot be keyed."""
        try:
            return self.key_for(scope, params)
        except (TypeError, ValueError):
            return None

    def now(self) -> int:
        """Current time in whole Unix seconds."""
        return round(self.clock())

    @abstractmethod
    def lookup(self, scope: str, params: Any, config_expiry: int = NO_EXPIRY) -> CacheLookup:
        """Return the fresh cached result for (scope, params), or a miss."""

    @abstractmethod
    def put(self, scope: str, params: Any, value: Any, record_expiry: int = NO_EXPIRY) -> CacheWrite:
        """Store a result for (scope, params), replacing any previous one."""

    def records(self) -> Iterator[tuple[str, CacheRecord]]:
        """Iterate (key, record) pairs held by this backend."""
        return iter(())


class NullCacheBackend(CacheBackend):
    """Backend used when caching is disabled. Stores nothing."""

    @property
    def name(self) -> str:
        return "none"

    @property
    def enabled(self) -> bool:
        return False

    def lookup(self, scope: str, params: Any, config_expiry: int = NO_EXPIRY) -> CacheLookup:
        return CacheLookup.miss(self.try_key(scope, params) or "", MISS_DISABLED)

    def put(self, scope: str, params: Any, value: Any, record_expiry: int = NO_EXPIRY) -> CacheWrite:
        return CacheWrite(key=self.try_key(scope, params) or "", ok=False, error="caching disabled")
