"""
Filesystem cache backend.

One JSON file per cache key, named <key>.json, inside a single directory.
Writes go through a temporary file and an atomic rename so a reader never
sees a half-written record; concurrent writers to one key are last-write-wins.
"""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Iterator

import orjson

from ctrequest.core.config.models import NO_EXPIRY
from ctrequest.core.errors import CacheIOError
from ctrequest.core.logging import get_logger

from .base import (
    MISS_ABSENT,
    MISS_CORRUPT,
    MISS_INVALID_PARAMS,
    MISS_IO_ERROR,
    MISS_STALE,
    CacheBackend,
    CacheLookup,
    CacheRecord,
    CacheWrite,
)
from .keys import canonical_json

logger = get_logger("cache.file")

RECORD_SUFFIX = ".json"


class FileCacheBackend(CacheBackend):
    """Cache backend storing records as JSON files in a directory."""

    def __init__(self, directory: Path | str, clock: Callable[[], float] = time.time):
        """Initialize the backend, creating the directory if needed.

        Args:
            directory: Directory holding the cache files
            clock: Source of Unix time in seconds
        """
        super().__init__(clock=clock)
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "file"

    def path_for(self, scope: str, params: Any) -> Path:
        """Return the file that holds the record for (scope, params)."""
        return self._path_for_key(self.key_for(scope, params))

    def _path_for_key(self, key: str) -> Path:
        return self.directory / f"{key}{RECORD_SUFFIX}"

    # -------------------------------------------------------------------------
    # Raw I/O (raises CacheIOError)
    # -------------------------------------------------------------------------

    def _read_record(self, path: Path) -> CacheRecord:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise CacheIOError(f"Cannot read cache file: {e}", path=path) from e

        try:
            return CacheRecord.from_dict(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValueError) as e:
            raise CacheIOError(f"Corrupt cache file: {e}", path=path) from e

    def _write_record(self, path: Path, record: CacheRecord) -> None:
        # params are stored in the same canonical form they were keyed by
        data = record.to_dict()
        data["params"] = orjson.Fragment(canonical_json(record.params))
        try:
            payload = orjson.dumps(data, option=orjson.OPT_NON_STR_KEYS)
        except TypeError as e:
            raise CacheIOError(f"Result is not serializable: {e}", path=path) from e

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheIOError(f"Cannot write cache file: {e}", path=path) from e

    # -------------------------------------------------------------------------
    # Backend interface
    # -------------------------------------------------------------------------

    def get_record(self, key: str) -> CacheRecord | None:
        """Load a record by key regardless of freshness, or None if unreadable."""
        try:
            return self._read_record(self._path_for_key(key))
        except CacheIOError:
            return None

    def lookup(self, scope: str, params: Any, config_expiry: int = NO_EXPIRY) -> CacheLookup:
        key = self.try_key(scope, params)
        if key is None:
            return CacheLookup.miss("", MISS_INVALID_PARAMS)
        path = self._path_for_key(key)

        if not path.exists():
            return CacheLookup.miss(key, MISS_ABSENT)

        try:
            record = self._read_record(path)
        except CacheIOError as e:
            reason = MISS_IO_ERROR if isinstance(e.__cause__, OSError) else MISS_CORRUPT
            logger.debug("Cache read failed: %s", e, extra={"cache_key": key, "reason": reason})
            return CacheLookup.miss(key, reason)

        if record.is_stale(self.clock(), config_expiry):
            return CacheLookup.miss(key, MISS_STALE, record=record)

        return CacheLookup.found(key, record)

    def put(self, scope: str, params: Any, value: Any, record_expiry: int = NO_EXPIRY) -> CacheWrite:
        key = self.try_key(scope, params)
        if key is None:
            return CacheWrite(key="", ok=False, error="params cannot be keyed")

        path = self._path_for_key(key)
        record = CacheRecord(
            scope=scope,
            params=params,
            timestamp=self.now(),
            cexpire=record_expiry if record_expiry else NO_EXPIRY,
            result=value,
        )

        try:
            self._write_record(path, record)
        except CacheIOError as e:
            return CacheWrite(key=key, ok=False, path=path, error=str(e))

        return CacheWrite(key=key, ok=True, path=path)

    def records(self) -> Iterator[tuple[str, CacheRecord]]:
        """Iterate every readable record in the directory, sorted by key."""
        for path in sorted(self.directory.glob(f"*{RECORD_SUFFIX}")):
            record = self.get_record(path.stem)
            if record is not None:
                yield path.stem, record

    def keys(self) -> list[str]:
        """All keys with a file in the directory, readable or not."""
        return sorted(p.stem for p in self.directory.glob(f"*{RECORD_SUFFIX}"))
