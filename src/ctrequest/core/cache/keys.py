"""
Cache key derivation.

Keys are the MD5 hex digest of the scope followed by a canonical JSON
rendering of the request params. Object keys are sorted at every depth so
that equal mappings built in a different order share one cache entry.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import orjson

CANONICAL_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS


def canonical_json(params: Any) -> str:
    """Serialize params deterministically (sorted keys, compact).

    orjson covers the common case. Values it rejects (integers beyond 64
    bits) go through the json module with the same key order and
    separators; anything neither can encode is rendered as a JSON string
    of its repr.
    """
    try:
        return orjson.dumps(params, default=str, option=CANONICAL_OPTIONS).decode("utf-8")
    except orjson.JSONEncodeError:
        pass

    try:
        return json.dumps(
            params,
            default=str,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
    except (TypeError, ValueError):
        return json.dumps(repr(params), ensure_ascii=False)


def derive_key(scope: str, params: Any) -> str:
    """Return the 32-character cache key for (scope, params)."""
    payload = (scope or "") + canonical_json(params)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()
