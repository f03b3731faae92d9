"""CLI command modules."""

from . import cache

__all__ = [
    "cache",
]
