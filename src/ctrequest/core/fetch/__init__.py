"""Fetch utilities - throttling."""

from .throttling import RateLimitConfig, TokenBucket, build_rate_limiter

__all__ = [
    "RateLimitConfig",
    "TokenBucket",
    "build_rate_limiter",
]
