"""Ready-made request handlers."""

from .http import FetchError, HttpJsonHandler, RateLimitError, TransientStatusError

__all__ = [
    "FetchError",
    "HttpJsonHandler",
    "RateLimitError",
    "TransientStatusError",
]
