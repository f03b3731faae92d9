"""
ctrequest - Cached, throttled request mediation.

Wraps any request handler (an API client call, a database query, ...) with
parameter-keyed result caching and token-bucket rate limiting.
"""

__version__ = "0.1.0"
__app_name__ = "ctrequest"

from ctrequest.core.cache import ABSENT, CacheLookup, CacheRecord, CacheWrite, derive_key
from ctrequest.core.config import CacheType, RequestConfig, ThrottleType
from ctrequest.core.errors import CacheIOError, ConfigurationError, CTRequestError, HandlerError
from ctrequest.core.fetch import TokenBucket
from ctrequest.core.mediator import CTRequest

__all__ = [
    "__version__",
    "__app_name__",
    "ABSENT",
    "CTRequest",
    "CTRequestError",
    "CacheIOError",
    "CacheLookup",
    "CacheRecord",
    "CacheType",
    "CacheWrite",
    "ConfigurationError",
    "HandlerError",
    "RequestConfig",
    "ThrottleType",
    "TokenBucket",
    "derive_key",
]
