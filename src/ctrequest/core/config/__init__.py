"""Configuration loading and validation."""

from .models import (
    NO_EXPIRY,
    CacheType,
    RequestConfig,
    ThrottleType,
)
from .loader import build_request_config, load_request_config

__all__ = [
    "NO_EXPIRY",
    # Enums
    "CacheType",
    "ThrottleType",
    # Config models
    "RequestConfig",
    # Loaders
    "build_request_config",
    "load_request_config",
]
