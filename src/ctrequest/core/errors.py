"""
Exception hierarchy for ctrequest.

Only ConfigurationError and handler failures ever reach a caller of
CTRequest.issue. CacheIOError is raised inside cache backends and turned
into a typed miss or failed write before it leaves them.
"""

from __future__ import annotations

from pathlib import Path


class CTRequestError(Exception):
    """Base class for all ctrequest errors."""


class ConfigurationError(CTRequestError, TypeError):
    """Invalid mediator configuration, raised at construction time."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


class HandlerError(CTRequestError):
    """Failure raised by a request handler shipped with ctrequest.

    Arbitrary exceptions from user handlers are propagated as-is; this
    class only exists so bundled handlers share a common base.
    """

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class CacheIOError(CTRequestError):
    """Cache storage could not be read or written."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)
