"""
Pydantic configuration models for ctrequest.

A RequestConfig is built once per mediator. Derived defaults (cache
directory, expiry sentinel) are filled in during validation and the model
is frozen afterwards.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Expiry value meaning "no expiry from this source"
NO_EXPIRY = -1

DEFAULT_CACHE_DIR = Path("./")


# =============================================================================
# Enums
# =============================================================================


class CacheType(str, Enum):
    """Supported cache backends."""

    FILE = "file"


class ThrottleType(str, Enum):
    """Supported throttling strategies."""

    RATE_LIMITER = "RateLimiter"


def _coerce_enum(enum_cls: type[Enum], value: Any) -> Enum | None:
    """Map a raw option to an enum member, or None when unsupported."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


# =============================================================================
# Request Configuration
# =============================================================================


class RequestConfig(BaseModel):
    """Options for one CTRequest instance."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    handler: Callable[..., Any] = Field(
        description="Callable invoked with the request params as positional arguments",
    )
    scope: str = Field(
        default="",
        description="Namespace prepended to params when deriving cache keys",
    )
    ctype: CacheType | None = Field(
        default=None,
        description="Cache backend; unsupported values disable caching",
    )
    cparams: Path | None = Field(
        default=None,
        description="Cache directory for the file backend",
    )
    cexpire: int = Field(
        default=NO_EXPIRY,
        description="Configuration-level expiry in seconds (-1 for none)",
    )
    ttype: ThrottleType | None = Field(
        default=None,
        description="Throttling strategy; unsupported values disable throttling",
    )
    tparams: tuple[int, int] | None = Field(
        default=None,
        description="(tokens_per_interval, interval_ms) for the rate limiter",
    )

    @field_validator("ctype", mode="before")
    @classmethod
    def unsupported_ctype_disables_cache(cls, v: Any) -> CacheType | None:
        return _coerce_enum(CacheType, v)

    @field_validator("ttype", mode="before")
    @classmethod
    def unsupported_ttype_disables_throttle(cls, v: Any) -> ThrottleType | None:
        return _coerce_enum(ThrottleType, v)

    @field_validator("cexpire", mode="before")
    @classmethod
    def falsy_expiry_means_none(cls, v: Any) -> Any:
        return v or NO_EXPIRY

    @field_validator("tparams")
    @classmethod
    def tparams_positive(cls, v: tuple[int, int] | None) -> tuple[int, int] | None:
        """Ensure both limiter parameters are positive."""
        if v is not None and (v[0] <= 0 or v[1] <= 0):
            raise ValueError("tparams must be (tokens_per_interval > 0, interval_ms > 0)")
        return v

    @model_validator(mode="before")
    @classmethod
    def default_cache_dir(cls, data: Any) -> Any:
        """The file backend falls back to the current directory."""
        if isinstance(data, dict) and data.get("ctype") == CacheType.FILE.value and not data.get("cparams"):
            data = {**data, "cparams": DEFAULT_CACHE_DIR}
        return data

    @property
    def cache_enabled(self) -> bool:
        """True when a supported cache backend is configured."""
        return self.ctype is not None

    @property
    def throttle_enabled(self) -> bool:
        """True when a rate limiter will be built for this config."""
        return self.ttype is not None and self.tparams is not None

    def options(self) -> dict[str, Any]:
        """Return the config as plain option values (handler excluded)."""
        return {
            "scope": self.scope,
            "ctype": self.ctype.value if self.ctype else None,
            "cparams": str(self.cparams) if self.cparams is not None else None,
            "cexpire": self.cexpire,
            "ttype": self.ttype.value if self.ttype else None,
            "tparams": list(self.tparams) if self.tparams else None,
        }
