"""
Configuration loader for YAML files.

Loads mediator options from YAML into a RequestConfig. The handler is
code, not data, so it is always supplied by the caller.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import ValidationError

from ctrequest.core.errors import ConfigurationError

from .models import RequestConfig

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

# Option names accepted in a config file
CONFIG_OPTIONS = ("scope", "ctype", "cparams", "cexpire", "ttype", "tparams")


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Raises:
        ConfigurationError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}", path=path)
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""

    def replacer(match: re.Match[str]) -> str:
        return os.environ.get(match.group(1), match.group(2) or "")

    if isinstance(data, str):
        return ENV_VAR_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def build_request_config(handler: Callable[..., Any], **options: Any) -> RequestConfig:
    """Validate options into a RequestConfig.

    Raises:
        ConfigurationError: If the handler is not callable or an option is invalid
    """
    if not callable(handler):
        raise ConfigurationError(
            f"handler must be callable, got {type(handler).__name__} instead."
        )

    try:
        return RequestConfig.model_validate({**options, "handler": handler})
    except ValidationError as e:
        raise ConfigurationError("Invalid request configuration", details=str(e)) from e


def load_request_config(
    path: Path | str,
    handler: Callable[..., Any],
    expand_env: bool = True,
) -> RequestConfig:
    """Load mediator options from a YAML file.

    Args:
        path: Path to the YAML file
        handler: Request handler to attach
        expand_env: Whether to expand environment variables

    Returns:
        Validated RequestConfig instance

    Raises:
        ConfigurationError: If the file or any option is invalid
    """
    path = Path(path)
    data = _load_yaml_file(path)

    if expand_env:
        data = _expand_env_vars(data)

    unknown = sorted(set(data) - set(CONFIG_OPTIONS))
    if unknown:
        raise ConfigurationError(
            f"Unknown option(s) in {path}: {', '.join(unknown)}",
            path=path,
        )

    try:
        return build_request_config(handler, **data)
    except ConfigurationError as e:
        raise ConfigurationError(
            f"Invalid request configuration in {path}",
            path=path,
            details=e.details or str(e),
        ) from e
