"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import ConfigurationError


def int_env_var(name: str, default: int, *, minimum: int = 0) -> int:
    """Read an optional integer environment variable."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value
