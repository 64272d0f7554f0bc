"""Application configuration helpers."""

from __future__ import annotations

from .env import int_env_var
from .errors import ConfigurationError
from .service import ServiceConfig, get_service_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ServiceConfig",
    "StorageConfig",
    "get_database_config",
    "get_service_config",
    "get_storage_config",
    "int_env_var",
]
