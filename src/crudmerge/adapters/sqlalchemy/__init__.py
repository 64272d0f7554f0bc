"""SQLAlchemy persistence adapter."""

from __future__ import annotations

from .data_access import SqlAlchemyDataAccess
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyDataAccess",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "shutdown",
    "startup",
]
