"""Ports implemented by persistence adapters."""

from __future__ import annotations

from .data_access import DataAccess, IdGroup
from .errors import MissingIdentityError, NotFoundError
from .unit_of_work import UnitOfWork

__all__ = ["DataAccess", "IdGroup", "MissingIdentityError", "NotFoundError", "UnitOfWork"]
