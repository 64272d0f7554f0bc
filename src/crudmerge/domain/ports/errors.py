"""Errors raised by persistence collaborators of the merge engine."""

from __future__ import annotations


class NotFoundError(LookupError):
    """Raised when an expected entity does not exist."""

    def __init__(self, entity_cls: type, key: object) -> None:
        super().__init__(f"No {entity_cls.__name__} with identity {key!r}")
        self.entity_cls = entity_cls
        self.key = key


class MissingIdentityError(ValueError):
    """Raised when an operation needs the identity of an entity that has none."""
