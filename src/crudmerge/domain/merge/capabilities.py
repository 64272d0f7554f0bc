"""Capabilities entities expose to the merge engine."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, Self, runtime_checkable

from crudmerge.domain.merge.options import identity


@runtime_checkable
class Identified[K](Protocol):
    """An entity with a nullable primary key used to reconcile collections."""

    def get_identity(self) -> K | None: ...

    def set_identity(self, key: K | None) -> None: ...


@runtime_checkable
class Mergeable(Protocol):
    """An entity that merges another instance of its own type into itself."""

    def update(self, source: Self) -> bool: ...


@dataclass(eq=False, kw_only=True)
class IdentifiedEntity:
    """Identity lives in ``id``; ``None`` means not yet persisted."""

    id: Any = identity(default=None)

    def get_identity(self) -> Any:
        return self.id

    def set_identity(self, key: Any) -> None:
        self.id = key


class MergeableEntity:
    """Mixin binding ``entity.update(source)`` to the default updater."""

    def update(self, source: Self) -> bool:
        from crudmerge.domain.merge.updater import update  # noqa: PLC0415

        return update(self, source)


def is_entity_type(tp: object) -> bool:
    """Whether ``tp`` is a class the engine recurses into instead of copying."""

    if not isinstance(tp, type):
        return False
    # dict and set carry an ``update`` method too
    if issubclass(tp, (str, bytes, Collection, Mapping)):
        return False
    return issubclass(tp, Mergeable)


def is_identified_type(tp: object) -> bool:
    return isinstance(tp, type) and issubclass(tp, Identified)
