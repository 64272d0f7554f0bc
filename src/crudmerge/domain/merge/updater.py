"""Update orchestrator: merge a source instance into a target instance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from crudmerge.domain.merge.cache import DescriptorCache, default_cache
from crudmerge.domain.merge.capabilities import MergeableEntity
from crudmerge.domain.merge.strategies import STRATEGIES

if TYPE_CHECKING:
    from crudmerge.domain.merge.cache import TypeDescriptor

log = logging.getLogger(__name__)


class Updater:
    """Applies the per-field strategies of a type in declaration order.

    Every active field is always visited; the result is ``True`` when any of
    them (or anything below them) changed. Errors raised by accessors abort
    the call as ``InvocationError``; fields merged before the failure stay
    merged.
    """

    def __init__(self, cache: DescriptorCache | None = None) -> None:
        self.cache = cache if cache is not None else default_cache()

    def describe[T](self, cls: type[T]) -> TypeDescriptor[T]:
        return self.cache.describe(cls)

    def update(self, target: Any, source: Any) -> bool:
        if target is None or source is None:
            raise TypeError("update requires a target and a source instance")
        if not isinstance(source, type(target)):
            raise TypeError(
                f"cannot merge {type(source).__qualname__} into {type(target).__qualname__}"
            )
        descriptor = self.cache.describe(type(target))
        changed = False
        for field in descriptor.fields:
            strategy = STRATEGIES[field.kind]
            if strategy(field, target, source, self.merge_child):
                changed = True
        return changed

    def merge_child(self, target: Any, source: Any) -> bool:
        """Merge a child entity through its own ``update`` capability.

        Entities that keep the inherited ``MergeableEntity.update`` stay on this
        updater so an injected cache is honoured.
        """

        if getattr(type(target), "update", None) is MergeableEntity.update:
            return self.update(target, source)
        return target.update(source)

    def create[T](self, value: T | None) -> T | None:
        """Build a fresh instance of ``type(value)`` and merge ``value`` into it."""

        if value is None:
            return None
        instance = self.cache.describe(type(value)).new_instance()
        self.update(instance, value)
        return instance


_DEFAULT_UPDATER = Updater()


def default_updater() -> Updater:
    return _DEFAULT_UPDATER


def update(target: Any, source: Any) -> bool:
    """Merge ``source`` into ``target`` using the default descriptor cache."""

    changed = _DEFAULT_UPDATER.update(target, source)
    log.debug("Merged %s: changed=%s", type(target).__qualname__, changed)
    return changed


def create[T](value: T | None) -> T | None:
    return _DEFAULT_UPDATER.create(value)
