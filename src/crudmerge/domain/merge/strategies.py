"""Merge strategies, one per field kind.

Every strategy takes ``(descriptor, target, source, merge)`` where ``merge`` is
the orchestrator used to recurse into child entities, mutates ``target`` in
place and returns whether anything changed. Applying the same source twice
reports ``False`` the second time.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import MutableMapping, MutableSequence, MutableSet
from collections.abc import Set as AbstractSet
from typing import TYPE_CHECKING, Any, Final

from crudmerge.domain.merge.descriptor import FieldKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from crudmerge.domain.merge.descriptor import FieldDescriptor

type Merge = Callable[[Any, Any], bool]
type MergeStrategy = Callable[[FieldDescriptor, Any, Any, Merge], bool]

log = logging.getLogger(__name__)


def apply_null_policy(descriptor: FieldDescriptor, target: Any) -> bool:
    """Handle a ``None`` source value: ignore it or clear the target."""

    if not descriptor.accepts_null:
        return False
    if descriptor.get(target) is None:
        return False
    descriptor.set(target, None)
    return True


def merge_scalar(descriptor: FieldDescriptor, target: Any, source: Any, merge: Merge) -> bool:
    incoming = descriptor.get(source)
    if incoming is None:
        return apply_null_policy(descriptor, target)
    if descriptor.get(target) == incoming:
        return False
    descriptor.set(target, incoming)
    return True


def merge_nested_entity(
    descriptor: FieldDescriptor, target: Any, source: Any, merge: Merge
) -> bool:
    incoming = descriptor.get(source)
    if incoming is None:
        return apply_null_policy(descriptor, target)
    current = descriptor.get(target)
    if current is None:
        created = descriptor.new_element()
        merge(created, incoming)
        descriptor.set(target, created)
        return True
    return merge(current, incoming)


def merge_scalar_collection(
    descriptor: FieldDescriptor, target: Any, source: Any, merge: Merge
) -> bool:
    incoming = descriptor.get(source)
    if incoming is None:
        return apply_null_policy(descriptor, target)
    current = descriptor.get(target)
    if current is None:
        descriptor.set(target, descriptor.new_container(incoming))
        return True
    if not incoming and not current:
        return False
    if _same_elements(current, incoming):
        return False
    if not descriptor.invoke("write", _replace_elements, current, list(incoming)):
        descriptor.set(target, descriptor.new_container(incoming))
    return True


def merge_scalar_map(descriptor: FieldDescriptor, target: Any, source: Any, merge: Merge) -> bool:
    incoming = descriptor.get(source)
    if incoming is None:
        return apply_null_policy(descriptor, target)
    current = descriptor.get(target)
    if current is None:
        descriptor.set(target, descriptor.new_container(incoming))
        return True
    if not incoming and not current:
        return False
    if not isinstance(current, MutableMapping):
        if dict(current) == dict(incoming):
            return False
        descriptor.set(target, descriptor.new_container(incoming))
        return True
    return descriptor.invoke("write", _diff_scalar_map, current, incoming)


def _diff_scalar_map(current: MutableMapping[Any, Any], incoming: Mapping[Any, Any]) -> bool:
    changed = False
    for key in [key for key in current if key not in incoming]:
        del current[key]
        changed = True
    for key, value in incoming.items():
        if key not in current:
            current[key] = value
            changed = True
        elif current[key] != value:
            current[key] = value
            changed = True
    return changed


def merge_entity_collection(
    descriptor: FieldDescriptor, target: Any, source: Any, merge: Merge
) -> bool:
    """Reconcile a collection of identified entities by primary key.

    Shared keys are merged in place, keys only present in the target are
    dropped, keys only present in the source are created and fully merged,
    and unkeyed source elements are appended as they are. Duplicate keys in
    the source collapse to the last occurrence.
    """

    incoming = descriptor.get(source)
    if incoming is None:
        return apply_null_policy(descriptor, target)
    current = descriptor.get(target)
    if current is None:
        existing: list[Any] = []
    else:
        existing = list(current)
        if not incoming and not existing:
            return False

    keyed: dict[Any, Any] = {}
    unkeyed: list[Any] = []
    for element in incoming:
        if element is None:
            continue
        key = _identity_of(descriptor, element)
        if key is None:
            unkeyed.append(element)
            continue
        if key in keyed:
            log.debug(
                "Duplicate identity %r in %s.%s, last one wins",
                key,
                descriptor.owner.__qualname__,
                descriptor.name,
            )
        keyed[key] = element

    by_key: dict[Any, Any] = {}
    for element in existing:
        if element is None:
            continue
        key = _identity_of(descriptor, element)
        if key is not None:
            by_key[key] = element

    changed = False
    rebuilt: list[Any] = []
    for key, element in by_key.items():
        replacement = keyed.get(key)
        if replacement is None:
            continue
        if merge(element, replacement):
            changed = True
        rebuilt.append(element)
    for key, replacement in keyed.items():
        if key in by_key:
            continue
        created = descriptor.new_element()
        descriptor.invoke("assign the identity of", created.set_identity, key)
        merge(created, replacement)
        rebuilt.append(created)
    rebuilt.extend(unkeyed)

    if current is None:
        descriptor.set(target, descriptor.new_container(rebuilt))
        return True
    if _same_members(existing, rebuilt, ordered=not isinstance(current, AbstractSet)):
        return changed
    if not descriptor.invoke("write", _replace_elements, current, rebuilt):
        descriptor.set(target, descriptor.new_container(rebuilt))
    return True


def merge_entity_map(descriptor: FieldDescriptor, target: Any, source: Any, merge: Merge) -> bool:
    """Reconcile a map of entities by map key."""

    incoming = descriptor.get(source)
    if incoming is None:
        return apply_null_policy(descriptor, target)
    current = descriptor.get(target)
    if current is None:
        created: MutableMapping[Any, Any] = descriptor.new_container()
        _reconcile_entity_map(descriptor, created, incoming, merge)
        descriptor.set(target, created)
        return True
    if not incoming and not current:
        return False
    if not isinstance(current, MutableMapping):
        rebuilt: MutableMapping[Any, Any] = descriptor.new_container(current)
        changed = _reconcile_entity_map(descriptor, rebuilt, incoming, merge)
        if changed:
            descriptor.set(target, rebuilt)
        return changed
    return _reconcile_entity_map(descriptor, current, incoming, merge)


def _reconcile_entity_map(
    descriptor: FieldDescriptor,
    current: MutableMapping[Any, Any],
    incoming: Mapping[Any, Any],
    merge: Merge,
) -> bool:
    changed = False
    for key in [key for key in current if key not in incoming]:
        descriptor.invoke("write", current.__delitem__, key)
        changed = True
    for key, replacement in incoming.items():
        existing = current.get(key)
        if replacement is None:
            if key not in current or existing is not None:
                descriptor.invoke("write", current.__setitem__, key, None)
                changed = True
            continue
        if existing is None:
            value = descriptor.new_element()
            merge(value, replacement)
            descriptor.invoke("write", current.__setitem__, key, value)
            changed = True
            continue
        if merge(existing, replacement):
            changed = True
    return changed


def _identity_of(descriptor: FieldDescriptor, element: Any) -> Any:
    return descriptor.invoke("read the identity of", element.get_identity)


def _same_elements(current: Iterable[Any], incoming: Iterable[Any]) -> bool:
    if isinstance(current, AbstractSet) or isinstance(incoming, AbstractSet):
        return set(current) == set(incoming)
    return list(current) == list(incoming)


def _same_members(existing: list[Any], rebuilt: list[Any], *, ordered: bool) -> bool:
    if len(existing) != len(rebuilt):
        return False
    if not ordered:
        return Counter(map(id, existing)) == Counter(map(id, rebuilt))
    return all(old is new for old, new in zip(existing, rebuilt, strict=True))


def _replace_elements(container: Any, elements: list[Any]) -> bool:
    """Swap the contents of a mutable container; ``False`` if it is immutable."""

    if isinstance(container, MutableSequence):
        container.clear()
        container.extend(elements)
        return True
    if isinstance(container, MutableSet):
        container.clear()
        for element in elements:
            container.add(element)
        return True
    return False


STRATEGIES: Final[Mapping[FieldKind, MergeStrategy]] = {
    FieldKind.SCALAR: merge_scalar,
    FieldKind.NESTED_ENTITY: merge_nested_entity,
    FieldKind.SCALAR_COLLECTION: merge_scalar_collection,
    FieldKind.ENTITY_COLLECTION: merge_entity_collection,
    FieldKind.SCALAR_MAP: merge_scalar_map,
    FieldKind.ENTITY_MAP: merge_entity_map,
}
