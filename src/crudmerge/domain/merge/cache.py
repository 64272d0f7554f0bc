"""Type descriptors and the cache that publishes them.

A ``TypeDescriptor`` is built at most once per class and cache, then shared
read-only between threads.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from threading import RLock
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from crudmerge.domain.merge.capabilities import is_identified_type
from crudmerge.domain.merge.descriptor import build_field_descriptor, field_options
from crudmerge.domain.merge.errors import (
    AccessorResolutionError,
    InvocationError,
    TypeResolutionError,
    UnknownFieldError,
)
from crudmerge.domain.merge.introspection import bind_factory, declared_fields, resolve_annotation
from crudmerge.domain.merge.options import type_options

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from crudmerge.domain.merge.descriptor import FieldDescriptor
    from crudmerge.domain.merge.introspection import DeclaredField
    from crudmerge.domain.merge.options import FieldOptions

log = logging.getLogger(__name__)

_IDENTITY_FALLBACK = "id"


@dataclass(frozen=True)
class TypeDescriptor[T]:
    """Ordered, immutable set of the mergeable fields of one class."""

    type: type[T]
    fields: tuple[FieldDescriptor, ...]
    identity_field: str | None = None
    factory: Callable[[], T] | None = None
    excluded: tuple[str, ...] = ()
    _by_name: Mapping[str, FieldDescriptor] = dataclasses.field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        by_name = MappingProxyType({descriptor.name: descriptor for descriptor in self.fields})
        object.__setattr__(self, "_by_name", by_name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(descriptor.name for descriptor in self.fields)

    def field(self, name: str) -> FieldDescriptor:
        """Look up an active field by name."""

        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownFieldError(self.type, name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def new_instance(self) -> T:
        if self.factory is None:
            raise InvocationError(self.type, "__init__", "call the zero-argument factory of")
        try:
            return self.factory()
        except Exception as exc:
            raise InvocationError(self.type, "__init__", "call the zero-argument factory of") from exc

    def map_values(self, instance: T) -> dict[str, Any]:
        """Non-``None`` values of the active fields, keyed by field name."""

        values: dict[str, Any] = {}
        for descriptor in self.fields:
            value = descriptor.get(instance)
            if value is not None:
                values[descriptor.name] = value
        return values

    def map_values_many(self, instances: Iterable[T]) -> dict[str, list[Any]]:
        """Per field, the non-``None`` values over all ``instances``."""

        materialized = list(instances)
        values: dict[str, list[Any]] = {}
        for descriptor in self.fields:
            collected = [
                value
                for value in (descriptor.get(instance) for instance in materialized)
                if value is not None
            ]
            if collected:
                values[descriptor.name] = collected
        return values


def build_type_descriptor[T](cls: type[T]) -> TypeDescriptor[T]:
    """Introspect ``cls`` into a ``TypeDescriptor``.

    Fields with unresolvable accessors or types are logged and left out;
    a ``FieldConfigurationError`` propagates and no descriptor is built.
    """

    defaults = type_options(cls)
    active: list[FieldDescriptor] = []
    excluded: list[str] = []
    identity_field: str | None = None
    declared = declared_fields(cls)

    for entry in declared:
        try:
            annotation = resolve_annotation(cls, entry)
        except TypeResolutionError as exc:
            options = field_options(cls, entry, None)
            if options is not None and options.identity:
                identity_field = entry.name
            elif _participates(options, defaults is not None):
                log.warning("Excluding field from merges: %s", exc)
                excluded.append(entry.name)
            continue

        options = field_options(cls, entry, annotation)
        if options is not None and options.identity:
            identity_field = entry.name
            continue
        if not _participates(options, defaults is not None):
            continue
        try:
            active.append(build_field_descriptor(cls, entry, annotation, options, defaults))
        except (AccessorResolutionError, TypeResolutionError) as exc:
            log.warning("Excluding field from merges: %s", exc)
            excluded.append(entry.name)

    if identity_field is None and is_identified_type(cls):
        identity_field = _fallback_identity(declared)
        active = [descriptor for descriptor in active if descriptor.name != identity_field]

    descriptor = TypeDescriptor(
        type=cls,
        fields=tuple(active),
        identity_field=identity_field,
        factory=_type_factory(cls),
        excluded=tuple(excluded),
    )
    log.debug(
        "Described %s: fields=%s identity=%s excluded=%s",
        cls.__qualname__,
        descriptor.names,
        identity_field,
        descriptor.excluded,
    )
    return descriptor


def _participates(options: FieldOptions | None, type_opted_in: bool) -> bool:
    if options is None:
        return type_opted_in
    return options.participates and not options.excluded


def _fallback_identity(declared: list[DeclaredField]) -> str | None:
    if any(entry.name == _IDENTITY_FALLBACK for entry in declared):
        return _IDENTITY_FALLBACK
    return None


def _type_factory[T](cls: type[T]) -> Callable[[], T] | None:
    try:
        return bind_factory(cls)
    except TypeError:
        return None


class DescriptorCache:
    """Compute-if-absent cache of type descriptors, never evicted.

    Reads of published descriptors take no lock; construction is serialized so
    every type is described once even under concurrent first access.
    """

    def __init__(self) -> None:
        self._descriptors: dict[type, TypeDescriptor[Any]] = {}
        self._lock = RLock()

    def describe[T](self, cls: type[T]) -> TypeDescriptor[T]:
        descriptor = self._descriptors.get(cls)
        if descriptor is not None:
            return descriptor
        with self._lock:
            descriptor = self._descriptors.get(cls)
            if descriptor is None:
                descriptor = build_type_descriptor(cls)
                self._descriptors[cls] = descriptor
        return descriptor

    def __contains__(self, cls: object) -> bool:
        return cls in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def clear(self) -> None:
        """Forget every descriptor (for tests that redefine classes)."""

        with self._lock:
            self._descriptors.clear()


_DEFAULT_CACHE = DescriptorCache()


def default_cache() -> DescriptorCache:
    return _DEFAULT_CACHE


def describe[T](cls: type[T]) -> TypeDescriptor[T]:
    """Describe ``cls`` through the process-wide default cache."""

    return _DEFAULT_CACHE.describe(cls)

