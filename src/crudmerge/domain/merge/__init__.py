"""Generic entity-graph merge engine.

``update(target, source)`` copies the participating fields of ``source`` into
``target`` following each field's null policy, recursing into nested
entities, collections and maps, and reports whether anything changed.
"""

from __future__ import annotations

from .cache import DescriptorCache, TypeDescriptor, default_cache, describe
from .capabilities import Identified, IdentifiedEntity, Mergeable, MergeableEntity
from .descriptor import FieldDescriptor, FieldKind, NullPolicy
from .errors import (
    AccessorResolutionError,
    DescriptorError,
    FieldConfigurationError,
    InvocationError,
    MergeError,
    TypeResolutionError,
    UnknownFieldError,
)
from .options import (
    REQUIRED,
    FieldOptions,
    Required,
    TypeOptions,
    excluded,
    identity,
    merge_field,
    mergeable,
)
from .updater import Updater, create, default_updater, update

__all__ = [
    "REQUIRED",
    "AccessorResolutionError",
    "DescriptorCache",
    "DescriptorError",
    "FieldConfigurationError",
    "FieldDescriptor",
    "FieldKind",
    "FieldOptions",
    "Identified",
    "IdentifiedEntity",
    "InvocationError",
    "MergeError",
    "Mergeable",
    "MergeableEntity",
    "NullPolicy",
    "Required",
    "TypeDescriptor",
    "TypeOptions",
    "TypeResolutionError",
    "UnknownFieldError",
    "Updater",
    "create",
    "default_cache",
    "default_updater",
    "describe",
    "excluded",
    "identity",
    "merge_field",
    "mergeable",
    "update",
]
