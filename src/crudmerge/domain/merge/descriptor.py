"""Per-field merge descriptors."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from crudmerge.domain.merge.capabilities import is_entity_type, is_identified_type
from crudmerge.domain.merge.errors import (
    FieldConfigurationError,
    InvocationError,
    MergeError,
    TypeResolutionError,
)
from crudmerge.domain.merge.introspection import (
    annotation_metadata,
    bind_accessors,
    bind_factory,
    container_shape,
    element_class,
    strip_annotation,
)
from crudmerge.domain.merge.options import (
    MERGE_METADATA_KEY,
    FieldOptions,
    Required,
    TypeOptions,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from crudmerge.domain.merge.introspection import DeclaredField, Getter, Setter


class FieldKind(StrEnum):
    SCALAR = "scalar"
    NESTED_ENTITY = "nested-entity"
    SCALAR_COLLECTION = "scalar-collection"
    ENTITY_COLLECTION = "entity-collection"
    SCALAR_MAP = "scalar-map"
    ENTITY_MAP = "entity-map"


class NullPolicy(StrEnum):
    REJECT_NULL = "reject-null"
    ACCEPT_NULL = "accept-null"


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Bound accessors and merge policy of one field.

    Only valid descriptors exist: a field whose accessors or types cannot be
    resolved raises during :func:`build_field_descriptor` and is left out.
    """

    name: str
    owner: type
    annotation: Any
    kind: FieldKind
    null_policy: NullPolicy
    getter: Getter
    setter: Setter
    element_type: Any = None
    value_type: Any = None
    container_type: type | None = None
    factory: Callable[[], Any] | None = None

    @property
    def accepts_null(self) -> bool:
        return self.null_policy is NullPolicy.ACCEPT_NULL

    def get(self, instance: Any) -> Any:
        return self.invoke("read", self.getter, instance)

    def set(self, instance: Any, value: Any) -> None:
        self.invoke("write", self.setter, instance, value)

    def new_element(self) -> Any:
        if self.factory is None:
            raise InvocationError(self.owner, self.name, "construct an element of")
        return self.invoke("construct an element of", self.factory)

    def new_container(self, items: Any = ()) -> Any:
        container_type = self.container_type or list
        return self.invoke("construct a container for", container_type, items)

    def invoke[R](self, action: str, function: Callable[..., R], *args: Any) -> R:
        """Call ``function`` and wrap anything it raises into ``InvocationError``."""

        try:
            return function(*args)
        except MergeError:
            raise
        except Exception as exc:
            raise InvocationError(self.owner, self.name, action) from exc


def field_options(cls: type, declared: DeclaredField, annotation: Any) -> FieldOptions | None:
    """Explicit options of a field from dataclass metadata or ``Annotated`` extras."""

    if dataclasses.is_dataclass(cls):
        for dataclass_field in dataclasses.fields(cls):
            if dataclass_field.name == declared.name:
                options = dataclass_field.metadata.get(MERGE_METADATA_KEY)
                if isinstance(options, FieldOptions):
                    return options
                break
    for extra in annotation_metadata(annotation):
        if isinstance(extra, FieldOptions):
            return extra
    return None


def is_required(annotation: Any) -> bool:
    return any(isinstance(extra, Required) for extra in annotation_metadata(annotation))


def resolve_null_policy(
    cls: type,
    name: str,
    options: FieldOptions | None,
    defaults: TypeOptions | None,
    *,
    required: bool,
) -> NullPolicy:
    explicit = options.not_null if options is not None else None
    if required:
        if explicit is False:
            raise FieldConfigurationError(cls, name, "a required field cannot accept null")
        return NullPolicy.REJECT_NULL
    not_null = explicit
    if not_null is None:
        not_null = defaults.not_null if defaults is not None else True
    return NullPolicy.REJECT_NULL if not_null else NullPolicy.ACCEPT_NULL


def build_field_descriptor(
    cls: type,
    declared: DeclaredField,
    annotation: Any,
    options: FieldOptions | None,
    defaults: TypeOptions | None,
) -> FieldDescriptor:
    """Bind one participating field.

    Raises ``AccessorResolutionError`` / ``TypeResolutionError`` for fields to
    exclude and ``FieldConfigurationError`` for contradicting configuration.
    """

    name = declared.name
    null_policy = resolve_null_policy(
        cls, name, options, defaults, required=is_required(annotation)
    )
    getter, setter = bind_accessors(cls, name)
    declared_type = strip_annotation(annotation)
    shape = container_shape(cls, name, declared_type)

    if shape is None:
        if is_entity_type(declared_type):
            return FieldDescriptor(
                name=name,
                owner=cls,
                annotation=annotation,
                kind=FieldKind.NESTED_ENTITY,
                null_policy=null_policy,
                getter=getter,
                setter=setter,
                factory=_entity_factory(cls, name, declared_type),
            )
        return FieldDescriptor(
            name=name,
            owner=cls,
            annotation=annotation,
            kind=FieldKind.SCALAR,
            null_policy=null_policy,
            getter=getter,
            setter=setter,
        )

    element = element_class(shape.element_type)
    if shape.is_map:
        entity = is_entity_type(element)
        return FieldDescriptor(
            name=name,
            owner=cls,
            annotation=annotation,
            kind=FieldKind.ENTITY_MAP if entity else FieldKind.SCALAR_MAP,
            null_policy=null_policy,
            getter=getter,
            setter=setter,
            value_type=shape.element_type,
            container_type=shape.container_type,
            factory=_entity_factory(cls, name, element) if entity else None,
        )

    entity = is_entity_type(element) and is_identified_type(element)
    return FieldDescriptor(
        name=name,
        owner=cls,
        annotation=annotation,
        kind=FieldKind.ENTITY_COLLECTION if entity else FieldKind.SCALAR_COLLECTION,
        null_policy=null_policy,
        getter=getter,
        setter=setter,
        element_type=shape.element_type,
        container_type=shape.container_type,
        factory=_entity_factory(cls, name, element) if entity else None,
    )


def _entity_factory(cls: type, name: str, entity_type: type) -> Callable[[], Any]:
    try:
        return bind_factory(entity_type)
    except TypeError as exc:
        raise TypeResolutionError(cls, name, str(exc)) from exc

