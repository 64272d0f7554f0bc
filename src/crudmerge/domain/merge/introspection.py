"""Class introspection helpers used while building descriptors.

Everything here runs once per type; nothing is consulted during a merge.
"""

from __future__ import annotations

import dataclasses
import inspect
import sys
import types
from collections.abc import Collection, Mapping, MutableMapping, MutableSequence, MutableSet
from collections.abc import Set as AbstractSet
from dataclasses import dataclass
from operator import attrgetter
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    Final,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from sqlalchemy.orm import Mapped

from crudmerge.domain.merge.errors import AccessorResolutionError, TypeResolutionError

if TYPE_CHECKING:
    from collections.abc import Callable

type Getter = Callable[[Any], Any]
type Setter = Callable[[Any, Any], None]

_SCALAR_CONTAINERS: Final[tuple[type, ...]] = (str, bytes, bytearray, memoryview)


@dataclass(frozen=True, slots=True)
class DeclaredField:
    """An annotated attribute in declaration order, annotation still unresolved."""

    name: str
    owner: type
    annotation: object


@dataclass(frozen=True, slots=True)
class ContainerShape:
    is_map: bool
    container_type: type
    element_type: Any


def declared_fields(cls: type) -> list[DeclaredField]:
    """Annotated attributes of ``cls``, bases first, overrides keep their slot."""

    found: dict[str, DeclaredField] = {}
    for base in reversed(cls.__mro__):
        if base is object:
            continue
        for name, annotation in inspect.get_annotations(base).items():
            found[name] = DeclaredField(name=name, owner=base, annotation=annotation)
    return [declared for declared in found.values() if not _is_class_level(declared.annotation)]


def _is_class_level(annotation: object) -> bool:
    if isinstance(annotation, str):
        stripped = annotation.replace(" ", "")
        return stripped.startswith(("ClassVar", "typing.ClassVar", "InitVar", "dataclasses.InitVar"))
    return get_origin(annotation) is ClassVar or isinstance(annotation, dataclasses.InitVar)


def resolve_annotation(cls: type, declared: DeclaredField) -> Any:
    """Evaluate one annotation in the namespace of the class that declared it."""

    def holder() -> None: ...

    holder.__annotations__ = {declared.name: declared.annotation}
    module = sys.modules.get(declared.owner.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    localns = {declared.owner.__name__: declared.owner, cls.__name__: cls}
    try:
        hints = get_type_hints(holder, globalns=globalns, localns=localns, include_extras=True)
    except (NameError, AttributeError, TypeError, SyntaxError) as exc:
        raise TypeResolutionError(cls, declared.name, f"unresolvable annotation: {exc}") from exc
    return hints[declared.name]


def annotation_metadata(annotation: Any) -> tuple[object, ...]:
    """Collect ``Annotated`` extras at the top level and inside ``X | None``."""

    if get_origin(annotation) is Mapped:
        return annotation_metadata(get_args(annotation)[0])
    if get_origin(annotation) is Annotated:
        inner, *extras = get_args(annotation)
        return (*extras, *annotation_metadata(inner))
    if _is_union(annotation):
        collected: list[object] = []
        for arg in get_args(annotation):
            collected.extend(annotation_metadata(arg))
        return tuple(collected)
    return ()


def strip_annotation(annotation: Any) -> Any:
    """Drop ``Annotated``/``Mapped`` wrappers and the ``None`` arm of an optional."""

    if get_origin(annotation) in (Annotated, Mapped):
        return strip_annotation(get_args(annotation)[0])
    if _is_union(annotation):
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return strip_annotation(members[0])
    return annotation


def _is_union(annotation: Any) -> bool:
    origin = get_origin(annotation)
    return origin is Union or origin is types.UnionType


def container_shape(cls: type, name: str, annotation: Any) -> ContainerShape | None:
    """Describe ``annotation`` as a collection or map, or ``None`` for scalars."""

    origin = get_origin(annotation) or annotation
    if not isinstance(origin, type) or issubclass(origin, _SCALAR_CONTAINERS):
        return None
    args = get_args(annotation)
    if issubclass(origin, Mapping):
        value_type = _concrete_argument(cls, name, args, 1)
        return ContainerShape(True, _map_container(origin), value_type)
    if issubclass(origin, tuple):
        # only homogeneous tuple[X, ...] is a collection, fixed tuples are values
        if args and (len(args) != 2 or args[1] is not Ellipsis):
            return None
        return ContainerShape(False, tuple, _concrete_argument(cls, name, args, 0))
    if issubclass(origin, Collection):
        return ContainerShape(
            False, _collection_container(origin), _concrete_argument(cls, name, args, 0)
        )
    return None


def _concrete_argument(cls: type, name: str, args: tuple[Any, ...], index: int) -> Any:
    if len(args) <= index:
        raise TypeResolutionError(cls, name, "container type argument missing")
    argument = strip_annotation(args[index])
    if argument is Any or isinstance(argument, TypeVar):
        raise TypeResolutionError(cls, name, f"container type argument {argument!r} is not concrete")
    return argument


def _map_container(origin: type) -> type:
    if inspect.isabstract(origin) or origin in (Mapping, MutableMapping):
        return dict
    return origin


def _collection_container(origin: type) -> type:
    if not inspect.isabstract(origin) and origin not in (Collection, MutableSequence):
        return origin
    if issubclass(origin, (AbstractSet, MutableSet)):
        return set
    return list


def element_class(annotation: Any) -> Any:
    """The runtime class behind an element annotation (``list[int]`` -> ``list``)."""

    stripped = strip_annotation(annotation)
    return get_origin(stripped) or stripped


def bind_accessors(cls: type, name: str) -> tuple[Getter, Setter]:
    """Bind the getter/setter pair of a field by naming convention.

    Explicit ``get_<name>``/``set_<name>`` methods win over attribute access.
    """

    getter_method = getattr(cls, f"get_{name}", None)
    setter_method = getattr(cls, f"set_{name}", None)
    if callable(getter_method) and callable(setter_method):
        return getter_method, setter_method
    if callable(getter_method) or callable(setter_method):
        raise AccessorResolutionError(cls, name, "incomplete get_/set_ accessor pair")

    attribute = inspect.getattr_static(cls, name, None)
    if isinstance(attribute, property):
        if attribute.fget is None or attribute.fset is None:
            raise AccessorResolutionError(cls, name, "property is not readable and writable")
    elif dataclasses.is_dataclass(cls) and getattr(cls, "__dataclass_params__").frozen:
        raise AccessorResolutionError(cls, name, "frozen dataclass fields cannot be assigned")
    elif inspect.isfunction(attribute) or isinstance(attribute, (staticmethod, classmethod)):
        raise AccessorResolutionError(cls, name, "attribute is shadowed by a method")
    return attrgetter(name), _attribute_setter(name)


def _attribute_setter(name: str) -> Setter:
    def setter(instance: Any, value: Any) -> None:
        setattr(instance, name, value)

    return setter


def bind_factory(cls: type) -> Callable[[], Any]:
    """The zero-argument factory of ``cls`` (the class itself)."""

    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return cls
    for parameter in signature.parameters.values():
        required = parameter.default is inspect.Parameter.empty and parameter.kind not in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        )
        if required:
            raise TypeError(f"{cls.__qualname__} has no zero-argument constructor")
    return cls
