"""Field and type level merge configuration.

Options are attached either through dataclass field metadata::

    name: str | None = merge_field(not_null=False, default=None)

or as ``typing.Annotated`` metadata::

    name: Annotated[str | None, FieldOptions(not_null=False)] = None

A whole type opts in with the ``@mergeable`` decorator; its fields then
participate unless marked ``excluded()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, overload

if TYPE_CHECKING:
    from collections.abc import Callable

MERGE_METADATA_KEY: Final[str] = "crudmerge"
TYPE_OPTIONS_ATTRIBUTE: Final[str] = "__merge_options__"


@dataclass(frozen=True, slots=True)
class FieldOptions:
    """Per-field merge configuration.

    ``not_null=None`` inherits the default of the enclosing type.
    """

    participates: bool = True
    not_null: bool | None = None
    excluded: bool = False
    identity: bool = False


@dataclass(frozen=True, slots=True)
class TypeOptions:
    """Type-level opt-in; ``not_null`` is the default null policy of its fields."""

    not_null: bool = True


@dataclass(frozen=True, slots=True)
class Required:
    """Validation marker: the field must never be cleared to ``None``.

    Forces the reject-null policy and cannot be combined with ``not_null=False``.
    """


REQUIRED: Final[Required] = Required()


def merge_field(
    *,
    not_null: bool | None = None,
    participates: bool = True,
    **field_kwargs: Any,
) -> Any:
    """Declare a participating dataclass field."""

    return _field_with_options(
        FieldOptions(participates=participates, not_null=not_null), field_kwargs
    )


def excluded(**field_kwargs: Any) -> Any:
    """Declare a dataclass field that never takes part in merges."""

    return _field_with_options(FieldOptions(participates=False, excluded=True), field_kwargs)


def identity(**field_kwargs: Any) -> Any:
    """Declare the primary-key field of an entity."""

    return _field_with_options(FieldOptions(participates=False, identity=True), field_kwargs)


def _field_with_options(options: FieldOptions, field_kwargs: dict[str, Any]) -> Any:
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[MERGE_METADATA_KEY] = options
    return field(metadata=metadata, **field_kwargs)


@overload
def mergeable[T: type](cls: T, /) -> T: ...


@overload
def mergeable[T: type](*, not_null: bool = True) -> Callable[[T], T]: ...


def mergeable[T: type](cls: T | None = None, /, *, not_null: bool = True) -> T | Callable[[T], T]:
    """Opt every field of a type into merging.

    Usable bare (``@mergeable``) or configured (``@mergeable(not_null=False)``).
    """

    def decorate(target: T) -> T:
        setattr(target, TYPE_OPTIONS_ATTRIBUTE, TypeOptions(not_null=not_null))
        return target

    if cls is None:
        return decorate
    return decorate(cls)


def type_options(cls: type) -> TypeOptions | None:
    options = getattr(cls, TYPE_OPTIONS_ATTRIBUTE, None)
    return options if isinstance(options, TypeOptions) else None
