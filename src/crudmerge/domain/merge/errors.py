"""Error taxonomy of the merge engine.

Build-time errors (``DescriptorError`` subclasses) are raised while a type is
being described. Accessor and type resolution failures only exclude the
offending field; ``FieldConfigurationError`` aborts the description of the
type. Call-time failures surface as ``InvocationError`` and abort the running
merge.
"""

from __future__ import annotations


class MergeError(RuntimeError):
    """Base class for all merge engine errors."""


class DescriptorError(MergeError):
    """Raised while building the descriptor of a field."""

    def __init__(self, owner: type, field_name: str, reason: str) -> None:
        super().__init__(f"{owner.__qualname__}.{field_name}: {reason}")
        self.owner = owner
        self.field_name = field_name
        self.reason = reason


class AccessorResolutionError(DescriptorError):
    """No usable getter/setter pair could be bound for a field."""


class TypeResolutionError(DescriptorError):
    """A field annotation or its container type arguments could not be resolved."""


class FieldConfigurationError(DescriptorError):
    """A field carries contradicting configuration (e.g. required and nullable)."""


class UnknownFieldError(MergeError, KeyError):
    """Raised when a named field is not part of a type descriptor."""

    def __init__(self, owner: type, field_name: str) -> None:
        super().__init__(f"No such field {field_name!r} in {owner.__qualname__}")
        self.owner = owner
        self.field_name = field_name

    def __str__(self) -> str:
        return str(self.args[0])


class InvocationError(MergeError):
    """An accessor, factory or identity call raised during a merge."""

    def __init__(self, owner: type, field_name: str, action: str) -> None:
        super().__init__(f"Failed to {action} {owner.__qualname__}.{field_name}")
        self.owner = owner
        self.field_name = field_name
        self.action = action
