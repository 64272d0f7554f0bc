"""Generic data access port consumed by resource services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence


@dataclass(slots=True)
class IdGroup:
    """A distinct field value and the identities of the entities carrying it."""

    value: str
    ids: list[Any] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.ids)


class DataAccess[T](Protocol):
    """Lookup, filtering and write operations over one entity class."""

    def find_by_id(self, key: Any, *, expected: bool = True) -> T | None: ...

    def list_all(self, first_result: int, max_results: int) -> list[T]: ...

    def list_by_ids(self, keys: Collection[Any]) -> list[T]: ...

    def list_by_field_equals(
        self, field_name: str, value: object, first_result: int, max_results: int
    ) -> list[T]: ...

    def list_by_field_like(
        self, field_name: str, value: str, first_result: int, max_results: int
    ) -> list[T]: ...

    def list_by_field_in(
        self, field_name: str, values: Collection[object], first_result: int, max_results: int
    ) -> list[T]: ...

    def list_by_content_equals(self, example: T, first_result: int, max_results: int) -> list[T]: ...

    def list_by_content_in(
        self, examples: Sequence[T], first_result: int, max_results: int
    ) -> list[T]: ...

    def autocomplete(self, field_name: str, value: str, max_results: int) -> list[str]: ...

    def autocomplete_ids(self, field_name: str, value: str, max_results: int) -> list[IdGroup]: ...

    def persist(self, source: T) -> T: ...

    def update_by_id(self, source: T) -> T: ...

    def remove_by_id(self, key: Any) -> None: ...

    def remove_by_ids(self, keys: Collection[Any]) -> None: ...
