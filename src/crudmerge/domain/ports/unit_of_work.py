"""Unit-of-work abstraction: the transactional boundary around merges."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from crudmerge.domain.ports.data_access import DataAccess


@runtime_checkable
class UnitOfWork(Protocol):
    def __enter__(self) -> UnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def data_access[T](self, entity_cls: type[T]) -> DataAccess[T]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
