"""Generic data access backed by a SQLAlchemy session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import class_mapper

from crudmerge.domain.merge import Identified, UnknownFieldError, default_updater
from crudmerge.domain.ports.data_access import IdGroup
from crudmerge.domain.ports.errors import MissingIdentityError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.orm import Session

    from crudmerge.domain.merge import TypeDescriptor, Updater

log = logging.getLogger(__name__)


class SqlAlchemyDataAccess[T]:
    """Lookup, filter and merge-based write operations for one mapped class.

    Field names used in filters are mapped attribute names; unknown names
    raise ``UnknownFieldError``.
    """

    def __init__(
        self,
        session: Session,
        entity_cls: type[T],
        *,
        updater: Updater | None = None,
    ) -> None:
        self.session = session
        self.entity_cls = entity_cls
        self._updater = updater if updater is not None else default_updater()
        self._mapper = class_mapper(entity_cls)

    @property
    def descriptor(self) -> TypeDescriptor[T]:
        return self._updater.describe(self.entity_cls)

    # lookups

    def find_by_id(self, key: Any, *, expected: bool = True) -> T | None:
        if expected:
            return self._require(key)
        return self.session.get(self.entity_cls, key)

    def find_persisted(self, source: T, *, expected: bool = True) -> T | None:
        return self.find_by_id(self._require_identity(source), expected=expected)

    def list_all(self, first_result: int, max_results: int) -> list[T]:
        return self._page(self._select(), first_result, max_results)

    def list_by_ids(self, keys: Collection[Any]) -> list[T]:
        if not keys:
            return []
        stmt = self._select().where(self._primary_key.in_(list(keys)))
        return list(self.session.execute(stmt).scalars().all())

    def list_by_field_equals(
        self, field_name: str, value: object, first_result: int, max_results: int
    ) -> list[T]:
        stmt = self._select().where(self._column(field_name) == value)
        return self._page(stmt, first_result, max_results)

    def list_by_field_like(
        self, field_name: str, value: str, first_result: int, max_results: int
    ) -> list[T]:
        stmt = self._select().where(self._column(field_name).icontains(value, autoescape=True))
        return self._page(stmt, first_result, max_results)

    def list_by_field_in(
        self, field_name: str, values: Collection[object], first_result: int, max_results: int
    ) -> list[T]:
        if not values:
            return []
        stmt = self._select().where(self._column(field_name).in_(list(values)))
        return self._page(stmt, first_result, max_results)

    def list_by_content_equals(self, example: T, first_result: int, max_results: int) -> list[T]:
        criteria = [
            self._mapper.columns[name] == value
            for name, value in self.descriptor.map_values(example).items()
            if name in self._mapper.columns
        ]
        return self._page(self._select().where(*criteria), first_result, max_results)

    def list_by_content_in(
        self, examples: Sequence[T], first_result: int, max_results: int
    ) -> list[T]:
        criteria = [
            self._mapper.columns[name].in_(values)
            for name, values in self.descriptor.map_values_many(examples).items()
            if name in self._mapper.columns
        ]
        return self._page(self._select().where(*criteria), first_result, max_results)

    def autocomplete(self, field_name: str, value: str, max_results: int) -> list[str]:
        """Sorted distinct values of ``field_name`` containing ``value``."""

        stmt = self._matching_values(field_name, value).limit(max_results)
        return [str(candidate) for candidate in self.session.execute(stmt).scalars()]

    def autocomplete_ids(self, field_name: str, value: str, max_results: int) -> list[IdGroup]:
        """Like :meth:`autocomplete`, with the identities carrying each value."""

        values = self._matching_values(field_name, value).limit(max_results)
        column = self._column(field_name)
        stmt = (
            select(column, self._primary_key)
            .where(column.in_(values))
            .order_by(column, self._primary_key)
        )
        groups: dict[str, IdGroup] = {}
        for candidate, key in self.session.execute(stmt):
            group = groups.setdefault(str(candidate), IdGroup(value=str(candidate)))
            group.ids.append(key)
        return list(groups.values())

    # writes

    def persist(self, source: T) -> T:
        """Insert a fresh entity built from ``source``."""

        entity = self._updater.create(source)
        if entity is None:
            raise TypeError("persist requires a source instance")
        key = self._identity(source)
        if key is not None and isinstance(entity, Identified):
            entity.set_identity(key)
        self.session.add(entity)
        self.session.flush()
        log.debug("Persisted %s %r", self.entity_cls.__name__, self._identity(entity))
        return entity

    def update_by_id(self, source: T) -> T:
        """Merge ``source`` into the persisted entity with the same identity."""

        persisted = self._require(self._require_identity(source))
        changed = self._updater.update(persisted, source)
        if changed:
            self.session.flush()
        log.debug(
            "Updated %s %r: changed=%s",
            self.entity_cls.__name__,
            self._identity(persisted),
            changed,
        )
        return persisted

    def update_by_ids(self, sources: Sequence[T]) -> list[T]:
        return [self.update_by_id(source) for source in sources]

    def remove(self, entity: T) -> None:
        self.session.delete(entity)

    def remove_by_id(self, key: Any) -> None:
        self.remove(self._require(key))

    def remove_by_ids(self, keys: Collection[Any]) -> None:
        for key in keys:
            self.remove_by_id(key)

    # helpers

    @property
    def _primary_key(self) -> ColumnElement[Any]:
        return self._mapper.primary_key[0]

    def _select(self) -> Select[tuple[T]]:
        return select(self.entity_cls).order_by(*self._mapper.primary_key)

    def _page(self, stmt: Select[tuple[T]], first_result: int, max_results: int) -> list[T]:
        paged = stmt.offset(first_result).limit(max_results)
        return list(self.session.execute(paged).scalars().all())

    def _column(self, field_name: str) -> ColumnElement[Any]:
        if field_name not in self._mapper.columns:
            raise UnknownFieldError(self.entity_cls, field_name)
        return self._mapper.columns[field_name]

    def _matching_values(self, field_name: str, value: str) -> Select[tuple[Any]]:
        self.descriptor.field(field_name)
        column = self._column(field_name)
        return (
            select(column)
            .where(column.icontains(value, autoescape=True), column.is_not(None))
            .distinct()
            .order_by(column)
        )

    def _identity(self, entity: object) -> Any:
        if isinstance(entity, Identified):
            return entity.get_identity()
        return None

    def _require(self, key: Any) -> T:
        entity = self.session.get(self.entity_cls, key)
        if entity is None:
            raise NotFoundError(self.entity_cls, key)
        return entity

    def _require_identity(self, source: object) -> Any:
        key = self._identity(source)
        if key is None:
            raise MissingIdentityError(f"{self.entity_cls.__name__} source has no identity")
        return key
