"""Framework-free CRUD service over one entity class.

Every call opens its own unit of work; calls that write commit before
returning. Results are plain entity instances.
"""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from crudmerge.config.service import ServiceConfig, get_service_config
from crudmerge.domain.ports.unit_of_work import UnitOfWork

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from crudmerge.domain.ports.data_access import IdGroup

UnitOfWorkFactory = Callable[[], UnitOfWork]

log = getLogger(__name__)


class ResourceService[T]:
    def __init__(
        self,
        entity_cls: type[T],
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        config: ServiceConfig | None = None,
    ) -> None:
        self.entity_cls = entity_cls
        self.unit_of_work_factory = unit_of_work_factory
        self.config = config if config is not None else get_service_config()

    # GET

    def get(self, key: Any) -> T:
        with self.unit_of_work_factory() as uow:
            return cast("T", uow.data_access(self.entity_cls).find_by_id(key))

    def get_many(self, keys: Collection[Any]) -> list[T]:
        with self.unit_of_work_factory() as uow:
            return uow.data_access(self.entity_cls).list_by_ids(keys)

    def list_all(self, first_result: int | None = None, max_results: int | None = None) -> list[T]:
        first, limit = self._paging(first_result, max_results)
        with self.unit_of_work_factory() as uow:
            return uow.data_access(self.entity_cls).list_all(first, limit)

    def filter_equals(
        self,
        field_name: str,
        value: object,
        first_result: int | None = None,
        max_results: int | None = None,
    ) -> list[T]:
        first, limit = self._paging(first_result, max_results)
        with self.unit_of_work_factory() as uow:
            access = uow.data_access(self.entity_cls)
            return access.list_by_field_equals(field_name, value, first, limit)

    def filter_like(
        self,
        field_name: str,
        value: str,
        first_result: int | None = None,
        max_results: int | None = None,
    ) -> list[T]:
        first, limit = self._paging(first_result, max_results)
        with self.unit_of_work_factory() as uow:
            access = uow.data_access(self.entity_cls)
            return access.list_by_field_like(field_name, value, first, limit)

    def filter_in(
        self,
        field_name: str,
        values: Collection[object],
        first_result: int | None = None,
        max_results: int | None = None,
    ) -> list[T]:
        first, limit = self._paging(first_result, max_results)
        with self.unit_of_work_factory() as uow:
            access = uow.data_access(self.entity_cls)
            return access.list_by_field_in(field_name, values, first, limit)

    def filter_content_equals(
        self, example: T, first_result: int | None = None, max_results: int | None = None
    ) -> list[T]:
        first, limit = self._paging(first_result, max_results)
        with self.unit_of_work_factory() as uow:
            return uow.data_access(self.entity_cls).list_by_content_equals(example, first, limit)

    def filter_content_in(
        self,
        examples: Sequence[T],
        first_result: int | None = None,
        max_results: int | None = None,
    ) -> list[T]:
        first, limit = self._paging(first_result, max_results)
        with self.unit_of_work_factory() as uow:
            return uow.data_access(self.entity_cls).list_by_content_in(examples, first, limit)

    def autocomplete(self, field_name: str, value: str, max_results: int | None = None) -> list[str]:
        """Distinct values of ``field_name`` containing ``value``.

        Inputs shorter than the autocomplete cut return nothing.
        """

        if len(value) < self.config.autocomplete_cut:
            return []
        limit = self.config.resolve_autocomplete_max_results(max_results)
        with self.unit_of_work_factory() as uow:
            return uow.data_access(self.entity_cls).autocomplete(field_name, value, limit)

    def autocomplete_ids(
        self, field_name: str, value: str, max_results: int | None = None
    ) -> list[IdGroup]:
        if len(value) < self.config.autocomplete_cut:
            return []
        limit = self.config.resolve_autocomplete_max_results(max_results)
        with self.unit_of_work_factory() as uow:
            return uow.data_access(self.entity_cls).autocomplete_ids(field_name, value, limit)

    # POST / PUT / DELETE

    def post(self, source: T) -> T:
        return self.post_many([source])[0]

    def post_many(self, sources: Sequence[T]) -> list[T]:
        with self.unit_of_work_factory() as uow:
            access = uow.data_access(self.entity_cls)
            created = [access.persist(source) for source in sources]
            uow.commit()
        log.info("Created %d %s", len(created), self.entity_cls.__name__)
        return created

    def put(self, source: T) -> T:
        """Merge ``source`` into the stored entity sharing its identity."""

        return self.put_many([source])[0]

    def put_many(self, sources: Sequence[T]) -> list[T]:
        with self.unit_of_work_factory() as uow:
            access = uow.data_access(self.entity_cls)
            updated = [access.update_by_id(source) for source in sources]
            uow.commit()
        log.info("Updated %d %s", len(updated), self.entity_cls.__name__)
        return updated

    def delete(self, key: Any) -> None:
        self.delete_many([key])

    def delete_many(self, keys: Collection[Any]) -> None:
        with self.unit_of_work_factory() as uow:
            uow.data_access(self.entity_cls).remove_by_ids(keys)
            uow.commit()
        log.info("Deleted %d %s", len(keys), self.entity_cls.__name__)

    def _paging(self, first_result: int | None, max_results: int | None) -> tuple[int, int]:
        return (
            self.config.resolve_first_result(first_result),
            self.config.resolve_max_results(max_results),
        )
