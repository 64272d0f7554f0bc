"""SQLAlchemy-backed unit of work handing out generic data access objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from crudmerge.adapters.sqlalchemy.data_access import SqlAlchemyDataAccess
from crudmerge.config.storage import get_database_config

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy import MetaData
    from sqlalchemy.engine import Engine

    from crudmerge.domain.merge import Updater

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call crudmerge.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    metadata: MetaData | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine and session factory, creating tables of ``metadata``."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_config().uri)
    if metadata is not None:
        metadata.create_all(resolved_engine)

    _STATE.engine = resolved_engine
    log.info("SQLAlchemy adapter started on %s", resolved_engine.url.render_as_string())


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyUnitOfWork:
    """One session per ``with`` block; rolled back when the block raises."""

    def __init__(self, *, updater: Updater | None = None) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self.updater = updater
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self.session_factory()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self.session.close()
            self.session = None
        return False

    def data_access[T](self, entity_cls: type[T]) -> SqlAlchemyDataAccess[T]:
        return SqlAlchemyDataAccess(self.session, entity_cls, updater=self.updater)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


if TYPE_CHECKING:
    from crudmerge.domain.ports.unit_of_work import UnitOfWork

    _uow_check: UnitOfWork = SqlAlchemyUnitOfWork()
