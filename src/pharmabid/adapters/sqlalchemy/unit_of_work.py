"""SQLAlchemy-backed units of work for the marketplace."""

from __future__ import annotations

import logging
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from pharmabid.adapters.sqlalchemy.mappings import start_mappers
from pharmabid.adapters.sqlalchemy.migrations import upgrade_head
from pharmabid.adapters.sqlalchemy.repositories import (
    SqlAlchemyBidRepository,
    SqlAlchemyBidRequestRepository,
    SqlAlchemyCatalogRepository,
    SqlAlchemyDistributorRegistry,
    SqlAlchemyOrderBucketRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemyStagingRepository,
)
from pharmabid.config.storage import get_database_config
from pharmabid.domain.errors import ConsistencyError, TransientInfraError
from pharmabid.domain.ports.unit_of_work import MarketplaceRepositories, RepositoryCollection
from pharmabid.domain.text import trigram_similarity

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine

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
                "SQLAlchemy adapter not initialised. Call pharmabid.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()
_PREPARED_ENGINES: weakref.WeakSet[Engine] = weakref.WeakSet()


def _prepare_engine(engine: Engine, *, transaction_timeout_seconds: float) -> None:
    """Install per-connection hooks: similarity function, locking and timeouts.

    SQLite gets ``BEGIN IMMEDIATE`` transactions so the write lock is taken
    before any read, a ``busy_timeout`` bound, enforced foreign keys and a
    ``similarity()`` SQL function with ``pg_trgm`` semantics. PostgreSQL gets a
    per-transaction ``statement_timeout``.
    """

    if engine in _PREPARED_ENGINES:
        return
    timeout_ms = int(transaction_timeout_seconds * 1000)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _on_sqlite_connect(dbapi_connection: Any, _record: Any) -> None:
            dbapi_connection.isolation_level = None
            dbapi_connection.create_function(
                "similarity", 2, trigram_similarity, deterministic=True
            )
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute(f"PRAGMA busy_timeout={timeout_ms}")
            finally:
                cursor.close()

        @event.listens_for(engine, "begin")
        def _on_sqlite_begin(connection: Connection) -> None:
            connection.exec_driver_sql("BEGIN IMMEDIATE")

    elif engine.dialect.name == "postgresql":

        @event.listens_for(engine, "begin")
        def _on_postgres_begin(connection: Connection) -> None:
            connection.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")

    _PREPARED_ENGINES.add(engine)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    transaction_timeout_seconds: float | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, metadata, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if transaction_timeout_seconds is None or (engine is None and database_uri is None):
        config = get_database_config()
        database_uri = database_uri or config.uri
        transaction_timeout_seconds = (
            transaction_timeout_seconds or config.transaction_timeout_seconds
        )
    resolved_engine = engine or create_engine(database_uri, future=True)
    _prepare_engine(resolved_engine, transaction_timeout_seconds=transaction_timeout_seconds)
    start_mappers()
    upgrade_head(engine=resolved_engine)

    _STATE.engine = resolved_engine
    log.info("SQLAlchemy adapter started on %s", resolved_engine.url.render_as_string())


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def _translate(exc: BaseException) -> Exception | None:
    if isinstance(exc, IntegrityError):
        log.error("Store rejected a write: %s", exc.orig)
        return ConsistencyError("The change conflicts with existing data")
    if isinstance(exc, OperationalError | PoolTimeoutError):
        log.warning("Store unavailable or transaction timed out: %s", exc)
        return TransientInfraError("The store is temporarily unavailable; retry the operation")
    return None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Store-level failures are re-raised as ``ConsistencyError`` (constraint
    violations) or ``TransientInfraError`` (locks, timeouts, lost connections).
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        if exc_value is not None:
            translated = _translate(exc_value)
            if translated is not None:
                raise translated from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except (IntegrityError, OperationalError, PoolTimeoutError) as exc:
            translated = _translate(exc)
            if translated is None:
                raise
            raise translated from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

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


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[MarketplaceRepositories]):
    """Unit of work managing SQLAlchemy sessions for marketplace operations."""

    def _build_repositories(self, session: Session) -> MarketplaceRepositories:
        return MarketplaceRepositories(
            catalog=SqlAlchemyCatalogRepository(session),
            distributors=SqlAlchemyDistributorRegistry(session),
            staging=SqlAlchemyStagingRepository(session),
            bid_requests=SqlAlchemyBidRequestRepository(session),
            bids=SqlAlchemyBidRepository(session),
            orders=SqlAlchemyOrderRepository(session),
            buckets=SqlAlchemyOrderBucketRepository(session),
        )


if TYPE_CHECKING:
    from pharmabid.domain.ports.unit_of_work import MarketplaceUnitOfWork

    _uow_check: MarketplaceUnitOfWork = SqlAlchemyUnitOfWork()
