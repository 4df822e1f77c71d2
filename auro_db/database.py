from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, NoSuchModuleError
from sqlalchemy.orm import Session, sessionmaker

from .config import ConfigurationError, Settings, load_settings

logger = logging.getLogger(__name__)

MISSING_URL_MESSAGE = "Please setup DATABASE_URL environment variable"

# Node-style URLs are accepted and routed to the psycopg driver.
_POSTGRES_PREFIXES = ("postgres://", "postgresql://")
_POSTGRES_DRIVER_PREFIX = "postgresql+psycopg://"


@dataclass(frozen=True)
class Database:
    """The shared handle: one engine and the session factory bound to it."""

    engine: Engine
    session_factory: sessionmaker

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


@dataclass(frozen=True)
class Configured:
    database: Database


@dataclass(frozen=True)
class DeferredForBuild:
    pass


@dataclass(frozen=True)
class MissingFatal:
    reason: str


Resolution = Union[Configured, DeferredForBuild, MissingFatal]


def normalize_url(url: str) -> str:
    url = url.strip()
    for prefix in _POSTGRES_PREFIXES:
        if url.startswith(prefix):
            return _POSTGRES_DRIVER_PREFIX + url[len(prefix):]
    return url


def _make_sqlite_ddl_transactional(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so DDL joins the open transaction.

    pysqlite only starts a transaction before DML, which would leave
    CREATE TABLE committed after a failed migration.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_database(url: str, echo: bool = False, **engine_kwargs) -> Database:
    """Construct a handle for ``url``.

    Raises:
        ConfigurationError: if SQLAlchemy does not recognise the URL or its
            dialect/driver.
    """
    url = normalize_url(url)
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        # FastAPI runs sync dependencies in a thread pool.
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})

    try:
        engine = create_engine(url, echo=echo, future=True, **engine_kwargs)
    except (ArgumentError, NoSuchModuleError) as exc:
        raise ConfigurationError(f"Unusable DATABASE_URL: {exc}") from exc

    if is_sqlite:
        _make_sqlite_ddl_transactional(engine)

    session_factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    return Database(engine=engine, session_factory=session_factory)


def resolve_database(settings: Settings) -> Resolution:
    """Turn settings into a tagged result without raising for a missing URL."""
    if settings.database_url:
        return Configured(create_database(settings.database_url, echo=settings.sql_echo))
    if settings.building:
        return DeferredForBuild()
    return MissingFatal(MISSING_URL_MESSAGE)


_database: Optional[Database] = None
_lock = threading.Lock()


def bootstrap(settings: Optional[Settings] = None) -> Resolution:
    """Resolve configuration at process start and install the shared handle.

    Fails fast on a missing URL unless the process is building, in which
    case the handle is left unconstructed and a warning is logged.
    """
    global _database

    with _lock:
        if _database is not None:
            return Configured(_database)

        if settings is None:
            settings = load_settings()
        resolution = resolve_database(settings)
        if isinstance(resolution, MissingFatal):
            raise ConfigurationError(resolution.reason)
        if isinstance(resolution, DeferredForBuild):
            logger.warning("DATABASE_URL is not set; database handle deferred while building.")
            return resolution

        _database = resolution.database
        logger.info("Database handle created for %s", _database.engine.url.render_as_string())
        return resolution


def get_database() -> Database:
    """Return the process-wide handle, constructing it on first use."""
    resolution = bootstrap()
    if isinstance(resolution, DeferredForBuild):
        raise ConfigurationError("Database handle requested while building.")
    return resolution.database


def dispose_database() -> None:
    """Dispose the shared engine and forget it."""
    global _database

    with _lock:
        if _database is not None:
            _database.dispose()
            _database = None
