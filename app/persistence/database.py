"""Database connection and session management.

One engine and session factory per process. Matching reads open a short
session per source call through get_session(); seeding code (scripts, tests)
uses the same context manager so writes commit on exit.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config.environment import DEFAULT_DATABASE_URL
from app.logging import get_logger

from .exceptions import DatabaseConnectionError

_engine: Engine | None = None
_session_factory: sessionmaker | None = None

logger = get_logger(__name__, component="database")


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return _is_sqlite(url) and (url.rstrip("/") in ("sqlite:", "sqlite:/") or ":memory:" in url)


def init_database(database_url: str = DEFAULT_DATABASE_URL) -> None:
    """Initialize the engine, validate the connection and create missing tables.

    Call once at startup. In-memory SQLite URLs share a single connection
    across threads so parallel matching reads see the same data.

    Args:
        database_url: SQLAlchemy URL (e.g. "sqlite:///./data/post_matching.db")

    Raises:
        DatabaseConnectionError: If initialization fails
    """
    global _engine, _session_factory

    if not database_url or not isinstance(database_url, str):
        raise DatabaseConnectionError("Database URL must be a non-empty string")

    logger.info(
        "Initializing database",
        extra={"event": "database.initializing", "database_url": _redact_url(database_url)},
    )

    try:
        engine_kwargs = {"echo": False, "pool_pre_ping": True}

        if _is_sqlite(database_url):
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if _is_memory_sqlite(database_url):
                engine_kwargs["poolclass"] = StaticPool
            else:
                _ensure_parent_directory(database_url)

        engine = create_engine(database_url, **engine_kwargs)

        if _is_sqlite(database_url):
            _configure_sqlite(engine, wal=not _is_memory_sqlite(database_url))

        _validate_connection(engine)

        from .schema import create_schema

        create_schema(engine)

    except DatabaseConnectionError:
        raise
    except Exception as e:
        error_msg = f"Failed to initialize database: {e}"
        logger.error(error_msg, extra={"event": "database.init_failed"}, exc_info=True)
        raise DatabaseConnectionError(error_msg) from e

    # Replace any previous engine only once the new one is usable
    close_database()
    _engine = engine
    _session_factory = sessionmaker(bind=engine, autoflush=True, expire_on_commit=False)

    logger.info(
        "Database initialized",
        extra={"event": "database.initialized", "database_url": _redact_url(database_url)},
    )


def _ensure_parent_directory(database_url: str) -> None:
    db_file = Path(database_url.replace("sqlite:///", "", 1))
    if not db_file.parent.exists():
        logger.info(f"Creating database directory: {db_file.parent}")
        db_file.parent.mkdir(parents=True, exist_ok=True)


def _configure_sqlite(engine: Engine, wal: bool) -> None:
    """Enable foreign keys (and WAL for file databases) on every new connection."""

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def _validate_connection(engine: Engine) -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.debug("Database connection validated")
    except Exception as e:
        raise DatabaseConnectionError(f"Failed to validate database connection: {e}") from e


def _redact_url(url: str) -> str:
    """Hide the password component of a database URL for logging."""
    if _is_sqlite(url) or "@" not in url:
        return url

    credentials, _, host = url.rpartition("@")
    scheme, sep, userinfo = credentials.partition("://")
    if not sep:
        return url
    username = userinfo.split(":", 1)[0]
    return f"{scheme}://{username}:***@{host}"


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Provide a session that commits on success and rolls back on error.

    Raises:
        DatabaseConnectionError: If init_database() has not been called

    Example:
        >>> with get_session() as session:
        ...     repo = PostRepository(session)
        ...     posts = repo.fetch_candidates(7, PostStatus.ACTIVE, None, utc_now())
    """
    if _session_factory is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_session()"
        )

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning(
            f"Database session rolled back: {e}",
            extra={"event": "database.session.rolled_back", "error_type": type(e).__name__},
        )
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    """Return the initialized engine.

    Raises:
        DatabaseConnectionError: If init_database() has not been called
    """
    if _engine is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_engine()"
        )
    return _engine


def close_database() -> None:
    """Dispose of the engine. Safe to call when nothing is initialized."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        logger.info("Database connections closed", extra={"event": "database.closed"})
    _engine = None
    _session_factory = None
