"""Persistence layer for the post matching engine.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - UserRepository, SkillRepository, AddressRepository
    - PostRepository, SwipeRepository, ModerationRepository

    # Matching sources (engine ports backed by SQL)
    - SqlPostSource, SqlProfileSource, SqlExclusionSource

    # Exceptions
    - PersistenceError and subclasses

Example usage:
    >>> from app.persistence import init_database, SqlPostSource
    >>> init_database("sqlite:///./data/post_matching.db")
    >>> SqlPostSource().fetch_candidates(7, PostStatus.ACTIVE, None, utc_now())
"""

from .database import (
    DEFAULT_DATABASE_URL,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AddressRepository,
    ModerationRepository,
    PostRepository,
    SkillRepository,
    SwipeRepository,
    UserRepository,
)
from .sources import SqlExclusionSource, SqlPostSource, SqlProfileSource

__all__ = [
    # Database functions
    "DEFAULT_DATABASE_URL",
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "UserRepository",
    "SkillRepository",
    "AddressRepository",
    "PostRepository",
    "SwipeRepository",
    "ModerationRepository",
    # Matching sources
    "SqlPostSource",
    "SqlProfileSource",
    "SqlExclusionSource",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
