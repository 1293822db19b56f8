"""SQL-backed implementations of the matching engine's collaborator ports.

Each call opens its own short-lived session, so one set of sources can serve
concurrent requests and parallel reads. Persistence and driver failures are
surfaced as TransientStorageError, which the engine propagates unchanged.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.domain.models import CandidatePost, PostMedium, PostStatus
from app.matching.exceptions import TransientStorageError

from .database import get_session
from .exceptions import PersistenceError
from .repositories import (
    AddressRepository,
    ModerationRepository,
    PostRepository,
    SkillRepository,
    SwipeRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


@contextmanager
def _storage_session(operation: str):
    try:
        with get_session() as session:
            yield session
    except (PersistenceError, SQLAlchemyError) as e:
        logger.error(
            f"Storage read '{operation}' failed: {e}",
            extra={"event": "persistence.read.failed", "operation": operation},
        )
        raise TransientStorageError() from e


class SqlPostSource:
    """PostSource over the posts, users and temp_addresses tables."""

    def fetch_candidates(
        self,
        viewer_id: int,
        status: PostStatus,
        medium: Optional[PostMedium],
        now: datetime,
    ) -> List[CandidatePost]:
        with _storage_session("candidates") as session:
            return PostRepository(session).fetch_candidates(viewer_id, status, medium, now)


class SqlProfileSource:
    """ProfileSource over users, work profiles, skills and addresses."""

    def user_exists(self, user_id: int) -> bool:
        with _storage_session("viewer") as session:
            return UserRepository(session).exists(user_id)

    def get_skill_sets(self, user_id: int) -> Tuple[Set[int], Set[int]]:
        with _storage_session("skills") as session:
            return SkillRepository(session).get_skill_sets(user_id)

    def get_active_pincode(self, user_id: int, now: datetime) -> Optional[str]:
        with _storage_session("address") as session:
            return AddressRepository(session).get_active_pincode(user_id, now)


class SqlExclusionSource:
    """ExclusionSource over blocks, swipes and reports."""

    def blocked_user_ids(self, viewer_id: int) -> Set[int]:
        with _storage_session("blocks") as session:
            return ModerationRepository(session).blocked_user_ids(viewer_id)

    def hidden_post_ids(self, viewer_id: int, now: datetime) -> Set[int]:
        with _storage_session("swipes") as session:
            return SwipeRepository(session).hidden_post_ids(viewer_id, now)

    def reported_post_ids(self, viewer_id: int) -> Set[int]:
        with _storage_session("reports") as session:
            return ModerationRepository(session).reported_post_ids(viewer_id)
