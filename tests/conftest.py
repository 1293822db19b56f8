"""Shared fixtures: in-memory collaborator fakes, post factories, databases."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pytest

from app.domain.models import CandidatePost, PostMedium, PostStatus
from app.matching.engine import PostMatchingEngine
from app.persistence.database import close_database, init_database

FIXED_NOW = datetime(2025, 10, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakePostSource:
    """PostSource returning a fixed post list.

    Returns every post unfiltered by default so the engine's own eligibility
    checks are exercised; ``prefilter=True`` mimics the SQL source.
    """

    def __init__(self, posts: Iterable[CandidatePost] = (), error: Exception = None,
                 prefilter: bool = False):
        self.posts = list(posts)
        self.error = error
        self.prefilter = prefilter
        self.calls: List[Tuple] = []

    def fetch_candidates(self, viewer_id, status, medium, now):
        self.calls.append((viewer_id, status, medium, now))
        if self.error is not None:
            raise self.error
        if not self.prefilter:
            return list(self.posts)
        return [
            post
            for post in self.posts
            if post.owner_id != viewer_id
            and post.status == status
            and (medium is None or post.medium == medium)
        ]


class FakeProfileSource:
    """ProfileSource backed by a dict of user_id -> (skills, sub_skills, pincode)."""

    def __init__(self, profiles: Optional[Dict[int, Tuple[Set[int], Set[int], Optional[str]]]] = None,
                 error: Exception = None):
        self.profiles = profiles or {}
        self.error = error
        self.calls: List[str] = []

    def user_exists(self, user_id):
        self.calls.append("user_exists")
        if self.error is not None:
            raise self.error
        return user_id in self.profiles

    def get_skill_sets(self, user_id):
        self.calls.append("get_skill_sets")
        skills, sub_skills, _ = self.profiles[user_id]
        return set(skills), set(sub_skills)

    def get_active_pincode(self, user_id, now):
        self.calls.append("get_active_pincode")
        return self.profiles[user_id][2]


class FakeExclusionSource:
    """ExclusionSource backed by fixed id sets."""

    def __init__(self, blocked=(), hidden=(), reported=(), error: Exception = None):
        self.blocked = set(blocked)
        self.hidden = set(hidden)
        self.reported = set(reported)
        self.error = error

    def blocked_user_ids(self, viewer_id):
        if self.error is not None:
            raise self.error
        return set(self.blocked)

    def hidden_post_ids(self, viewer_id, now):
        return set(self.hidden)

    def reported_post_ids(self, viewer_id):
        return set(self.reported)


@pytest.fixture
def now():
    """Fixed reference time for expiry checks."""
    return FIXED_NOW


@pytest.fixture
def make_post():
    """Factory for CandidatePost with sensible defaults.

    Posts created later get a later created_at unless one is given, so the
    insertion order doubles as recency order.
    """
    counter = {"n": 0}

    def _make(post_id: int, owner_id: int = 100, **overrides) -> CandidatePost:
        counter["n"] += 1
        fields = {
            "id": post_id,
            "owner_id": owner_id,
            "status": PostStatus.ACTIVE,
            "medium": PostMedium.ONLINE,
            "required_skill_id": None,
            "required_sub_skill_id": None,
            "owner_active_pincode": None,
            "title": f"Post {post_id}",
            "created_at": FIXED_NOW - timedelta(days=30) + timedelta(minutes=counter["n"]),
        }
        fields.update(overrides)
        return CandidatePost(**fields)

    return _make


@pytest.fixture
def build_engine():
    """Factory wiring an engine to in-memory fakes."""

    def _build(posts=(), profiles=None, blocked=(), hidden=(), reported=(), **engine_kwargs):
        post_source = engine_kwargs.pop("post_source", None) or FakePostSource(posts)
        profile_source = engine_kwargs.pop("profile_source", None) or FakeProfileSource(profiles)
        exclusion_source = engine_kwargs.pop("exclusion_source", None) or FakeExclusionSource(
            blocked, hidden, reported
        )
        return PostMatchingEngine(
            post_source=post_source,
            profile_source=profile_source,
            exclusion_source=exclusion_source,
            **engine_kwargs,
        )

    return _build


@pytest.fixture
def memory_db():
    """Initialize an in-memory SQLite database for the duration of a test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Clear the environment variables the config layer reads."""
    for name in ("DATABASE_URL", "LOG_LEVEL", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
