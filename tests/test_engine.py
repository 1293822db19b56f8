"""Tests for the matching engine orchestration."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from conftest import FakeExclusionSource, FakePostSource, FakeProfileSource

from app.domain.models import PostMedium, PostStatus
from app.matching.engine import PostMatchingEngine
from app.matching.exceptions import (
    MatchingTimeoutError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)
from app.matching.models import parse_match_query
from app.matching.scoring import AxisWeights
from app.matching.utils import to_response

VIEWER = 1
VIEWER_PROFILE = {VIEWER: ({1, 3}, {2}, "361004")}


class SteppingClock:
    """Monotonic clock advancing a fixed step on every read."""

    def __init__(self, step: float):
        self.step = step
        self.value = 0.0

    def __call__(self) -> float:
        self.value += self.step
        return self.value


class TestScenarios:
    """End-to-end scoring scenarios through the engine."""

    def test_all_axes_match_scores_100(self, build_engine, make_post, now):
        post = make_post(10, required_skill_id=1, required_sub_skill_id=2,
                         owner_active_pincode="361004")
        engine = build_engine(posts=[post], profiles=VIEWER_PROFILE)

        page = engine.find_matches(VIEWER, now=now)

        assert page.items[0].match.percentage == 100
        assert page.items[0].match.score == page.items[0].match.max_score == 6

    def test_nothing_matches_scores_0(self, build_engine, make_post, now):
        post = make_post(10, required_skill_id=5, owner_active_pincode="110001")
        engine = build_engine(posts=[post], profiles=VIEWER_PROFILE)

        page = engine.find_matches(VIEWER, now=now)

        match = page.items[0].match
        assert match.percentage == 0
        assert match.max_score == 6
        assert match.reasons.sub_skill_match is False

    def test_location_disabled_ignores_pincode_mismatch(self, build_engine, make_post, now):
        post = make_post(10, required_skill_id=1, required_sub_skill_id=2,
                         owner_active_pincode="110001")
        engine = build_engine(posts=[post], profiles=VIEWER_PROFILE)

        page = engine.find_matches(VIEWER, {"match_location": "false"}, now=now)

        match = page.items[0].match
        assert match.percentage == 100
        assert match.max_score == 5
        assert "locationMatch" not in match.reasons.to_dict()

    def test_thin_profile_returns_zero_scored_posts(self, build_engine, make_post, now):
        posts = [
            make_post(10, required_skill_id=1, owner_active_pincode="361004"),
            make_post(11, required_sub_skill_id=2),
        ]
        engine = build_engine(posts=posts, profiles={VIEWER: (set(), set(), None)})

        page = engine.find_matches(VIEWER, now=now)

        assert len(page.items) == 2
        assert all(item.match.percentage == 0 for item in page.items)
        assert page.criteria.to_dict()["userDataCounts"] == {
            "skills": 0,
            "subSkills": 0,
            "locations": 0,
        }

    def test_threshold_filters_and_counts(self, build_engine, make_post, now):
        posts = [
            make_post(10, required_skill_id=1, required_sub_skill_id=2,
                      owner_active_pincode="361004"),  # 100
            make_post(11, required_skill_id=1),  # 50
            make_post(12, required_sub_skill_id=2),  # 33
            make_post(13),  # 0
        ]
        engine = build_engine(posts=posts, profiles=VIEWER_PROFILE)

        page = engine.find_matches(VIEWER, {"min_match_score": "50"}, now=now)

        assert page.post_ids == [10, 11]
        assert page.pagination.total_items == 2
        assert page.pagination.total_pages == 1
        assert page.candidate_count == 4


class TestEngineBehaviour:
    def test_ranked_by_percentage_then_recency(self, build_engine, make_post, now):
        posts = [
            make_post(10, required_skill_id=1, created_at=now - timedelta(days=3)),
            make_post(11, required_skill_id=1, created_at=now - timedelta(days=1)),
            make_post(12, required_skill_id=1, required_sub_skill_id=2,
                      created_at=now - timedelta(days=5)),
            make_post(13, created_at=now),
        ]
        engine = build_engine(posts=posts, profiles=VIEWER_PROFILE)

        page = engine.find_matches(VIEWER, now=now)

        assert page.post_ids == [12, 11, 10, 13]

    def test_exclusions_applied(self, build_engine, make_post, now):
        posts = [
            make_post(10, owner_id=VIEWER),
            make_post(11, owner_id=5),
            make_post(12, owner_id=6),
            make_post(13, owner_id=7),
            make_post(14, owner_id=8, status=PostStatus.DELETED),
            make_post(15, owner_id=9, deadline=(now - timedelta(days=1)).date()),
            make_post(16, owner_id=10, owner_suspended=True),
            make_post(17, owner_id=11),
        ]
        engine = build_engine(
            posts=posts, profiles=VIEWER_PROFILE, blocked={5}, hidden={12}, reported={13}
        )

        page = engine.find_matches(VIEWER, now=now)

        assert page.post_ids == [17]
        assert page.excluded_count == 7

    def test_status_and_medium_passed_to_source(self, make_post, now):
        post_source = FakePostSource(
            [
                make_post(10, status=PostStatus.HOLD, medium=PostMedium.OFFLINE),
                make_post(11, status=PostStatus.HOLD, medium=PostMedium.ONLINE),
                make_post(12, status=PostStatus.ACTIVE, medium=PostMedium.OFFLINE),
            ],
            prefilter=True,
        )
        engine = PostMatchingEngine(
            post_source, FakeProfileSource(VIEWER_PROFILE), FakeExclusionSource()
        )

        page = engine.find_matches(VIEWER, {"status": "hold", "medium": "offline"}, now=now)

        assert page.post_ids == [10]
        assert post_source.calls == [(VIEWER, PostStatus.HOLD, PostMedium.OFFLINE, now)]

    def test_deleted_status_returns_nothing(self, build_engine, make_post, now):
        engine = build_engine(
            posts=[make_post(10, status=PostStatus.DELETED)], profiles=VIEWER_PROFILE
        )

        page = engine.find_matches(VIEWER, {"status": "deleted"}, now=now)

        assert page.items == []
        assert to_response(page)["message"] == "No matching posts found"

    def test_no_axes_enabled_returns_unscored_by_recency(self, build_engine, make_post, now):
        posts = [
            make_post(10, required_skill_id=1, created_at=now - timedelta(days=2)),
            make_post(11, created_at=now - timedelta(days=1)),
        ]
        profile_source = FakeProfileSource(VIEWER_PROFILE)
        engine = build_engine(posts=posts, profile_source=profile_source)

        page = engine.find_matches(
            VIEWER,
            {
                "match_skills": False,
                "match_sub_skills": False,
                "match_location": False,
                "min_match_score": 90,
            },
            now=now,
        )

        assert page.post_ids == [11, 10]
        assert page.scored is False
        assert all(item.match is None for item in page.items)
        assert profile_source.calls == ["user_exists"]

    def test_pagination_pages_are_consistent(self, build_engine, make_post, now):
        posts = [make_post(i, required_skill_id=1 if i % 2 else 9) for i in range(10, 35)]
        engine = build_engine(posts=posts, profiles=VIEWER_PROFILE)

        full = engine.find_matches(VIEWER, {"limit": 100}, now=now).post_ids
        paged = []
        for page_number in (1, 2, 3):
            paged.extend(
                engine.find_matches(VIEWER, {"page": page_number, "limit": 10}, now=now).post_ids
            )

        assert paged == full
        assert len(set(paged)) == 25

    def test_deterministic(self, build_engine, make_post, now):
        posts = [make_post(i, required_skill_id=i % 4, owner_active_pincode="361004")
                 for i in range(10, 30)]
        engine = build_engine(posts=posts, profiles=VIEWER_PROFILE)

        first = to_response(engine.find_matches(VIEWER, now=now))
        second = to_response(engine.find_matches(VIEWER, now=now))

        assert first == second

    def test_custom_weights(self, build_engine, make_post, now):
        post = make_post(10, required_skill_id=1)
        engine = build_engine(
            posts=[post], profiles=VIEWER_PROFILE,
            weights=AxisWeights(skills=1, sub_skills=1, location=1),
        )

        match = engine.find_matches(VIEWER, now=now).items[0].match

        assert (match.score, match.max_score, match.percentage) == (1, 3, 33)

    def test_accepts_prebuilt_query(self, build_engine, make_post, now):
        engine = build_engine(posts=[make_post(10)], profiles=VIEWER_PROFILE)

        page = engine.find_matches(VIEWER, parse_match_query(limit=1), now=now)

        assert page.pagination.items_per_page == 1


class TestEngineErrors:
    """Tests for the error taxonomy surfaced by the engine."""

    @pytest.mark.parametrize("viewer_id", [0, -3, "7", None, True, 1.5])
    def test_invalid_viewer_id(self, viewer_id):
        post_source = MagicMock()
        profile_source = MagicMock()
        engine = PostMatchingEngine(post_source, profile_source, MagicMock())

        with pytest.raises(ValidationError) as exc_info:
            engine.find_matches(viewer_id)

        assert exc_info.value.fields == ["viewer_id"]
        profile_source.user_exists.assert_not_called()

    def test_invalid_query_rejected_before_reads(self):
        post_source = MagicMock()
        profile_source = MagicMock()
        engine = PostMatchingEngine(post_source, profile_source, MagicMock())

        with pytest.raises(ValidationError) as exc_info:
            engine.find_matches(VIEWER, {"limit": "500"})

        assert "limit" in exc_info.value.fields
        profile_source.user_exists.assert_not_called()
        post_source.fetch_candidates.assert_not_called()

    def test_unknown_viewer(self, build_engine):
        engine = build_engine(profiles={})

        with pytest.raises(NotFoundError, match="User not found"):
            engine.find_matches(VIEWER)

    def test_require_location_without_address(self, build_engine, make_post):
        engine = build_engine(posts=[make_post(10)], profiles={VIEWER: ({1}, set(), None)})

        with pytest.raises(NotFoundError):
            engine.find_matches(VIEWER, {"require_location": "true"})

        # Without the flag the same viewer degrades gracefully
        assert engine.find_matches(VIEWER).post_ids == [10]

    def test_require_location_ignored_when_axis_disabled(self, build_engine, make_post):
        engine = build_engine(posts=[make_post(10)], profiles={VIEWER: ({1}, set(), None)})

        page = engine.find_matches(VIEWER, {"require_location": True, "match_location": False})

        assert page.post_ids == [10]

    def test_candidate_read_failure_is_transient(self, build_engine):
        engine = build_engine(
            profiles=VIEWER_PROFILE,
            post_source=FakePostSource(error=RuntimeError("connection reset")),
        )

        with pytest.raises(TransientStorageError) as exc_info:
            engine.find_matches(VIEWER)

        assert exc_info.value.status_code == 503
        assert "connection reset" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_exclusion_read_failure_is_transient(self, build_engine):
        engine = build_engine(
            profiles=VIEWER_PROFILE,
            exclusion_source=FakeExclusionSource(error=OSError("disk")),
        )

        with pytest.raises(TransientStorageError):
            engine.find_matches(VIEWER)

    def test_profile_read_failure_is_transient(self, build_engine):
        engine = build_engine(profile_source=FakeProfileSource(error=RuntimeError("boom")))

        with pytest.raises(TransientStorageError):
            engine.find_matches(VIEWER)

    def test_matching_errors_from_sources_propagate_unchanged(self, build_engine):
        error = TransientStorageError("storage busy")
        engine = build_engine(profiles=VIEWER_PROFILE, post_source=FakePostSource(error=error))

        with pytest.raises(TransientStorageError) as exc_info:
            engine.find_matches(VIEWER)

        assert exc_info.value is error


class TestDeadline:
    def test_timeout_raises_instead_of_partial_page(self, build_engine, make_post, now):
        posts = [make_post(i) for i in range(10, 60)]
        engine = build_engine(
            posts=posts, profiles=VIEWER_PROFILE, clock=SteppingClock(step=1.0)
        )

        with pytest.raises(MatchingTimeoutError) as exc_info:
            engine.find_matches(VIEWER, now=now, timeout=5)

        assert exc_info.value.status_code == 504

    def test_default_timeout_from_engine(self, build_engine, make_post, now):
        engine = build_engine(
            posts=[make_post(10)],
            profiles=VIEWER_PROFILE,
            clock=SteppingClock(step=1.0),
            default_timeout=2,
        )

        with pytest.raises(MatchingTimeoutError):
            engine.find_matches(VIEWER, now=now)

    def test_generous_budget_completes(self, build_engine, make_post, now):
        engine = build_engine(
            posts=[make_post(i) for i in range(10, 20)],
            profiles=VIEWER_PROFILE,
            clock=SteppingClock(step=0.001),
        )

        page = engine.find_matches(VIEWER, now=now, timeout=60)

        assert page.pagination.total_items == 10


class TestParallelReads:
    def test_parallel_reads_match_sequential(self, build_engine, make_post, now):
        posts = [make_post(i, owner_id=100 + i % 3, required_skill_id=i % 3)
                 for i in range(10, 30)]
        kwargs = dict(posts=posts, profiles=VIEWER_PROFILE, blocked={101}, hidden={12})

        sequential = build_engine(**kwargs).find_matches(VIEWER, now=now)
        parallel = build_engine(parallel_reads=True, **kwargs).find_matches(VIEWER, now=now)

        assert to_response(parallel) == to_response(sequential)

    def test_parallel_read_failure_is_transient(self, build_engine):
        engine = build_engine(
            profiles=VIEWER_PROFILE,
            parallel_reads=True,
            post_source=FakePostSource(error=RuntimeError("boom")),
        )

        with pytest.raises(TransientStorageError):
            engine.find_matches(VIEWER)

    def test_slow_parallel_read_times_out(self, build_engine):
        release = threading.Event()

        class BlockingPostSource(FakePostSource):
            def fetch_candidates(self, viewer_id, status, medium, now):
                release.wait(5)
                return []

        engine = build_engine(
            profiles=VIEWER_PROFILE,
            parallel_reads=True,
            post_source=BlockingPostSource(),
        )

        try:
            with pytest.raises(MatchingTimeoutError) as exc_info:
                engine.find_matches(VIEWER, timeout=0.05)
            assert exc_info.value.stage == "reads"
        finally:
            release.set()
