"""Post matching engine.

Orchestrates one matching request:
1. Validate the query (before any storage read)
2. Resolve the viewer profile (skills, sub-skills, active pincode)
3. Read candidate posts and exclusion sets, optionally in parallel
4. Filter for eligibility, score every eligible post
5. Apply the percentage threshold, rank, and paginate
6. Report the matching criteria used

The engine holds no per-request state, so one instance can serve concurrent
requests. A request deadline is checked between stages and while scoring;
when it passes the request fails with MatchingTimeoutError instead of
returning a partially ranked page.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextvars import copy_context
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from app.domain.models import CandidatePost, ViewerProfile
from app.logging import get_logger
from app.logging.context import log_context
from app.utils.timestamps import ensure_utc, utc_now, utc_today

from .criteria import build_matching_criteria, missing_profile_data
from .eligibility import EligibilityFilter, ExclusionPredicates
from .exceptions import (
    MatchingError,
    MatchingTimeoutError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)
from .models import MatchedPost, MatchingPage, MatchQuery, parse_match_query
from .ports import ExclusionSource, PostSource, ProfileSource
from .ranking import apply_threshold, paginate, rank
from .scoring import AxisWeights, ScoreAggregator

logger = get_logger(__name__, component="matching")

QueryInput = Union[MatchQuery, Mapping[str, Any], None]


class _Deadline:
    """Monotonic deadline for one request. ``None`` budget means no limit."""

    def __init__(self, budget_seconds: Optional[float], clock: Callable[[], float]):
        self._clock = clock
        self._expires_at = clock() + budget_seconds if budget_seconds is not None else None

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def check(self, stage: str) -> None:
        if self._expires_at is not None and self._clock() >= self._expires_at:
            raise MatchingTimeoutError(stage)


class PostMatchingEngine:
    """Ranks candidate posts for a viewer by skill, sub-skill and location match.

    Collaborators are injected so the engine can run against SQL-backed
    sources in production and in-memory fakes in tests.
    """

    def __init__(
        self,
        post_source: PostSource,
        profile_source: ProfileSource,
        exclusion_source: ExclusionSource,
        weights: Optional[AxisWeights] = None,
        exclude_expired_posts: bool = True,
        parallel_reads: bool = False,
        default_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        logger_instance=None,
    ):
        """Initialize the engine.

        Args:
            post_source: Candidate post reader
            profile_source: Viewer skills and active pincode reader
            exclusion_source: Blocks, swipes and reports reader
            weights: Points per axis (defaults to skill 3, sub-skill 2, location 1)
            exclude_expired_posts: Hide posts whose deadline has passed
            parallel_reads: Read candidates and exclusions concurrently
            default_timeout: Request budget in seconds when the caller passes none
            clock: Monotonic clock, injectable for tests
            logger_instance: Optional logger (defaults to module logger)
        """
        self.post_source = post_source
        self.profile_source = profile_source
        self.exclusion_source = exclusion_source
        self.aggregator = ScoreAggregator(weights)
        self.eligibility = EligibilityFilter(exclude_expired_posts=exclude_expired_posts)
        self.parallel_reads = parallel_reads
        self.default_timeout = default_timeout
        self.clock = clock
        self.logger = logger_instance or logger

    def find_matches(
        self,
        viewer_id: int,
        query: QueryInput = None,
        now: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> MatchingPage:
        """Return one ranked, paginated page of matching posts for the viewer.

        Args:
            viewer_id: Authenticated user making the request
            query: MatchQuery or raw parameter mapping (defaults applied when None)
            now: Reference time for swipe/address/deadline expiry (defaults to UTC now)
            timeout: Request budget in seconds (overrides the engine default)

        Returns:
            MatchingPage with ranked items, pagination and criteria

        Raises:
            ValidationError: Malformed viewer id or query parameters
            NotFoundError: Unknown viewer, or no active address when required
            TransientStorageError: A storage read failed
            MatchingTimeoutError: The deadline passed before ranking finished
        """
        match_query = self._validate(viewer_id, query)
        now = ensure_utc(now) if now is not None else utc_now()
        deadline = _Deadline(timeout if timeout is not None else self.default_timeout, self.clock)
        started = self.clock()

        with log_context(viewer_id=viewer_id):
            self.logger.info(
                "Matching request started",
                extra={
                    "event": "matching.request.started",
                    "page": match_query.page,
                    "limit": match_query.limit,
                    "status": match_query.status.value,
                    "medium": match_query.medium.value if match_query.medium else None,
                    "min_match_score": match_query.min_match_score,
                },
            )

            try:
                page = self._run(viewer_id, match_query, now, deadline)
            except MatchingTimeoutError as e:
                self.logger.warning(
                    "Matching request timed out",
                    extra={"event": "matching.request.timeout", "stage": e.stage},
                )
                raise

            self.logger.info(
                f"Matching request completed: {len(page.items)} of {page.pagination.total_items} posts",
                extra={
                    "event": "matching.request.completed",
                    "candidate_count": page.candidate_count,
                    "excluded_count": page.excluded_count,
                    "total_items": page.pagination.total_items,
                    "returned_count": len(page.items),
                    "scored": page.scored,
                    "duration_ms": round((self.clock() - started) * 1000, 2),
                },
            )
            return page

    def _validate(self, viewer_id: int, query: QueryInput) -> MatchQuery:
        if isinstance(viewer_id, bool) or not isinstance(viewer_id, int) or viewer_id < 1:
            error = ValidationError("Invalid viewer")
            error.add_error("viewer_id", "must be a positive integer")
            raise error

        if isinstance(query, MatchQuery):
            return query
        return parse_match_query(query)

    def _run(
        self, viewer_id: int, query: MatchQuery, now: datetime, deadline: _Deadline
    ) -> MatchingPage:
        axes = query.axes

        viewer = self._load_viewer(viewer_id, query, now)
        deadline.check("profile")

        candidates, predicates = self._load_candidates(viewer_id, query, now, deadline)
        deadline.check("reads")

        self.logger.debug(
            "Candidates loaded",
            extra={
                "event": "matching.candidates.loaded",
                "candidate_count": len(candidates),
                "blocked_users": len(predicates.blocked_user_ids),
                "hidden_posts": len(predicates.hidden_post_ids),
                "reported_posts": len(predicates.reported_post_ids),
            },
        )

        outcome = self.eligibility.apply(viewer_id, query, candidates, predicates, utc_today(now))

        scored = axes.any_enabled
        matched: List[MatchedPost] = []
        for post in outcome.eligible:
            deadline.check("scoring")
            matched.append(MatchedPost(post=post, match=self.aggregator.score(viewer, post, axes)))

        if scored:
            matched = apply_threshold(matched, query.min_match_score)
        else:
            self.logger.info(
                "No matching axes enabled, returning unscored posts",
                extra={"event": "matching.scoring.skipped"},
            )

        ranked = rank(matched)
        deadline.check("ranking")
        page_items, pagination = paginate(ranked, query.page, query.limit)

        return MatchingPage(
            items=page_items,
            pagination=pagination,
            criteria=build_matching_criteria(viewer, axes),
            candidate_count=len(candidates),
            excluded_count=outcome.excluded_total,
            scored=scored,
        )

    def _load_viewer(self, viewer_id: int, query: MatchQuery, now: datetime) -> ViewerProfile:
        axes = query.axes

        if not self._read("viewer", self.profile_source.user_exists, viewer_id):
            raise NotFoundError("User not found")

        skill_ids, sub_skill_ids = set(), set()
        if axes.skills or axes.sub_skills:
            skill_ids, sub_skill_ids = self._read(
                "skills", self.profile_source.get_skill_sets, viewer_id
            )

        pincode = None
        if axes.location:
            pincode = self._read(
                "address", self.profile_source.get_active_pincode, viewer_id, now
            )

        viewer = ViewerProfile(
            user_id=viewer_id,
            skill_ids=frozenset(skill_ids),
            sub_skill_ids=frozenset(sub_skill_ids),
            active_pincode=pincode,
        )

        if axes.location and query.require_location and viewer.active_pincode is None:
            raise NotFoundError("No active temporary address found for location matching")

        missing = missing_profile_data(viewer, axes)
        if missing:
            self.logger.info(
                f"Viewer profile incomplete: {', '.join(missing)}",
                extra={"event": "matching.profile.incomplete", "missing": missing},
            )
        return viewer

    def _load_candidates(
        self, viewer_id: int, query: MatchQuery, now: datetime, deadline: _Deadline
    ) -> Tuple[List[CandidatePost], ExclusionPredicates]:
        if not self.parallel_reads:
            candidates = self._read_candidates(viewer_id, query, now)
            deadline.check("candidates")
            return candidates, self._read_exclusions(viewer_id, now)

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="matching-read")
        try:
            # Each task runs in its own copy of the logging context
            candidates_future = executor.submit(
                copy_context().run, self._read_candidates, viewer_id, query, now
            )
            exclusions_future = executor.submit(
                copy_context().run, self._read_exclusions, viewer_id, now
            )
            try:
                candidates = candidates_future.result(timeout=deadline.remaining())
                predicates = exclusions_future.result(timeout=deadline.remaining())
            except FutureTimeoutError:
                raise MatchingTimeoutError("reads")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return candidates, predicates

    def _read_candidates(
        self, viewer_id: int, query: MatchQuery, now: datetime
    ) -> List[CandidatePost]:
        return list(
            self._read(
                "candidates",
                self.post_source.fetch_candidates,
                viewer_id,
                query.status,
                query.medium,
                now,
            )
        )

    def _read_exclusions(self, viewer_id: int, now: datetime) -> ExclusionPredicates:
        source = self.exclusion_source
        return ExclusionPredicates(
            viewer_id=viewer_id,
            blocked_user_ids=frozenset(self._read("blocks", source.blocked_user_ids, viewer_id)),
            hidden_post_ids=frozenset(self._read("swipes", source.hidden_post_ids, viewer_id, now)),
            reported_post_ids=frozenset(self._read("reports", source.reported_post_ids, viewer_id)),
        )

    def _read(self, stage: str, func: Callable, *args):
        """Call a collaborator, surfacing unexpected failures as TransientStorageError."""
        try:
            return func(*args)
        except MatchingError:
            raise
        except Exception as e:
            self.logger.error(
                f"Matching read failed at stage '{stage}': {e}",
                extra={
                    "event": "matching.read.failed",
                    "stage": stage,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise TransientStorageError() from e
