"""Request pipeline wiring the matching engine to configuration and storage."""

from datetime import datetime
from typing import Any, Mapping, Optional
from uuid import uuid4

from app.config.models import AppConfig
from app.domain.models import Swipe, SwipeType
from app.logging import get_logger
from app.logging.context import log_context
from app.matching.engine import PostMatchingEngine
from app.matching.exceptions import MatchingError
from app.matching.ports import ExclusionSource, PostSource, ProfileSource
from app.matching.scoring import AxisWeights
from app.matching.utils import build_score_summary, error_response, to_response
from app.persistence.database import get_session
from app.persistence.repositories import SwipeRepository
from app.persistence.sources import SqlExclusionSource, SqlPostSource, SqlProfileSource
from app.utils.timestamps import utc_now

from .models import MatchRunResult

logger = get_logger(__name__, component="pipeline")


class MatchingPipeline:
    """
    Runs matching requests end to end.

    Each run binds a request id to the logging context, calls the engine,
    and converts the outcome into a response body with a status code.
    Matching errors become error bodies; anything else propagates.
    """

    def __init__(self, app_config: AppConfig, engine: PostMatchingEngine):
        """
        Initialize the pipeline.

        Args:
            app_config: Application configuration
            engine: Configured matching engine
        """
        self.app_config = app_config
        self.engine = engine

    @classmethod
    def from_config(
        cls,
        app_config: AppConfig,
        post_source: Optional[PostSource] = None,
        profile_source: Optional[ProfileSource] = None,
        exclusion_source: Optional[ExclusionSource] = None,
    ) -> "MatchingPipeline":
        """
        Build a pipeline from configuration.

        Sources default to the SQL-backed implementations, so the database
        must be initialized before the first run.
        """
        matching = app_config.matching
        weights = AxisWeights(
            skills=matching.weights.skills,
            sub_skills=matching.weights.sub_skills,
            location=matching.weights.location,
        )
        engine = PostMatchingEngine(
            post_source=post_source or SqlPostSource(),
            profile_source=profile_source or SqlProfileSource(),
            exclusion_source=exclusion_source or SqlExclusionSource(),
            weights=weights,
            exclude_expired_posts=matching.exclude_expired_posts,
            parallel_reads=matching.parallel_reads,
            default_timeout=matching.request_timeout_seconds,
        )
        return cls(app_config, engine)

    def run(
        self,
        viewer_id: Any,
        params: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
        request_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> MatchRunResult:
        """
        Execute one matching request.

        Args:
            viewer_id: Requesting user
            params: Raw query parameters (strings accepted)
            now: Reference time (defaults to UTC now)
            request_id: Correlation id (generated when omitted)
            timeout: Request budget in seconds (defaults to matching.request_timeout)

        Returns:
            MatchRunResult with status code and response body
        """
        request_id = request_id or uuid4().hex
        run_started_at = utc_now()

        with log_context(request_id=request_id):
            try:
                page = self.engine.find_matches(viewer_id, params, now=now, timeout=timeout)
            except MatchingError as e:
                logger.warning(
                    f"Matching request failed: {e}",
                    extra={
                        "event": "pipeline.request.failed",
                        "error_type": type(e).__name__,
                        "status_code": e.status_code,
                    },
                )
                return MatchRunResult(
                    request_id=request_id,
                    viewer_id=viewer_id,
                    status_code=e.status_code,
                    body=error_response(e),
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    error_type=type(e).__name__,
                )

            summary = build_score_summary(page)
            result = MatchRunResult(
                request_id=request_id,
                viewer_id=viewer_id,
                status_code=200,
                body=to_response(page),
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                returned_count=summary["returned_count"],
                total_items=summary["total_items"],
                candidate_count=summary["candidate_count"],
                excluded_count=summary["excluded_count"],
            )

            logger.info(
                "Matching request served",
                extra={
                    "event": "pipeline.request.completed",
                    "duration_ms": int(result.duration_seconds * 1000),
                    **summary,
                },
            )
            return result

    def record_swipe(
        self,
        user_id: int,
        post_id: int,
        swipe_type: SwipeType,
        now: Optional[datetime] = None,
    ) -> Swipe:
        """Record a swipe using the configured hide duration for left swipes."""
        with get_session() as session:
            swipe = SwipeRepository(session).record_swipe(
                user_id,
                post_id,
                swipe_type,
                hide_seconds=self.app_config.matching.swipe_hide_seconds,
                now=now,
            )

        logger.info(
            f"Swipe recorded: user {user_id} swiped {swipe.swipe_type.value} on post {post_id}",
            extra={
                "event": "pipeline.swipe.recorded",
                "user_id": user_id,
                "post_id": post_id,
                "swipe_type": swipe.swipe_type.value,
            },
        )
        return swipe
