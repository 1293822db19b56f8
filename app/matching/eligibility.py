"""Eligibility filtering for candidate posts.

Decides which posts a viewer may be shown before any scoring happens. The
post source is expected to pre-filter by status, medium and owner, but every
rule is re-applied here so the candidate set is correct no matter which
source produced it.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional

from app.domain.models import CandidatePost

from .models import MatchQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusionPredicates:
    """Boolean exclusion checks for one viewer, backed by pre-loaded id sets."""

    viewer_id: int
    blocked_user_ids: FrozenSet[int] = frozenset()
    hidden_post_ids: FrozenSet[int] = frozenset()
    reported_post_ids: FrozenSet[int] = frozenset()

    def is_blocked(self, viewer_id: int, owner_id: int) -> bool:
        """True when either party has blocked the other."""
        return viewer_id == self.viewer_id and owner_id in self.blocked_user_ids

    def is_swiped(self, viewer_id: int, post_id: int) -> bool:
        """True when an active swipe hides the post from the viewer."""
        return viewer_id == self.viewer_id and post_id in self.hidden_post_ids

    def is_reported(self, viewer_id: int, post_id: int) -> bool:
        return viewer_id == self.viewer_id and post_id in self.reported_post_ids


@dataclass
class EligibilityOutcome:
    """Posts that survived filtering plus per-rule exclusion counts."""

    eligible: List[CandidatePost] = field(default_factory=list)
    excluded: Dict[str, int] = field(default_factory=dict)

    @property
    def excluded_total(self) -> int:
        return sum(self.excluded.values())


class EligibilityFilter:
    """Applies visibility rules for a viewer to a candidate post set.

    Rules, checked in order (the first failing rule is recorded):
    - own posts are never shown
    - soft-deleted posts are never shown
    - status must equal the requested status
    - medium must equal the requested medium, when one is given
    - posts by suspended owners are hidden
    - posts whose owner and viewer have blocked each other are hidden
    - posts hidden by an active swipe are hidden
    - posts the viewer reported are hidden
    - posts past their deadline are hidden (when expiry checks are on)
    """

    def __init__(self, exclude_expired_posts: bool = True, logger_instance: logging.Logger = None):
        self.exclude_expired_posts = exclude_expired_posts
        self.logger = logger_instance or logger

    def apply(
        self,
        viewer_id: int,
        query: MatchQuery,
        candidates: Iterable[CandidatePost],
        predicates: ExclusionPredicates,
        today: date,
    ) -> EligibilityOutcome:
        """Filter candidates for the viewer.

        Args:
            viewer_id: Requesting user
            query: Validated query (status and medium filters)
            candidates: Posts read from the post source
            predicates: Exclusion checks for this viewer
            today: Current UTC date for expiry checks

        Returns:
            EligibilityOutcome with eligible posts in input order
        """
        outcome = EligibilityOutcome()
        excluded: Counter = Counter()

        for post in candidates:
            reason = self._exclusion_reason(viewer_id, query, post, predicates, today)
            if reason is None:
                outcome.eligible.append(post)
            else:
                excluded[reason] += 1

        outcome.excluded = dict(excluded)

        self.logger.debug(
            "Eligibility filter applied",
            extra={
                "event": "matching.eligibility.applied",
                "viewer_id": viewer_id,
                "eligible_count": len(outcome.eligible),
                "excluded_count": outcome.excluded_total,
            },
        )
        return outcome

    def _exclusion_reason(
        self,
        viewer_id: int,
        query: MatchQuery,
        post: CandidatePost,
        predicates: ExclusionPredicates,
        today: date,
    ) -> Optional[str]:
        if post.owner_id == viewer_id:
            return "own_post"
        if post.is_deleted:
            return "deleted"
        if post.status != query.status:
            return "status"
        if query.medium is not None and post.medium != query.medium:
            return "medium"
        if post.owner_suspended:
            return "owner_suspended"
        if predicates.is_blocked(viewer_id, post.owner_id):
            return "blocked"
        if predicates.is_swiped(viewer_id, post.id):
            return "swiped"
        if predicates.is_reported(viewer_id, post.id):
            return "reported"
        if self.exclude_expired_posts and post.is_expired(today):
            return "expired"
        return None
