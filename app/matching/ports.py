"""Collaborator interfaces consumed by the matching engine.

The engine never talks to a database directly. It reads through these
protocols, so the scoring core can be exercised with in-memory fakes and the
persistence layer supplies SQL-backed implementations.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Set, Tuple

from app.domain.models import CandidatePost, PostMedium, PostStatus


class PostSource(Protocol):
    """Reads candidate posts."""

    def fetch_candidates(
        self,
        viewer_id: int,
        status: PostStatus,
        medium: Optional[PostMedium],
        now: datetime,
    ) -> List[CandidatePost]:
        """Return posts with the given status (and medium, if set) not owned by the viewer,
        with ``owner_active_pincode`` resolved as of ``now``."""
        ...


class ProfileSource(Protocol):
    """Reads the viewer's matching-relevant profile data."""

    def user_exists(self, user_id: int) -> bool:
        ...

    def get_skill_sets(self, user_id: int) -> Tuple[Set[int], Set[int]]:
        """Return (skill_ids, sub_skill_ids) across all of the user's work profiles."""
        ...

    def get_active_pincode(self, user_id: int, now: datetime) -> Optional[str]:
        """Return the pincode of the user's single currently active temporary address."""
        ...


class ExclusionSource(Protocol):
    """Reads moderation state that hides posts or owners from a viewer."""

    def blocked_user_ids(self, viewer_id: int) -> Set[int]:
        """Users the viewer blocked plus users who blocked the viewer."""
        ...

    def hidden_post_ids(self, viewer_id: int, now: datetime) -> Set[int]:
        """Posts hidden by an active swipe (right, or left not yet expired)."""
        ...

    def reported_post_ids(self, viewer_id: int) -> Set[int]:
        """Posts the viewer has reported."""
        ...
