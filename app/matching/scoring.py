"""Axis scorers and score aggregation.

Each axis answers one yes/no question about a (viewer, post) pair. The
aggregator adds the weight of every enabled axis that matched and divides by
the total weight of enabled axes. An enabled axis always counts toward the
ceiling, whether or not the post declares that requirement and whether or
not the viewer has data for it.
"""

import math
from dataclasses import dataclass
from typing import Optional

from app.domain.models import CandidatePost, ViewerProfile

from .models import AxisToggles, MatchReasons, MatchResult


def skill_matches(viewer: ViewerProfile, post: CandidatePost) -> bool:
    """Post requires a skill and the viewer holds it."""
    return post.required_skill_id is not None and post.required_skill_id in viewer.skill_ids


def sub_skill_matches(viewer: ViewerProfile, post: CandidatePost) -> bool:
    """Post requires a sub-skill and the viewer holds it."""
    return (
        post.required_sub_skill_id is not None
        and post.required_sub_skill_id in viewer.sub_skill_ids
    )


def location_matches(viewer: ViewerProfile, post: CandidatePost) -> bool:
    """Both sides have an active pincode and they are identical."""
    return (
        viewer.active_pincode is not None
        and post.owner_active_pincode is not None
        and viewer.active_pincode == post.owner_active_pincode
    )


@dataclass(frozen=True)
class AxisWeights:
    """Points awarded per matching axis."""

    skills: int = 3
    sub_skills: int = 2
    location: int = 1

    def max_score(self, axes: AxisToggles) -> int:
        total = 0
        if axes.skills:
            total += self.skills
        if axes.sub_skills:
            total += self.sub_skills
        if axes.location:
            total += self.location
        return total


def compute_percentage(score: int, max_score: int) -> int:
    """Round score/max_score to a whole percentage (halves round up), clamped to [0, 100].

    A zero ceiling yields 0; callers skip scoring entirely in that case.
    """
    if max_score <= 0:
        return 0
    percentage = math.floor(score * 100 / max_score + 0.5)
    return max(0, min(100, percentage))


class ScoreAggregator:
    """Combines enabled axis results into a MatchResult."""

    def __init__(self, weights: Optional[AxisWeights] = None):
        self.weights = weights or AxisWeights()

    def score(
        self, viewer: ViewerProfile, post: CandidatePost, axes: AxisToggles
    ) -> Optional[MatchResult]:
        """Score one post.

        Returns:
            MatchResult, or None when no axis is enabled (scoring skipped)
        """
        max_score = self.weights.max_score(axes)
        if max_score == 0:
            return None

        score = 0
        skill = sub_skill = location = None

        if axes.skills:
            skill = skill_matches(viewer, post)
            if skill:
                score += self.weights.skills
        if axes.sub_skills:
            sub_skill = sub_skill_matches(viewer, post)
            if sub_skill:
                score += self.weights.sub_skills
        if axes.location:
            location = location_matches(viewer, post)
            if location:
                score += self.weights.location

        return MatchResult(
            post_id=post.id,
            score=score,
            max_score=max_score,
            percentage=compute_percentage(score, max_score),
            reasons=MatchReasons(
                skill_match=skill,
                sub_skill_match=sub_skill,
                location_match=location,
            ),
        )
