"""Data models for the matching engine.

This module defines the request model (MatchQuery), the per-request axis
configuration, and the result structures returned by the engine: per-post
MatchResult, MatchedPost, Pagination, MatchingCriteria and MatchingPage.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.domain.models import CandidatePost, PostMedium, PostStatus

from .exceptions import ValidationError

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class AxisToggles:
    """Which scoring axes are enabled for a request. Passed by value, never global."""

    skills: bool = True
    sub_skills: bool = True
    location: bool = True

    @property
    def enabled_count(self) -> int:
        return sum((self.skills, self.sub_skills, self.location))

    @property
    def any_enabled(self) -> bool:
        return self.enabled_count > 0


class MatchQuery(BaseModel):
    """Validated query parameters for a matching request.

    Values arriving from a transport layer as strings ("2", "true") are
    coerced; empty strings for optional parameters count as absent.
    """

    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(
        DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"
    )
    status: PostStatus = Field(PostStatus.ACTIVE, description="Post status filter")
    medium: Optional[PostMedium] = Field(None, description="Optional medium filter")
    min_match_score: Optional[int] = Field(
        None, ge=0, le=100, description="Minimum match percentage"
    )
    match_skills: bool = Field(True, description="Score the skill axis")
    match_sub_skills: bool = Field(True, description="Score the sub-skill axis")
    match_location: bool = Field(True, description="Score the location axis")
    require_location: bool = Field(
        False, description="Fail with NotFoundError when the viewer has no active address"
    )

    @field_validator("status", "medium", "min_match_score", mode="before")
    @classmethod
    def blank_as_missing(cls, v: Any, info) -> Any:
        """Treat empty query-string values as absent."""
        if isinstance(v, str) and not v.strip():
            return PostStatus.ACTIVE if info.field_name == "status" else None
        if isinstance(v, str) and info.field_name in ("status", "medium"):
            return v.strip().lower()
        return v

    @property
    def axes(self) -> AxisToggles:
        return AxisToggles(
            skills=self.match_skills,
            sub_skills=self.match_sub_skills,
            location=self.match_location,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    model_config = {"frozen": True}


def parse_match_query(params: Optional[Mapping[str, Any]] = None, **overrides: Any) -> MatchQuery:
    """Build a MatchQuery from raw request parameters.

    Args:
        params: Mapping of query parameter names to raw values
        **overrides: Additional parameters (take precedence over params)

    Returns:
        Validated MatchQuery

    Raises:
        ValidationError: With one field-level entry per invalid parameter
    """
    raw = {**(params or {}), **overrides}
    raw = {key: value for key, value in raw.items() if value is not None}

    try:
        return MatchQuery.model_validate(raw)
    except PydanticValidationError as e:
        error = ValidationError("Invalid matching query parameters")
        for detail in e.errors():
            field_path = ".".join(str(loc) for loc in detail["loc"]) or "query"
            error.add_error(field_path, detail["msg"])
        raise error from e


@dataclass(frozen=True)
class MatchReasons:
    """Per-axis match flags. None means the axis was disabled for the request."""

    skill_match: Optional[bool] = None
    sub_skill_match: Optional[bool] = None
    location_match: Optional[bool] = None

    def to_dict(self) -> Dict[str, bool]:
        reasons = {
            "skillMatch": self.skill_match,
            "subSkillMatch": self.sub_skill_match,
            "locationMatch": self.location_match,
        }
        return {key: value for key, value in reasons.items() if value is not None}


@dataclass(frozen=True)
class MatchResult:
    """Score of one candidate post against the viewer.

    Attributes:
        post_id: Scored post
        score: Sum of weights of matching enabled axes
        max_score: Sum of weights of all enabled axes
        percentage: round(score / max_score * 100), clamped to [0, 100]
        reasons: Which enabled axes matched
    """

    post_id: int
    score: int
    max_score: int
    percentage: int
    reasons: MatchReasons = field(default_factory=MatchReasons)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "postId": self.post_id,
            "score": self.score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "reasons": self.reasons.to_dict(),
        }


@dataclass(frozen=True)
class MatchedPost:
    """A ranked post with its optional score (absent when no axis is enabled)."""

    post: CandidatePost
    match: Optional[MatchResult] = None

    @property
    def percentage(self) -> Optional[int]:
        return self.match.percentage if self.match else None


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata computed over the threshold-filtered set."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
        }


@dataclass(frozen=True)
class MatchingCriteria:
    """Transparency metadata: enabled axes and how much data the viewer had."""

    enabled: AxisToggles
    skills_count: Optional[int] = None
    sub_skills_count: Optional[int] = None
    locations_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": {
                "skills": self.enabled.skills,
                "subSkills": self.enabled.sub_skills,
                "location": self.enabled.location,
            },
            "userDataCounts": {
                "skills": self.skills_count,
                "subSkills": self.sub_skills_count,
                "locations": self.locations_count,
            },
        }


@dataclass
class MatchingPage:
    """Engine output for one request."""

    items: List[MatchedPost]
    pagination: Pagination
    criteria: MatchingCriteria
    candidate_count: int = 0
    excluded_count: int = 0
    scored: bool = True

    @property
    def post_ids(self) -> List[int]:
        return [item.post.id for item in self.items]
