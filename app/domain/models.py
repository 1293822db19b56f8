"""Core domain models for viewers, posts, and moderation state.

This module defines the data structures used throughout the application:
- ViewerProfile: the requesting user's skills and active pincode
- CandidatePost: a post as seen by the matching engine
- Swipe, Block, Report: moderation records consumed as exclusion predicates
- TempAddress: a user's temporary address (source of the active pincode)
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, FrozenSet, Optional

from pydantic import BaseModel, Field, field_validator

from app.utils.timestamps import ensure_utc


class PostStatus(str, Enum):
    """Lifecycle states of a post."""

    ACTIVE = "active"
    HOLD = "hold"
    DISCUSSED = "discussed"
    COMPLETED = "completed"
    DELETED = "deleted"


class PostMedium(str, Enum):
    """How the work described by a post is delivered."""

    ONLINE = "online"
    OFFLINE = "offline"


class SwipeType(str, Enum):
    """Swipe direction. Left hides temporarily, right hides permanently."""

    LEFT = "left"
    RIGHT = "right"


def _normalize_pincode(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    stripped = v.strip()
    return stripped if stripped else None


class ViewerProfile(BaseModel):
    """Matching-relevant view of the requesting user.

    Derived at request time from the viewer's work-profile skills and their
    currently active temporary address. Never persisted by the engine.
    """

    user_id: int = Field(..., ge=1, description="Viewer user id")
    skill_ids: FrozenSet[int] = Field(default_factory=frozenset, description="Declared skills")
    sub_skill_ids: FrozenSet[int] = Field(
        default_factory=frozenset, description="Declared sub-skills"
    )
    active_pincode: Optional[str] = Field(
        None, description="Pincode of the currently active temporary address"
    )

    @field_validator("active_pincode")
    @classmethod
    def strip_pincode(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace; blank pincodes count as missing."""
        return _normalize_pincode(v)

    model_config = {"frozen": True}


class CandidatePost(BaseModel):
    """A post considered for matching, with its owner's active pincode resolved."""

    id: int = Field(..., description="Post id")
    owner_id: int = Field(..., description="User id of the post author")
    status: PostStatus = Field(PostStatus.ACTIVE, description="Post lifecycle state")
    medium: PostMedium = Field(PostMedium.ONLINE, description="Delivery medium")
    required_skill_id: Optional[int] = Field(None, description="Skill the post asks for")
    required_sub_skill_id: Optional[int] = Field(None, description="Sub-skill the post asks for")
    owner_active_pincode: Optional[str] = Field(
        None, description="Pincode of the owner's currently active temporary address"
    )
    owner_suspended: bool = Field(False, description="Owner account blocked by moderation")
    owner_name: Optional[str] = Field(None, description="Display name of the post author")
    title: Optional[str] = Field(None, description="Post title")
    description: Optional[str] = Field(None, description="Post body")
    deadline: Optional[date] = Field(None, description="Last day the post is relevant")
    created_at: datetime = Field(..., description="Creation time (UTC)")

    @field_validator("owner_active_pincode")
    @classmethod
    def strip_pincode(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace; blank pincodes count as missing."""
        return _normalize_pincode(v)

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @property
    def is_deleted(self) -> bool:
        return self.status == PostStatus.DELETED

    def is_expired(self, today: date) -> bool:
        """A post is expired once its deadline day has passed."""
        return self.deadline is not None and self.deadline < today

    model_config = {"frozen": True, "json_schema_extra": {"example": {
        "id": 42,
        "owner_id": 7,
        "status": "active",
        "medium": "offline",
        "required_skill_id": 1,
        "required_sub_skill_id": 2,
        "owner_active_pincode": "361004",
        "owner_name": "Ravi",
        "title": "Need a plumber",
        "created_at": "2025-10-10T12:00:00Z",
    }}}


class TempAddress(BaseModel):
    """A user's temporary address as written to storage.

    Only active, unexpired addresses supply the pincode used for location
    matching; that rule is applied by the address query.
    """

    user_id: int
    pincode: str = Field(..., min_length=1, max_length=6)
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("pincode", mode="before")
    @classmethod
    def strip_pincode(cls, v: Any) -> Any:
        """Strip whitespace before the length check so blank pincodes are rejected."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("expires_at", "created_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)


class Swipe(BaseModel):
    """A viewer's swipe on a post.

    A right swipe hides the post permanently (expires_at is None). A left swipe
    hides it until expires_at.
    """

    user_id: int
    post_id: int
    swipe_type: SwipeType
    created_at: datetime
    expires_at: Optional[datetime] = None

    @field_validator("created_at", "expires_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)


class Block(BaseModel):
    """One user blocking another. Matching treats the pair symmetrically."""

    blocker_id: int
    blocked_id: int
    reason: Optional[str] = None


class Report(BaseModel):
    """A user's report against a post."""

    post_id: int
    reported_by: int
    reason: Optional[str] = None
