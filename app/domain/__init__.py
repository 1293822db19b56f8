"""Domain models for the post matching engine."""

from .models import (
    Block,
    CandidatePost,
    PostMedium,
    PostStatus,
    Report,
    Swipe,
    SwipeType,
    TempAddress,
    ViewerProfile,
)

__all__ = [
    "CandidatePost",
    "ViewerProfile",
    "TempAddress",
    "Swipe",
    "Block",
    "Report",
    "PostStatus",
    "PostMedium",
    "SwipeType",
]
