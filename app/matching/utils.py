"""Helpers for turning engine results into response payloads.

The response shape mirrors the public posts API: post fields in snake_case,
with the match block and pagination/criteria metadata in camelCase.
"""

from typing import Any, Dict, List

from app.utils.timestamps import isoformat_or_none

from .exceptions import MatchingError
from .models import MatchedPost, MatchingPage


def serialize_post(item: MatchedPost) -> Dict[str, Any]:
    """Serialize one ranked post, attaching ``matchScore`` only when scored."""
    post = item.post
    payload: Dict[str, Any] = {
        "id": post.id,
        "user_id": post.owner_id,
        "user": {"id": post.owner_id, "name": post.owner_name},
        "title": post.title,
        "description": post.description,
        "required_skill_id": post.required_skill_id,
        "required_sub_skill_id": post.required_sub_skill_id,
        "medium": post.medium.value,
        "status": post.status.value,
        "deadline": isoformat_or_none(post.deadline),
        "created_at": isoformat_or_none(post.created_at),
    }
    if item.match is not None:
        payload["matchScore"] = item.match.to_dict()
    return payload


def to_response(page: MatchingPage) -> Dict[str, Any]:
    """Build the success payload for a matching request.

    Args:
        page: MatchingPage returned by the engine

    Returns:
        Dict with keys:
        - success: Always True
        - message: Human-readable summary
        - data: Ranked posts for the requested page
        - pagination: currentPage, totalPages, totalItems, itemsPerPage
        - matchingCriteria: enabled axes and viewer data counts
    """
    if page.pagination.total_items == 0:
        message = "No matching posts found"
    else:
        message = "Matching posts retrieved successfully"

    return {
        "success": True,
        "message": message,
        "data": [serialize_post(item) for item in page.items],
        "pagination": page.pagination.to_dict(),
        "matchingCriteria": page.criteria.to_dict(),
    }


def error_response(error: MatchingError) -> Dict[str, Any]:
    """Build the failure payload for a matching error (no internal detail)."""
    return error.to_dict()


def build_score_summary(page: MatchingPage) -> Dict[str, Any]:
    """Build a lightweight summary of a page for logs and diagnostics."""
    percentages: List[int] = [item.match.percentage for item in page.items if item.match]
    return {
        "returned_count": len(page.items),
        "total_items": page.pagination.total_items,
        "candidate_count": page.candidate_count,
        "excluded_count": page.excluded_count,
        "scored": page.scored,
        "top_percentage": max(percentages) if percentages else None,
        "bottom_percentage": min(percentages) if percentages else None,
        "full_matches": sum(1 for p in percentages if p == 100),
    }
