"""Threshold filtering, ordering, and pagination of scored posts."""

import math
from typing import List, Optional, Sequence, Tuple

from .models import MatchedPost, Pagination


def apply_threshold(items: Sequence[MatchedPost], min_match_score: Optional[int]) -> List[MatchedPost]:
    """Drop scored posts below the minimum percentage.

    Unscored posts (no axis enabled) pass through untouched: the threshold
    only applies when scoring happened.
    """
    if min_match_score is None:
        return list(items)
    return [
        item
        for item in items
        if item.match is None or item.match.percentage >= min_match_score
    ]


def _sort_key(item: MatchedPost) -> Tuple[int, float, int]:
    percentage = item.match.percentage if item.match is not None else 0
    # Negated so a single ascending sort gives percentage desc, newest first, id desc
    return (-percentage, -item.post.created_at.timestamp(), -item.post.id)


def rank(items: Sequence[MatchedPost]) -> List[MatchedPost]:
    """Order by percentage desc, then created_at desc, then post id desc."""
    return sorted(items, key=_sort_key)


def paginate(items: Sequence[MatchedPost], page: int, limit: int) -> Tuple[List[MatchedPost], Pagination]:
    """Slice one page out of the already filtered and ranked list.

    Totals describe the full filtered list, so a page past the end returns no
    items but still reports how many exist.
    """
    total_items = len(items)
    offset = (page - 1) * limit
    page_items = list(items[offset:offset + limit])

    pagination = Pagination(
        current_page=page,
        total_pages=math.ceil(total_items / limit) if limit else 0,
        total_items=total_items,
        items_per_page=limit,
    )
    return page_items, pagination
