"""Skill and location based post matching engine.

This module provides:
- PostMatchingEngine: ranks eligible posts for a viewer
- EligibilityFilter / ExclusionPredicates: visibility rules
- ScoreAggregator / AxisWeights: weighted axis scoring
- MatchQuery / parse_match_query: validated request parameters
- Result models and response helpers
- The matching error taxonomy
"""

from .criteria import build_matching_criteria
from .eligibility import EligibilityFilter, ExclusionPredicates
from .engine import PostMatchingEngine
from .exceptions import (
    MatchingError,
    MatchingTimeoutError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)
from .models import (
    AxisToggles,
    MatchedPost,
    MatchingCriteria,
    MatchingPage,
    MatchQuery,
    MatchReasons,
    MatchResult,
    Pagination,
    parse_match_query,
)
from .scoring import AxisWeights, ScoreAggregator, compute_percentage
from .utils import build_score_summary, error_response, to_response

__all__ = [
    "PostMatchingEngine",
    "EligibilityFilter",
    "ExclusionPredicates",
    "ScoreAggregator",
    "AxisWeights",
    "compute_percentage",
    "build_matching_criteria",
    "MatchQuery",
    "parse_match_query",
    "AxisToggles",
    "MatchReasons",
    "MatchResult",
    "MatchedPost",
    "Pagination",
    "MatchingCriteria",
    "MatchingPage",
    "to_response",
    "error_response",
    "build_score_summary",
    "MatchingError",
    "ValidationError",
    "NotFoundError",
    "TransientStorageError",
    "MatchingTimeoutError",
]
