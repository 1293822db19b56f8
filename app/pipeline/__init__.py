"""Request pipeline for serving matching requests."""

from .models import MatchRunResult
from .runner import MatchingPipeline

__all__ = [
    "MatchingPipeline",
    "MatchRunResult",
]
