"""Data models for matching request execution tracking and reporting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class MatchRunResult:
    """
    Outcome of one matching request run through the pipeline.

    Attributes:
        request_id: Correlation id bound to every log record of the run
        viewer_id: Requesting user
        status_code: HTTP-style status (200 on success, error's status otherwise)
        body: Response payload (success or error shape)
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        duration_seconds: Wall time of the run
        returned_count: Posts on the returned page
        total_items: Posts that passed eligibility and threshold
        candidate_count: Posts read from storage before filtering
        excluded_count: Candidates dropped by eligibility
        error_type: Exception class name when the run failed
    """

    request_id: str
    viewer_id: Any
    status_code: int
    body: Dict[str, Any]
    run_started_at: datetime
    run_finished_at: datetime
    duration_seconds: float = 0.0
    returned_count: int = 0
    total_items: int = 0
    candidate_count: int = 0
    excluded_count: int = 0
    error_type: Optional[str] = None

    def __post_init__(self):
        """Compute duration if not set."""
        if self.duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.duration_seconds = delta.total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.status_code == 200
