"""Error taxonomy for the matching engine.

Every error carries a ``status_code`` so the transport layer can map it to a
response without inspecting the type. Messages are safe to show to clients;
internal causes are chained with ``raise ... from`` and only logged.
"""

from typing import Dict, List, Optional


class MatchingError(Exception):
    """Base exception for all matching engine errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict:
        return {"success": False, "message": self.message}


class ValidationError(MatchingError):
    """Raised when request parameters are malformed.

    Holds field-level details so clients can point at the offending parameter.
    Never retried.
    """

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        self.errors = errors or []
        super().__init__(message)

    def add_error(self, field: str, message: str) -> None:
        """Add a field-level validation error."""
        self.errors.append({"field": field, "message": message})

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.errors]

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        details = "; ".join(f"{e['field']}: {e['message']}" for e in self.errors)
        return f"{self.message} ({details})"

    def to_dict(self) -> Dict:
        return {"success": False, "message": self.message, "errors": list(self.errors)}


class NotFoundError(MatchingError):
    """Raised when the viewer (or data the caller requires) cannot be resolved."""

    status_code = 404


class TransientStorageError(MatchingError):
    """Raised when a candidate or exclusion read fails.

    The engine performs no writes, so callers may retry at their discretion.
    """

    status_code = 503

    def __init__(self, message: str = "Failed to load matching data, please retry"):
        super().__init__(message)


class MatchingTimeoutError(MatchingError):
    """Raised when the request deadline passes before a full page is ranked."""

    status_code = 504

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__("Matching request timed out")
