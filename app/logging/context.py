"""Request-scoped logging context.

Fields bound here (request id, viewer id, ...) are copied onto every log
record emitted in the same context by ContextualFilter. Storage is a
ContextVar, so concurrent requests on different threads never see each
other's fields.
"""

import uuid
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields bound in the current context."""
    return dict(_log_context.get())


def bind_log_context(**fields: Any) -> Token:
    """Bind fields on top of the current context and return a reset token."""
    return _log_context.set({**_log_context.get(), **fields})


def reset_log_context(token: Token) -> None:
    """Restore the context captured by ``bind_log_context``."""
    _log_context.reset(token)


def clear_log_context() -> None:
    """Drop all bound fields. Mostly useful in tests."""
    _log_context.set({})


def new_request_id() -> str:
    return uuid.uuid4().hex


class log_context:
    """Context manager binding fields for the duration of a block.

    Example:
        >>> with log_context(request_id="abc123", viewer_id=7):
        ...     logger.info("Matching")  # carries request_id and viewer_id
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token: Optional[Token] = None

    def __enter__(self):
        self._token = bind_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            reset_log_context(self._token)
            self._token = None
        return False
