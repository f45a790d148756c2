"""
Correlation ID system for tracing one user action across log lines and
outbound account API requests.
"""

import uuid
import contextvars
from contextlib import contextmanager
from typing import Optional, Iterator

# Context variable to store correlation ID for the current operation
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


class CorrelationIdManager:
    """Manager for correlation ID lifecycle and context propagation"""

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def set_correlation_id(correlation_id: str) -> str:
        _correlation_id.set(correlation_id)
        return correlation_id

    @staticmethod
    def get_correlation_id() -> Optional[str]:
        return _correlation_id.get()

    @staticmethod
    def ensure_correlation_id() -> str:
        """
        Return the current correlation ID, creating one if none is set.

        Returns:
            Existing or newly generated correlation ID
        """
        correlation_id = _correlation_id.get()
        if correlation_id is None:
            correlation_id = CorrelationIdManager.generate_correlation_id()
            _correlation_id.set(correlation_id)
        return correlation_id


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block."""
    token = _correlation_id.set(correlation_id or CorrelationIdManager.generate_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)
