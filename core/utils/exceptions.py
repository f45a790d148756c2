# Structured exception hierarchy for the position viewer engine

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class ViewerException(Exception):
    """Base exception for all position viewer specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 correlation_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.correlation_id = correlation_id
        self.timestamp = datetime.now(timezone.utc)


class TransientError(ViewerException):
    """Errors that may go away on a later attempt (network, upstream outage)"""
    pass


class PermanentError(ViewerException):
    """Errors that will not go away by retrying the same input"""
    pass


# Inbound feed / snapshot errors
class MalformedPayloadError(PermanentError):
    """Inbound payload cannot be interpreted - dropped, prior state retained"""

    def __init__(self, message: str, event: Optional[str] = None, payload: Any = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.event = event
        self.payload = payload


# Validation Errors
class ValidationError(PermanentError):
    """User input rejected locally before any network call"""

    def __init__(self, message: str, field: str, value: Any,
                 expected_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected_type = expected_type


# Outbound request errors
class RequestError(TransientError):
    """Account API request failed (network error or non-success response)"""

    def __init__(self, message: str, operation: str, status_code: Optional[int] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.status_code = status_code


class AuthenticationError(RequestError):
    """Account API rejected the configured credentials"""
    pass


# Live feed errors
class FeedError(TransientError):
    """Live subscription failures (connect, receive)"""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


def create_error_context(error: Exception, operation: str,
                         additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if isinstance(error, ViewerException):
        context.update({
            "error_details": error.details,
            "correlation_id": error.correlation_id,
        })
    if isinstance(error, RequestError):
        context["status_code"] = error.status_code

    if additional_context:
        context.update(additional_context)

    return context
