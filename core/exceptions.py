"""
Custom exceptions for the property ETL pipeline with structured error context.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── TransportError
    │   │   └── AuthenticationError
    │   └── MalformedEnvelopeError
    ├── TransformError
    └── PersistenceError

Extraction errors never escape the extractor: they are folded into a failed
BatchResult. TransformError and PersistenceError abort the current batch
only; the runner counts them and moves on to the next offset.
"""

from typing import Optional, Dict, Any
from core.clock import utcnow


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (offset, url, key, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for listing-service extraction failures."""
    pass


class TransportError(ExtractionError):
    """
    The listing service could not be reached or answered with an error.

    Context should include:
        - api_url: The endpoint that failed
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of attempts made
    """

    @property
    def status_code(self) -> Optional[int]:
        return self.context.get("status_code")


class AuthenticationError(TransportError):
    """HTTP 401/403 from the listing service; never retried."""
    pass


class MalformedEnvelopeError(ExtractionError):
    """
    The response body is not JSON or lacks the ``value`` array.

    Context should include:
        - api_url: The endpoint that answered
        - response_body: Body excerpt (truncated)
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformError(ETLException):
    """
    A listing record cannot be mapped to the canonical shape.

    The offending upstream record is kept on ``raw_record`` so it can be
    logged or inspected.
    """

    def __init__(
        self,
        message: str,
        raw_record: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception)
        self.raw_record = raw_record or {}


# ============================================================================
# Load Errors
# ============================================================================

class PersistenceError(ETLException):
    """
    An upsert into the properties table failed.

    Context should include:
        - mls_number: Natural key of the record being upserted
        - operation: UPSERT
    """

    @property
    def mls_number(self) -> Optional[str]:
        return self.context.get("mls_number")
