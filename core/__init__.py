"""
Core utilities and configuration for the property ETL service.

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory
    exceptions: Exception hierarchy for extract, transform and load failures
    logging: Logging configuration
    clock: Injectable UTC clock and timestamp helpers

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import TransformError, PersistenceError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    "utcnow",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "TransportError",
    "AuthenticationError",
    "MalformedEnvelopeError",
    "TransformError",
    "PersistenceError",
]
