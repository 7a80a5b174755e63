"""
Core utilities and configuration for the Geoanalyzer ETL core.

This package provides foundational components used throughout the ETL pipeline:

Modules:
    config: Application configuration and environment variable management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and per-job / per-request log context

Usage:
    from core.config import settings
    from core.exceptions import ConcurrencyError, NotFoundError
    from core.logging import setup_logging, log_context

Example:
    # Initialize logging
    setup_logging()

    with log_context(job_id="parcel-refresh"):
        logger.info("tagged with the job id")
"""

from core.config import settings
from core.logging import setup_logging, log_context
from core.exceptions import (
    ETLException,
    ConfigurationError,
    ETLConnectionError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ExtractionError,
    APIExtractionError,
    ResourceNotFoundError,
    LoadError,
    TransformationError,
    RowConversionError,
    NotFoundError,
    ValidationError,
    ConcurrencyError,
    JobTimeoutError,
    RetryableError,
    NonRetryableError,
)

__all__ = [
    "settings",
    "setup_logging",
    "log_context",
    # Exceptions
    "ETLException",
    "ConfigurationError",
    "ETLConnectionError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "ExtractionError",
    "APIExtractionError",
    "ResourceNotFoundError",
    "LoadError",
    "TransformationError",
    "RowConversionError",
    "NotFoundError",
    "ValidationError",
    "ConcurrencyError",
    "JobTimeoutError",
    "RetryableError",
    "NonRetryableError",
]
