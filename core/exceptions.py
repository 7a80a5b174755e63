"""
Custom exceptions for the ETL orchestration core with structured error context.

This module provides the exception hierarchy used throughout the connector,
transformation engine, scheduler and pipeline manager. Each exception
includes context information for debugging and monitoring.

Exception Hierarchy:
    ETLException (base)
    ├── ConfigurationError
    ├── ETLConnectionError
    │   ├── NetworkError
    │   ├── RateLimitError
    │   └── AuthenticationError
    ├── ExtractionError
    │   ├── APIExtractionError
    │   └── ResourceNotFoundError
    ├── TransformationError
    │   └── RowConversionError
    ├── LoadError
    ├── ConcurrencyError
    ├── NotFoundError
    ├── ValidationError
    ├── JobTimeoutError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (job_id, source_id, etc.)
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
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
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
# Configuration Errors
# ============================================================================

class ConfigurationError(ETLException):
    """
    Raised when a data source or transformation rule configuration is malformed.

    Fatal to the operation that hit it, never to the process.

    Context should include:
        - source_id / rule_id: The entity carrying the bad configuration
        - field_errors: Validation errors reported for the configuration
    """
    pass


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 503)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    """
    pass


# ============================================================================
# Connection Errors
# ============================================================================

class ETLConnectionError(ETLException):
    """
    Raised when a source or destination endpoint cannot be reached.

    Retryable at the job level by re-invoking the execution.

    Context should include:
        - source_id: Data source that failed
        - source_type: database, api, file, in-memory, custom
    """
    pass


class NetworkError(RetryableError, ETLConnectionError):
    """Network-related errors that should be retried."""
    pass


class RateLimitError(RetryableError, ETLConnectionError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds to wait before retry
        if retry_after is not None:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, ETLConnectionError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    pass


# ============================================================================
# Extraction / Load Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when API data extraction fails.

    Context should include:
        - api_url: The API endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated if large)
        - retry_count: Number of retries attempted
    """
    pass


class ResourceNotFoundError(NonRetryableError, ExtractionError):
    """Resource not found errors (HTTP 404, missing file) that should not be retried."""
    pass


class LoadError(ETLException):
    """
    Base exception for data loading failures.

    Context should include:
        - source_id: Destination data source
        - records_to_load: Size of the batch being written
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class RowConversionError(TransformationError):
    """
    Raised when a single record's field cannot be converted.

    Never fatal: the engine catches it, nulls the field and records a row error.

    Context should include:
        - field: Field being converted
        - value: Offending value
        - target_type: Requested type
    """
    pass


# ============================================================================
# Orchestration Errors
# ============================================================================

class NotFoundError(ETLException):
    """Raised when an unknown job, data source, rule or alert id is referenced."""
    pass


class ValidationError(ETLException):
    """
    Raised when a catalog entity fails validation.

    Context should include:
        - entity: job, data_source, transformation_rule
        - reason: What failed (unresolved reference, still referenced, ...)
    """
    pass


class ConcurrencyError(ETLException):
    """Raised when a job is already running; the request is rejected, not queued."""
    pass


class JobTimeoutError(ETLException):
    """Raised when a job execution exceeds the configured execution timeout."""
    pass
