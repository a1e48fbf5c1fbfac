"""
Infrastructure exceptions for the Arise economy engine.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
database and cache failures, configuration errors, and write conflicts on
the game-state row. Game-rule failures live in
``arise.modules.shared.exceptions``.

Design Notes
------------
- All infrastructure exceptions inherit from `AriseInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- `TransientInfrastructureError` marks failures the caller may resubmit with
  the same client transaction id; the engine never retries them itself.
- Helper functions (`is_transient_error`, `get_error_severity`, `should_alert`)
  centralize common exception handling patterns.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning
    INFO = "info"  # Normal operation (e.g., validation failures)
    WARNING = "warning"  # Concerning but handled (e.g., retryable errors)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures requiring immediate action


class AriseInfrastructureException(Exception):
    """
    Base exception for all infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise AriseInfrastructureException(
        ...     "Database connection failed",
        ...     {"host": "localhost", "port": 5432}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False
    HTTP_STATUS: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return self.HTTP_STATUS

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(AriseInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class TransientInfrastructureError(AriseInfrastructureException):
    """
    Persistence or cache temporarily unavailable.

    Surfaced to callers as a 500-equivalent. Clients resubmit with the same
    client transaction id; idempotency makes that safe.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True


class DatabaseError(TransientInfrastructureError):
    """
    Raised when database operations fail.

    Args:
        operation: Description of the database operation that failed
        original_error: The underlying database exception
    """

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {str(original_error)}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class DatabaseNotInitializedError(TransientInfrastructureError):
    """Raised when a session is requested before DatabaseService.initialize()."""

    def __init__(self) -> None:
        super().__init__(
            "DatabaseService not initialized. Call DatabaseService.initialize() first.",
            error_code="DATABASE_NOT_INITIALIZED",
            is_retryable=False,
        )


class CacheError(TransientInfrastructureError):
    """
    Raised when cache operations fail.

    Args:
        operation: Description of the cache operation that failed
        cache_key: The cache key involved in the failure
        original_error: The underlying exception (if any)
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(
        self,
        operation: str,
        cache_key: str,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        self.cache_key = cache_key
        self.original_error = original_error
        error_msg = str(original_error) if original_error else "Cache operation failed"
        super().__init__(
            f"Cache error during {operation} for key '{cache_key}': {error_msg}",
            details={
                "operation": operation,
                "cache_key": cache_key,
                "error": error_msg,
                "error_type": type(original_error).__name__ if original_error else None,
            },
            error_code="CACHE_ERROR",
        )


class ConcurrentModificationError(AriseInfrastructureException):
    """
    The game-state row changed between read and write.

    Raised by repositories when the stored version no longer matches the
    version the caller loaded. The reconciliation envelope catches it and
    replays the whole transaction against the fresh row.

    Args:
        user_id: Owner of the contested row
        expected_version: Version the writer loaded
        actual_version: Version found at write time (None if unknown)
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True
    HTTP_STATUS = 409

    def __init__(
        self,
        user_id: str,
        expected_version: int,
        actual_version: Optional[int] = None,
    ) -> None:
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Game state for {user_id} was modified concurrently",
            details={
                "user_id": user_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
            error_code="CONCURRENT_MODIFICATION",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """Check if an exception represents a transient error that can be retried."""
    if isinstance(exc, AriseInfrastructureException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, AriseInfrastructureException):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
