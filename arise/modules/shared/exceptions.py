"""
Domain exceptions for the Arise economy.

Purpose
-------
Define the structured exception hierarchy for game-rule failures. Services
raise these for invalid requests, unaffordable purchases and unmet
preconditions; the reconciliation envelope turns them into a rejected
``TransactionResult`` that still carries the full state snapshot.

Design Notes
------------
- All domain exceptions inherit from `AriseDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
  - `http_status`: status code for a thin route layer
- `ValidationError` is raised before state is touched (no passive income).
  `InsufficientResourcesError` and `PreconditionError` are raised after
  passive income has been applied to the loaded state.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from arise.core.exceptions import ErrorSeverity
from arise.engine.resources import format_missing_message


class AriseDomainException(Exception):
    """
    Base exception for all Arise domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise AriseDomainException(
        ...     "Purchase failed",
        ...     {"building_id": "crystalMine"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False
    HTTP_STATUS: int = 400

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


class ValidationError(AriseDomainException):
    """
    Raised when a request is malformed.

    Unknown stat or resource names, quantities out of range and empty ids.
    Rejected before the stored state is loaded or advanced.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InsufficientResourcesError(AriseDomainException):
    """
    Raised when the caught-up resources do not cover a cost.

    The message is the human-readable deficit summary, e.g.
    ``"Need 5 essence and 3 gold more"``.

    Args:
        missing: Per-channel deficits (channels with no deficit omitted)
        message: Overrides the generated summary
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, missing: Mapping[str, float], message: Optional[str] = None) -> None:
        self.missing: Dict[str, float] = dict(missing)
        super().__init__(
            message or format_missing_message(self.missing),
            details={"missing": self.missing},
            error_code="INSUFFICIENT_RESOURCES",
        )


class PreconditionError(AriseDomainException):
    """
    Raised when game rules forbid an otherwise well-formed action.

    Already researched, prerequisites unmet, building locked or unknown,
    no stat points left.

    Args:
        action: The attempted action (e.g., "purchase_research")
        reason: Why it is not allowed right now
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            reason,
            details={"action": action, "reason": reason},
            error_code="PRECONDITION_FAILED",
        )


class NotFoundError(AriseDomainException):
    """
    Raised when a requested entity does not exist.

    Args:
        resource_type: Type of entity (e.g., "GameState")
        identifier: Optional identifier for the missing entity
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    HTTP_STATUS = 404

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )
