"""
Base helpers for Arise domain models.

Purpose
-------
Shared validation primitives for the immutable value objects that make up a
game state (resource vectors, buildings, research, hunter). Domain models are
plain frozen dataclasses: every transition returns a new instance, and the
engine functions that produce them stay free of I/O.

Non-Responsibilities
--------------------
- Persistence (handled by repositories)
- Database schema (handled by SQLAlchemy models)
"""

from __future__ import annotations

import math
from typing import Optional


class DomainValidationError(Exception):
    """
    Exception raised when domain model validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message
    field : Optional[str]
        Field name that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def validate_positive(value: float, field_name: str) -> None:
    if value <= 0:
        raise DomainValidationError(
            f"{field_name} must be positive, got {value}",
            field=field_name,
        )


def validate_non_negative(value: float, field_name: str) -> None:
    """
    Validate that a value is a finite, non-negative number.

    Raises
    ------
    DomainValidationError
        If value is negative or NaN
    """
    if math.isnan(value) or value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}",
            field=field_name,
        )
