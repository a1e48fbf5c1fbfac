"""
Base Service Foundation

Purpose
-------
Provides the foundational class for the game services. Services implement
game rules on top of the pure engine, enforce request validation, and log
operations with structured context.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Validation error wrapping

What this class does NOT do:
- Manage database transactions (that's the repository's job)
- Hold game state between calls

Usage
-----
    class GameStateService(BaseService):
        def __init__(self, repository, cache):
            super().__init__(logger=get_logger(__name__))
            self.repository = repository
"""

from __future__ import annotations

from logging import Logger
from typing import Any, Optional, Type

from arise.core.config.config import Config
from arise.core.exceptions import ConfigurationError
from arise.modules.shared.exceptions import ValidationError


class BaseService:
    """
    Base class for all game services.

    Args:
        logger: Structured logger instance
        config: Configuration class (``Config`` unless a test injects one)
    """

    def __init__(self, logger: Logger, config: Type[Config] = Config) -> None:
        self._config = config
        self.log = logger

    def get_config(self, key: str, default: Optional[Any] = None, required: bool = False) -> Any:
        """
        Safely retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = getattr(self._config, key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def validate_identifier(self, value: Any, name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} must be a non-empty string")
        return value
