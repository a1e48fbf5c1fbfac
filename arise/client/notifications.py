"""User-facing notifications from the client layer."""

from __future__ import annotations

from typing import Protocol

from arise.core.logging.logger import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes to the log; the default outside a UI."""

    def success(self, message: str) -> None:
        logger.info(message, extra={"notification": "success"})

    def error(self, message: str) -> None:
        logger.warning(message, extra={"notification": "error"})
