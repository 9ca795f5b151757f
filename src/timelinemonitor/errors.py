"""Contract violation types and the strict/lenient reporting switch."""

from __future__ import annotations

import logging

from .config import settings


class TimelineContractError(RuntimeError):
    """Raised when a caller breaks the begin/end pairing contract."""


class SpanClosedError(TimelineContractError):
    """Raised when a span monitor is closed or exported more than once."""


def contract_violation(error: TimelineContractError, logger: logging.Logger) -> None:
    """Raise ``error`` in strict mode, otherwise log it and carry on."""
    if settings.strict:
        raise error
    logger.warning("ignoring timeline contract violation: %s", error)
