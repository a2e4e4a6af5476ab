"""Standardized Error Handling Utilities

Provides the exception hierarchy used across gifweave and a couple of helpers
that keep error logging consistent between the encoder, the pipeline and the
CLI.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from enum import Enum
from typing import Any


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class GifWeaveError(Exception):
    """Base exception class for all gifweave errors."""

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class ValidationError(GifWeaveError):
    """Raised when a precondition on pixels, palettes or frames is violated."""

    pass


class EncodingError(GifWeaveError):
    """Raised when encoding a frame fails for a reason other than bad input."""

    pass


class StreamStateError(GifWeaveError):
    """Raised when a GIF stream is used in a state that does not allow it."""

    pass


class StreamCapacityError(GifWeaveError):
    """Raised when a fixed-capacity stream cannot hold another write."""

    pass


class GifFormatError(GifWeaveError):
    """Raised when GIF bytes cannot be parsed."""

    pass


class ConfigurationError(GifWeaveError):
    """Raised when configuration is invalid or missing."""

    pass


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[GifWeaveError] = EncodingError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> GifWeaveError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of GifWeaveError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        GifWeaveError: Transformed error if reraise=True
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    message = f"Failed to {operation}: {error}"

    error_context = dict(context or {})
    error_context.update(
        {
            "operation": operation,
            "original_error_type": type(error).__name__,
        }
    )

    transformed_error = error_type(message, cause=error, context=error_context)

    log_message = f"{operation.capitalize()} failed: {error}"
    context_str = ", ".join(f"{k}={v}" for k, v in error_context.items())
    if context_str:
        log_message += f" (context: {context_str})"

    log_func = getattr(logger, level.value)
    log_func(log_message)

    # Traceback only at debug level
    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


@contextmanager
def error_context(
    operation: str,
    error_type: type[GifWeaveError] = EncodingError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Any:
    """Context manager for standardized error handling.

    Usage:
        with error_context("encode frame 3", EncodingError, context={"frame": 3}):
            risky_operation()

    gifweave errors raised inside the block propagate unchanged; anything else
    is logged and re-raised as ``error_type``.
    """
    try:
        yield
    except GifWeaveError:
        raise
    except Exception as e:
        handle_error(e, operation, error_type, level, context, logger, reraise=True)


def log_warning_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log a warning with standardized context formatting.

    Args:
        message: Warning message
        context: Additional context information
        logger: Logger to use
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    warning_msg = message
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        warning_msg += f" (context: {context_str})"

    logger.warning(warning_msg)
