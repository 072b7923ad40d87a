"""Core module exports."""

from dirembed.core.errors import (
    CancellationError,
    ConfigError,
    DimensionMismatchError,
    DirEmbedError,
    EmbedderError,
    ErrorCode,
    SerializationError,
    StaleIndexError,
)
from dirembed.core.logging import configure_logging, get_logger, level_for_verbosity
from dirembed.core.progress import pluralize, status, task

__all__ = [
    # Errors
    "CancellationError",
    "ConfigError",
    "DimensionMismatchError",
    "DirEmbedError",
    "EmbedderError",
    "ErrorCode",
    "SerializationError",
    "StaleIndexError",
    # Logging
    "configure_logging",
    "get_logger",
    "level_for_verbosity",
    # Progress
    "pluralize",
    "status",
    "task",
]
