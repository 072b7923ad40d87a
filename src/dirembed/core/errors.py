"""dirembed error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index / persistence
- 4xxx: Embedder
- 9xxx: Internal / cancellation

Filesystem failures are not wrapped: they surface as the ``OSError``
subclass raised by the filesystem capability, with ``filename`` set.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004
    CONFIG_NO_EMBEDDER = 2005
    CONFIG_INDEX_NOT_TRACKED = 2006

    # Index (3xxx)
    INDEX_CORRUPT = 3001
    INDEX_INCOMPATIBLE = 3002
    INDEX_DIMENSION_MISMATCH = 3003
    INDEX_STALE = 3004

    # Embedder (4xxx)
    EMBEDDER_FAILED = 4001
    EMBEDDER_UNAVAILABLE = 4002
    EMBEDDER_BAD_RESPONSE = 4003

    # Internal (9xxx)
    INTERNAL_CANCELLED = 9002


@dataclass(frozen=True, slots=True)
class DirEmbedError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'INDEX_CORRUPT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(DirEmbedError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )

    @classmethod
    def no_embedder(cls) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_NO_EMBEDDER,
            message="No embedder set",
        )

    @classmethod
    def not_tracked(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INDEX_NOT_TRACKED,
            message=f"No index found for {path}",
            details={"path": path},
        )


class SerializationError(DirEmbedError):
    """Persisted index record is malformed or incompatible."""

    @classmethod
    def corrupt(cls, path: str, reason: str) -> "SerializationError":
        return cls(
            code=ErrorCode.INDEX_CORRUPT,
            message=f"Corrupt index record at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def incompatible(cls, path: str, found: Any, expected: Any) -> "SerializationError":
        return cls(
            code=ErrorCode.INDEX_INCOMPATIBLE,
            message=f"Incompatible index record at {path}: format {found}, expected {expected}",
            details={"path": path, "found": str(found), "expected": str(expected)},
        )


class DimensionMismatchError(DirEmbedError):
    """Query and stored vectors have different lengths."""

    @classmethod
    def between(cls, expected: int, got: int, file_path: str) -> "DimensionMismatchError":
        return cls(
            code=ErrorCode.INDEX_DIMENSION_MISMATCH,
            message=(
                f"Vector dimension mismatch for {file_path}: query has {expected}, "
                f"stored vector has {got}"
            ),
            details={"expected": expected, "got": got, "path": file_path},
        )


class StaleIndexError(DirEmbedError):
    """Cached byte range no longer exists in the file on disk."""

    @classmethod
    def past_end(cls, file_path: str, start: int, end: int) -> "StaleIndexError":
        return cls(
            code=ErrorCode.INDEX_STALE,
            message=(
                f"Cached range {start}-{end} of {file_path} is past the end of the file; "
                "re-index it"
            ),
            details={"path": file_path, "start": start, "end": end},
        )


class EmbedderError(DirEmbedError):
    """Embedding provider failures."""

    @classmethod
    def failed(cls, reason: str, **details: Any) -> "EmbedderError":
        return cls(
            code=ErrorCode.EMBEDDER_FAILED,
            message=f"Embedding failed: {reason}",
            details=details,
        )

    @classmethod
    def unavailable(cls, reason: str, hint: str | None = None) -> "EmbedderError":
        details: dict[str, Any] = {"reason": reason}
        if hint:
            details["hint"] = hint
        return cls(
            code=ErrorCode.EMBEDDER_UNAVAILABLE,
            message=f"Embedder unavailable: {reason}",
            details=details,
        )

    @classmethod
    def bad_response(cls, sent: int, received: int) -> "EmbedderError":
        return cls(
            code=ErrorCode.EMBEDDER_BAD_RESPONSE,
            message=f"Embedder returned {received} vectors for {sent} inputs",
            details={"sent": sent, "received": received},
        )


class CancellationError(DirEmbedError):
    """Caller-requested cancellation observed at a checkpoint."""

    @classmethod
    def at(cls, checkpoint: str, **details: Any) -> "CancellationError":
        return cls(
            code=ErrorCode.INTERNAL_CANCELLED,
            message=f"Operation cancelled ({checkpoint})",
            details={"checkpoint": checkpoint, **details},
        )

