"""Records held by the directory index store.

Architecture:
- One DirectoryIndex per directory level (non-recursive), keyed in the
  store by the directory's absolute path.
- A DirectoryIndex maps file base names to FileEmbeddings.
- FileEmbeddings holds the ordered byte-range/vector pairs of one file.

VectorSearchResult is transient and never persisted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

Vector = np.ndarray[Any, np.dtype[np.float32]]


def as_vector(values: Any) -> Vector:
    """Coerce an embedder output row to a 1-D float32 array."""
    vec = np.asarray(values, dtype=np.float32)
    if vec.ndim != 1:
        raise ValueError(f"Expected a 1-D vector, got shape {vec.shape}")
    return vec


@dataclass(slots=True)
class AnnotatedEmbedding:
    """Vector for the half-open byte range ``[start, end)`` of a file."""

    start: int
    end: int
    vector: Vector

    def __post_init__(self) -> None:
        if self.start < 0 or self.start >= self.end:
            raise ValueError(f"Invalid byte range [{self.start}, {self.end})")


@dataclass(slots=True)
class FileEmbeddings:
    """All embeddings of one file, replaced wholesale on re-index.

    ``updated_at`` is the wall-clock time (POSIX seconds) the file was
    embedded. Staleness compares it to the file mtime at whole seconds.
    """

    path: str
    updated_at: float
    embeddings: list[AnnotatedEmbedding] = field(default_factory=list)

    def is_fresh(self, mtime: float) -> bool:
        """True if this entry is at least as new as ``mtime`` (second resolution)."""
        return math.floor(self.updated_at) >= math.floor(mtime)


@dataclass(slots=True)
class DirectoryIndex:
    """Cache for exactly one directory: file base name -> FileEmbeddings."""

    files: dict[str, FileEmbeddings] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def embedding_count(self) -> int:
        return sum(len(f.embeddings) for f in self.files.values())


@dataclass(slots=True)
class VectorSearchResult:
    """One scored chunk. ``content`` is filled in by hydration."""

    score: float
    file_path: str
    start: int
    end: int
    vector: Vector
    content: str | None = None

    def to_dict(self, *, include_vector: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "score": self.score,
            "path": self.file_path,
            "start": self.start,
            "end": self.end,
            "content": self.content,
        }
        if include_vector:
            data["vector"] = self.vector.tolist()
        return data
