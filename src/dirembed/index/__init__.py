"""Index module - directory-scoped embedding cache.

This module provides:
- Incremental indexing: chunk and embed new or changed files only
- Per-directory persistence: one dotfile per indexed directory
- Brute-force cosine search with on-demand content hydration

Public API is in `dirembed.index.ops`:
- DiskCachedEmbeddingIndex: High-level orchestration
- AnnotatedEmbedding, FileEmbeddings, DirectoryIndex, VectorSearchResult

Internal implementations are in `dirembed.index._internal/`.
"""

from dirembed.index._internal.filesystem import FileInfo, FileSystem, OsFileSystem
from dirembed.index._internal.store import DirectoryIndexStore
from dirembed.index.models import (
    AnnotatedEmbedding,
    DirectoryIndex,
    FileEmbeddings,
    Vector,
    VectorSearchResult,
)
from dirembed.index.ops import DiskCachedEmbeddingIndex

__all__ = [
    # Public API (ops.py)
    "DiskCachedEmbeddingIndex",
    # Records
    "AnnotatedEmbedding",
    "DirectoryIndex",
    "FileEmbeddings",
    "Vector",
    "VectorSearchResult",
    # Storage
    "DirectoryIndexStore",
    # Filesystem capability
    "FileInfo",
    "FileSystem",
    "OsFileSystem",
]
