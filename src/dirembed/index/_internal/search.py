"""Brute-force cosine search over every vector in the store.

No approximate index: each query scans all tracked directories, scoring
one file's vectors at a time as a matrix product. Ranking is by cosine
similarity alone. Equal scores keep store iteration order (Python's sort
is stable), which is repeatable for a given store but carries no meaning.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable
from typing import Any

import numpy as np
import structlog

from dirembed.core.errors import (
    CancellationError,
    ConfigError,
    DimensionMismatchError,
    EmbedderError,
    StaleIndexError,
)
from dirembed.embedding.base import Embedder
from dirembed.index._internal.filesystem import FileSystem
from dirembed.index._internal.store import DirectoryIndexStore
from dirembed.index.models import Vector, VectorSearchResult, as_vector

log = structlog.get_logger()

# Magnitudes are clamped so zero vectors score 0.0 instead of NaN
_MIN_NORM = 1e-10


def cosine_scores(query: Vector, matrix: np.ndarray[Any, np.dtype[np.float32]]) -> np.ndarray[Any, Any]:
    """Cosine similarity of ``query`` against each row of ``matrix``."""
    q = query.astype(np.float64)
    m = matrix.astype(np.float64)
    q_norm = max(float(np.linalg.norm(q)), _MIN_NORM)
    m_norms = np.maximum(np.linalg.norm(m, axis=1), _MIN_NORM)
    return (m @ q) / (m_norms * q_norm)


class SearchEngine:
    """Vectorizes queries, ranks stored chunks and hydrates their text."""

    def __init__(
        self,
        *,
        fs: FileSystem,
        store: DirectoryIndexStore,
        get_embedder: Callable[[], Embedder | None],
        verbosity: int = 0,
    ) -> None:
        self._fs = fs
        self._store = store
        self._get_embedder = get_embedder
        self.verbosity = verbosity

    def search(
        self,
        query: str,
        k: int,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[VectorSearchResult]:
        """vectorize → search_with_vector → populate_results."""
        query_vector = self.vectorize(query)
        results = self.search_with_vector(query_vector, k, cancel_event=cancel_event)
        self.populate_results(results, cancel_event=cancel_event)
        return results

    def vectorize(self, content: str) -> Vector:
        embedder = self._get_embedder()
        if embedder is None:
            raise ConfigError.no_embedder()
        vectors = list(embedder.embed([content]))
        if len(vectors) != 1:
            raise EmbedderError.bad_response(1, len(vectors))
        return as_vector(vectors[0])

    def search_with_vector(
        self,
        query_vector: Any,
        k: int,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[VectorSearchResult]:
        """Score every stored vector against ``query_vector`` and keep the top ``k``."""
        query = as_vector(query_vector)
        dim = query.shape[0]
        results: list[VectorSearchResult] = []

        for dir_path, dir_index in self._store.items():
            if cancel_event is not None and cancel_event.is_set():
                raise CancellationError.at("search", path=dir_path)

            for name, file_embeddings in dir_index.files.items():
                embeddings = file_embeddings.embeddings
                if not embeddings:
                    continue
                file_path = os.path.join(dir_path, name)
                for emb in embeddings:
                    if emb.vector.shape[0] != dim:
                        raise DimensionMismatchError.between(dim, emb.vector.shape[0], file_path)

                matrix = np.vstack([emb.vector for emb in embeddings])
                scores = cosine_scores(query, matrix)
                for emb, score in zip(embeddings, scores, strict=True):
                    results.append(
                        VectorSearchResult(
                            score=float(score),
                            file_path=file_path,
                            start=emb.start,
                            end=emb.end,
                            vector=emb.vector,
                        )
                    )

        results.sort(key=lambda r: r.score, reverse=True)
        if self.verbosity >= 2:
            log.debug("search.scored", candidates=len(results), k=k)
        return results[: max(k, 0)]

    def populate_results(
        self,
        results: list[VectorSearchResult],
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Read each result's byte range from disk into ``content``.

        Fails fast: the first read error propagates and no further results
        are hydrated. A file that shrank yields the bytes that remain in the
        range; one cut short before ``start`` raises StaleIndexError.
        """
        for result in results:
            if cancel_event is not None and cancel_event.is_set():
                raise CancellationError.at("populate", path=result.file_path)

            with self._fs.open_read(result.file_path) as f:
                f.seek(result.start)
                buf = f.read(result.end - result.start)
            if not buf:
                raise StaleIndexError.past_end(result.file_path, result.start, result.end)
            result.content = buf.decode("utf-8", errors="replace")
