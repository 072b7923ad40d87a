"""Public API: the disk-cached embedding index.

``DiskCachedEmbeddingIndex`` owns one DirectoryIndexStore and wires the
indexer, search engine and dotfile persistence to a single filesystem and
embedder.

Usage::

    index = DiskCachedEmbeddingIndex(FastEmbedEmbedder())
    index.load_path("src")                 # pick up existing dotfiles
    index.index_path("src")                # embed new/changed files only
    for hit in index.search("retry policy", 5):
        print(hit.score, hit.file_path, hit.content)

All operations run synchronously on the caller's thread. Long operations
accept ``cancel_event``; setting it makes the operation raise
CancellationError at its next checkpoint.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable
from typing import Any

import structlog

from dirembed.config.models import DirEmbedConfig, IndexConfig
from dirembed.core.errors import CancellationError, ConfigError
from dirembed.embedding.base import Embedder
from dirembed.index._internal.filesystem import FileSystem, OsFileSystem
from dirembed.index._internal.indexing import Indexer
from dirembed.index._internal.persistence import IndexPersistence
from dirembed.index._internal.search import SearchEngine
from dirembed.index._internal.store import DirectoryIndexStore, is_within
from dirembed.index.models import Vector, VectorSearchResult

log = structlog.get_logger()


class DiskCachedEmbeddingIndex:
    """Directory-scoped embedding cache with brute-force cosine search."""

    def __init__(
        self,
        embedder: Embedder | None = None,
        *,
        fs: FileSystem | None = None,
        config: IndexConfig | None = None,
        store: DirectoryIndexStore | None = None,
        verbosity: int | None = None,
    ) -> None:
        self.config = config or IndexConfig()
        self.fs: FileSystem = fs or OsFileSystem()
        self.store = store if store is not None else DirectoryIndexStore()
        self._embedder = embedder

        self._persistence = IndexPersistence(self.fs, self.config.dotfile_name)
        self._indexer = Indexer(
            fs=self.fs,
            store=self.store,
            persistence=self._persistence,
            get_embedder=self._current_embedder,
            chunks_per_call=self.config.chunks_per_call,
            ignore_dirs=self.config.ignore_dirs,
            ignore_files=self.config.ignore_files,
        )
        self._search = SearchEngine(
            fs=self.fs,
            store=self.store,
            get_embedder=self._current_embedder,
        )
        self.set_verbosity(self.config.verbosity if verbosity is None else verbosity)

    @classmethod
    def from_config(
        cls,
        config: DirEmbedConfig,
        embedder: Embedder | None = None,
        *,
        fs: FileSystem | None = None,
        verbosity: int | None = None,
    ) -> DiskCachedEmbeddingIndex:
        return cls(embedder, fs=fs, config=config.index, verbosity=verbosity)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def dotfile_name(self) -> str:
        return self._persistence.dotfile_name

    @property
    def embedder(self) -> Embedder | None:
        return self._embedder

    def set_embedder(self, embedder: Embedder | None) -> None:
        self._embedder = embedder

    @property
    def verbosity(self) -> int:
        return self._verbosity

    def set_verbosity(self, verbosity: int) -> None:
        """0 silences diagnostics; 1 logs key events; 2 logs per-file detail."""
        self._verbosity = max(0, verbosity)
        self._indexer.verbosity = self._verbosity
        self._search.verbosity = self._verbosity

    def _current_embedder(self) -> Embedder | None:
        return self._embedder

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        num_results: int,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[VectorSearchResult]:
        """Embed ``query`` and return the ``num_results`` closest chunks with content."""
        with structlog.contextvars.bound_contextvars(operation="search"):
            return self._search.search(query, num_results, cancel_event=cancel_event)

    def vectorize(self, content: str) -> Vector:
        return self._search.vectorize(content)

    def search_with_vector(
        self,
        query_vector: Any,
        k: int,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[VectorSearchResult]:
        return self._search.search_with_vector(query_vector, k, cancel_event=cancel_event)

    def populate_search_results(
        self,
        results: list[VectorSearchResult],
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._search.populate_results(results, cancel_event=cancel_event)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index_path(
        self,
        path: str | os.PathLike[str],
        *,
        force_update: bool = False,
        chunk_size: int | None = None,
        max_chunks: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> int:
        """Index a file or tree; returns the number of files embedded.

        ``force_update`` re-embeds files even when their cache entry is
        current. Chunk geometry defaults to the configured values.
        """
        with structlog.contextvars.bound_contextvars(operation="index_path"):
            return self._indexer.index_path(
                os.fspath(path),
                force_update=force_update,
                chunk_size=self.config.chunk_size if chunk_size is None else chunk_size,
                max_chunks=self.config.max_chunks if max_chunks is None else max_chunks,
                cancel_event=cancel_event,
            )

    def index_paths(
        self,
        paths: Iterable[str | os.PathLike[str]],
        *,
        force_update: bool = False,
        chunk_size: int | None = None,
        max_chunks: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> int:
        total = 0
        for path in paths:
            total += self.index_path(
                path,
                force_update=force_update,
                chunk_size=chunk_size,
                max_chunks=max_chunks,
                cancel_event=cancel_event,
            )
        return total

    def indexed_files(self, under: str | os.PathLike[str] | None = None) -> list[str]:
        """Absolute paths of cached files, optionally limited to a subtree."""
        files = self.store.indexed_files()
        if under is None:
            return files
        root = os.path.abspath(os.fspath(under))
        return [path for path in files if is_within(path, root)]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_path(self, path: str | os.PathLike[str]) -> str:
        """Write the in-memory record of directory ``path`` to its dotfile."""
        dir_path = os.path.abspath(os.fspath(path))
        if self._verbosity >= 2:
            log.debug("persistence.save_path", path=dir_path)
        dir_index = self.store.get(dir_path)
        if dir_index is None:
            raise ConfigError.not_tracked(dir_path)
        dotfile = self._persistence.save(dir_path, dir_index)
        if self._verbosity >= 1:
            log.info(
                "persistence.saved",
                path=dotfile,
                files=len(dir_index),
                embeddings=dir_index.embedding_count,
            )
        return dotfile

    def save_paths(self, paths: Iterable[str | os.PathLike[str]]) -> list[str]:
        return [self.save_path(path) for path in paths]

    def load_dotfile(self, dotfile: str | os.PathLike[str]) -> str:
        """Load one dotfile, replacing any in-memory record. Returns its directory."""
        dotfile_path = os.path.abspath(os.fspath(dotfile))
        if self._verbosity >= 2:
            log.debug("persistence.load_dotfile", path=dotfile_path)
        dir_path, dir_index = self._persistence.load(dotfile_path)
        self.store.put(dir_path, dir_index)
        if self._verbosity >= 1:
            log.info(
                "persistence.loaded",
                path=dotfile_path,
                files=len(dir_index),
                embeddings=dir_index.embedding_count,
            )
        return dir_path

    def load_path(
        self,
        path: str | os.PathLike[str],
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[str]:
        """Load every dotfile at or below ``path`` (a file means its directory).

        Returns the directories loaded.
        """
        target = os.path.abspath(os.fspath(path))
        if cancel_event is not None and cancel_event.is_set():
            raise CancellationError.at("load_path", path=target)
        if self._verbosity >= 2:
            log.debug("persistence.load_path", path=target)

        info = self.fs.stat(target)
        dir_path = target if info.is_dir else os.path.dirname(target)

        with structlog.contextvars.bound_contextvars(operation="load_path"):
            dotfiles = self._persistence.discover(dir_path, cancel_event=cancel_event)
            return [self.load_dotfile(dotfile) for dotfile in dotfiles]

    def load_paths(
        self,
        paths: Iterable[str | os.PathLike[str]],
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[str]:
        loaded: list[str] = []
        for path in paths:
            loaded.extend(self.load_path(path, cancel_event=cancel_event))
        return loaded

    def find_dotfiles(
        self,
        path: str | os.PathLike[str],
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[str]:
        """Dotfiles at or below ``path`` that ``clear_path`` would remove."""
        return self._persistence.discover(os.path.abspath(os.fspath(path)), cancel_event=cancel_event)

    def clear_path(
        self,
        path: str | os.PathLike[str],
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[str]:
        """Delete every dotfile at or below ``path`` and drop the matching records.

        Ancestors of ``path`` are untouched. Returns the removed dotfiles.
        """
        target = os.path.abspath(os.fspath(path))
        with structlog.contextvars.bound_contextvars(operation="clear_path"):
            dotfiles = self._persistence.discover(target, cancel_event=cancel_event)
            for dotfile in dotfiles:
                if self._verbosity >= 2:
                    log.debug("persistence.removing", path=dotfile)
                self._persistence.remove(dotfile)
                self.store.remove(os.path.dirname(dotfile))
            if self._verbosity >= 1:
                log.info("persistence.cleared", path=target, dotfiles=len(dotfiles))
        return dotfiles

    def clear_paths(
        self,
        paths: Iterable[str | os.PathLike[str]],
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[str]:
        removed: list[str] = []
        for path in paths:
            removed.extend(self.clear_path(path, cancel_event=cancel_event))
        return removed
