"""Incremental, directory-scoped indexing.

``index_path`` walks depth-first, pre-order: every indexable subdirectory
is finished (and persisted) before the directory's own files are looked
at. Each directory level gets its own DirectoryIndex and its own dotfile.

Staleness is decided per file by comparing the cached ``updated_at`` with
the file mtime at whole-second resolution. A re-indexed file replaces its
cached entry wholesale.

Errors are never swallowed: the first failure (stat, read, embed, save,
cancellation) aborts the whole call. Directories persisted before the
failure stay on disk.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable

import structlog

from dirembed.core.errors import CancellationError, ConfigError, EmbedderError
from dirembed.embedding.base import Embedder
from dirembed.index._internal.chunking import chunk_range, read_file_chunks, validate_chunk_size
from dirembed.index._internal.filesystem import FileInfo, FileSystem
from dirembed.index._internal.filters import indexable_file_reason, is_indexable_dir
from dirembed.index._internal.persistence import IndexPersistence
from dirembed.index._internal.store import DirectoryIndexStore
from dirembed.index.models import AnnotatedEmbedding, DirectoryIndex, FileEmbeddings, as_vector

log = structlog.get_logger()


def _check_cancelled(cancel_event: threading.Event | None, checkpoint: str, path: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise CancellationError.at(checkpoint, path=path)


class Indexer:
    """Builds and refreshes DirectoryIndex records for a tree.

    Collaborators are injected; the embedder is looked up through a
    callable so that ``DiskCachedEmbeddingIndex.set_embedder`` takes
    effect immediately.
    """

    def __init__(
        self,
        *,
        fs: FileSystem,
        store: DirectoryIndexStore,
        persistence: IndexPersistence,
        get_embedder: Callable[[], Embedder | None],
        chunks_per_call: int,
        ignore_dirs: list[str] | tuple[str, ...],
        ignore_files: list[str] | tuple[str, ...],
        verbosity: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if chunks_per_call <= 0:
            raise ConfigError.invalid_value(
                "chunks_per_call", chunks_per_call, "Must be greater than 0"
            )
        self._fs = fs
        self._store = store
        self._persistence = persistence
        self._get_embedder = get_embedder
        self.chunks_per_call = chunks_per_call
        self.ignore_dirs = ignore_dirs
        self.ignore_files = ignore_files
        self.verbosity = verbosity
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def index_path(
        self,
        path: str,
        *,
        force_update: bool,
        chunk_size: int,
        max_chunks: int,
        cancel_event: threading.Event | None = None,
    ) -> int:
        """Index a file or a directory tree. Returns the number of files embedded."""
        _check_cancelled(cancel_event, "index_path", path)
        validate_chunk_size(chunk_size)
        if self.verbosity >= 2:
            log.debug("index.index_path", path=path, force=force_update)

        path = os.path.abspath(path)
        info = self._fs.stat(path)

        if not info.is_dir:
            # A single file: only that file is (re)considered
            return self._index_files(
                os.path.dirname(path),
                [info],
                force_update=force_update,
                chunk_size=chunk_size,
                max_chunks=max_chunks,
                cancel_event=cancel_event,
            )

        embedded = 0
        entries = self._fs.list_dir(path)
        for entry in entries:
            if not entry.is_dir:
                continue
            sub_path = os.path.join(path, entry.name)
            if not is_indexable_dir(sub_path, self.ignore_dirs):
                if self.verbosity >= 2:
                    log.debug("index.dir_ignored", path=sub_path)
                continue
            embedded += self.index_path(
                sub_path,
                force_update=force_update,
                chunk_size=chunk_size,
                max_chunks=max_chunks,
                cancel_event=cancel_event,
            )

        files = [entry for entry in entries if not entry.is_dir]
        embedded += self._index_files(
            path,
            files,
            force_update=force_update,
            chunk_size=chunk_size,
            max_chunks=max_chunks,
            cancel_event=cancel_event,
        )
        return embedded

    def filter_indexable(
        self,
        dir_path: str,
        files: list[FileInfo],
        *,
        force_update: bool,
        dir_index: DirectoryIndex | None,
    ) -> list[FileInfo]:
        """Drop candidates that fail the inclusion rules."""
        kept: list[FileInfo] = []
        for info in files:
            previous = dir_index.files.get(info.name) if dir_index is not None else None
            reason = indexable_file_reason(
                self._fs,
                dir_path,
                info,
                force_update=force_update,
                previous=previous,
                ignore_files=self.ignore_files,
            )
            if reason is None:
                kept.append(info)
            elif self.verbosity >= 2:
                log.debug("index.file_ignored", path=os.path.join(dir_path, info.name), reason=reason)
        return kept

    def embed_file(
        self,
        path: str,
        *,
        chunk_size: int,
        max_chunks: int,
        cancel_event: threading.Event | None = None,
    ) -> FileEmbeddings:
        """Chunk one file and embed it in batches of ``chunks_per_call``.

        Nothing is written to the store here; a failure on any batch
        discards the whole file.
        """
        embedder = self._get_embedder()
        if embedder is None:
            raise ConfigError.no_embedder()
        validate_chunk_size(chunk_size)

        path = os.path.abspath(path)
        if self.verbosity >= 1:
            log.info("index.embedding", path=path)
        timestamp = self._clock()

        chunks = read_file_chunks(self._fs, path, chunk_size, max_chunks)
        texts = [chunk.decode("utf-8", errors="replace") for chunk in chunks]

        annotated: list[AnnotatedEmbedding] = []
        for i in range(0, len(chunks), self.chunks_per_call):
            _check_cancelled(cancel_event, "embed_batch", path)

            batch = texts[i : i + self.chunks_per_call]
            vectors = list(embedder.embed(batch))
            if len(vectors) != len(batch):
                raise EmbedderError.bad_response(len(batch), len(vectors))

            for j, vector in enumerate(vectors):
                start, end = chunk_range(i + j, chunk_size, chunks[i + j])
                annotated.append(AnnotatedEmbedding(start=start, end=end, vector=as_vector(vector)))

        return FileEmbeddings(
            path=os.path.basename(path),
            updated_at=timestamp,
            embeddings=annotated,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _index_files(
        self,
        dir_path: str,
        files: list[FileInfo],
        *,
        force_update: bool,
        chunk_size: int,
        max_chunks: int,
        cancel_event: threading.Event | None,
    ) -> int:
        """Refresh the candidates of one directory level and persist it."""
        existing = self._store.get(dir_path)
        candidates = self.filter_indexable(
            dir_path, files, force_update=force_update, dir_index=existing
        )

        dir_index = existing if existing is not None else DirectoryIndex()
        for info in candidates:
            file_path = os.path.join(dir_path, info.name)
            file_embeddings = self.embed_file(
                file_path,
                chunk_size=chunk_size,
                max_chunks=max_chunks,
                cancel_event=cancel_event,
            )
            dir_index.files[info.name] = file_embeddings
            if existing is None:
                self._store.put(dir_path, dir_index)
                existing = dir_index
            if self.verbosity >= 1:
                log.info(
                    "index.file_indexed",
                    path=file_path,
                    chunks=len(file_embeddings.embeddings),
                )

        # TODO: drop entries for files deleted since the last index
        if len(dir_index) > 0:
            dotfile = self._persistence.save(dir_path, dir_index)
            if self.verbosity >= 1:
                log.info(
                    "persistence.saved",
                    path=dotfile,
                    files=len(dir_index),
                    embeddings=dir_index.embedding_count,
                )

        return len(candidates)
